"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator, List, Optional

import pytest

from minihttpd import HTTPServer, ServerConfig
from minihttpd.core import Connection
from minihttpd.events import ConnectionOutcome
from minihttpd.handler import Handler


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /docs/index.html?lang=en HTTP/1.1\r\n"
        b"Host: localhost:8000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def outcomes() -> List[ConnectionOutcome]:
    """A list that collects outcome events; pass ``outcomes.append`` as sink."""
    return []


@pytest.fixture
def connection_pair() -> Generator[Callable[[], tuple], None, None]:
    """
    Factory for (server-side Connection, client socket) over a socketpair.

    Client sockets are closed at teardown; server sides are closed by
    whatever serves them.
    """
    clients = []

    def make(timeout: Optional[float] = 5.0):
        server_sock, client_sock = socket.socketpair()
        client_sock.settimeout(5.0)
        clients.append(client_sock)
        return Connection(socket=server_sock, address=("127.0.0.1", 40000 + len(clients)), timeout=timeout), client_sock

    yield make

    for client in clients:
        client.close()


def read_until_close(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


@pytest.fixture
def read_all() -> Callable[[socket.socket], bytes]:
    """Read from a socket until the peer closes it."""
    return read_until_close


class RunningServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self) -> "RunningServer":
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")
        return self

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def request(self, raw: bytes, shut_write: bool = True) -> bytes:
        """Send raw bytes, return everything the server sends back."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw)
            if shut_write:
                s.shutdown(socket.SHUT_WR)
            return read_until_close(s)


@pytest.fixture
def start_server(outcomes) -> Generator[Callable[..., RunningServer], None, None]:
    """
    Factory fixture: ``start_server(handler, **config_overrides)``.

    Servers bind 127.0.0.1 on an OS-chosen port, record outcome events in
    the ``outcomes`` fixture and are stopped at teardown.
    """
    servers = []

    def start(handler: Handler, **overrides) -> RunningServer:
        options = dict(host="127.0.0.1", port=0, max_concurrency=2, timeout=5.0)
        options.update(overrides)
        server = HTTPServer(ServerConfig(**options), handler=handler, sink=outcomes.append)
        running = RunningServer(server).start()
        servers.append(running)
        return running

    yield start

    for running in servers:
        running.stop()
