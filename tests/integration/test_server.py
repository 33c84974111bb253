"""
Integration tests: a real server on an ephemeral port.
"""

import socket
import threading
from pathlib import Path

import pytest

from minihttpd import HTTPServer, ServerConfig
from minihttpd.handlers import FileHandler, GetOnlyHandler
from minihttpd.http import HTTPRequest, HTTPResponse


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    (tmp_path / "hello.txt").write_bytes(b"hello world")
    return tmp_path


class TestFileServing:
    """End-to-end tests with the file handler."""

    def test_get_file(self, start_server, docroot, outcomes):
        """Test fetching a file over TCP."""
        server = start_server(FileHandler(docroot))

        response = server.request(b"GET /hello.txt HTTP/1.1\r\nHost: localhost\r\n\r\n")

        head, _, body = response.partition(b"\r\n\r\n")
        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"content-length: 11" in head
        assert head.endswith(b"Connection: close")
        assert body == b"hello world"

    def test_missing_file(self, start_server, docroot):
        """Test a 404 over TCP."""
        server = start_server(FileHandler(docroot))

        response = server.request(b"GET /missing HTTP/1.1\r\n\r\n")

        assert response.startswith(b"HTTP/1.1 404 Not Found\r\n")

    def test_post_is_405(self, start_server, docroot):
        """Test that a request with an unread body still gets its answer."""
        server = start_server(FileHandler(docroot))

        response = server.request(
            b"POST /hello.txt HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
        )

        assert response.startswith(b"HTTP/1.1 405 Method Not Allowed\r\n")

    def test_malformed_request(self, start_server, docroot, outcomes):
        """Test that garbage gets 400 and is reported to the sink."""
        server = start_server(FileHandler(docroot))

        response = server.request(b"GET\r\n\r\n")

        assert response == (
            b"HTTP/1.1 400 Bad Request\r\n"
            b"content-length: 0\r\n"
            b"Connection: close\r\n"
            b"\r\n"
        )
        server.stop()
        assert [o.error_kind for o in outcomes] == ["MissingPath"]


class TestServerLifecycle:
    """Tests for startup, concurrency and shutdown."""

    def test_binds_ephemeral_port(self, start_server):
        """Test that port 0 resolves to a real port."""
        server = start_server(GetOnlyHandler())

        assert server.port != 0
        assert server.server.is_running

    def test_one_request_per_connection(self, start_server):
        """Test that the server closes after one response."""
        server = start_server(GetOnlyHandler())

        with socket.create_connection(("127.0.0.1", server.port), timeout=5.0) as s:
            s.sendall(b"GET / HTTP/1.1\r\n\r\nGET / HTTP/1.1\r\n\r\n")
            data = b""
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                data += chunk

        assert data.count(b"HTTP/1.1 200 OK") == 1

    @pytest.mark.parametrize("policy", ["pool", "thread"])
    def test_concurrent_clients(self, start_server, outcomes, policy):
        """Test many clients at once under both dispatch policies."""
        server = start_server(GetOnlyHandler(), max_concurrency=3, dispatch_policy=policy)
        results = []
        lock = threading.Lock()

        def client(i):
            response = server.request(f"GET /{i} HTTP/1.1\r\n\r\n".encode())
            with lock:
                results.append(response)

        threads = [threading.Thread(target=client, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10.0)

        assert len(results) == 20
        assert all(r.startswith(b"HTTP/1.1 200 OK\r\n") for r in results)
        server.stop()
        assert len(outcomes) == 20

    def test_handler_exception_keeps_server_alive(self, start_server):
        """Test that one broken request does not affect the next."""
        def flaky(request: HTTPRequest) -> HTTPResponse:
            if request.path == "/boom":
                raise RuntimeError("boom")
            return HTTPResponse(200, {"Content-Length": "2"}, b"ok")

        server = start_server(flaky, max_concurrency=1)

        assert server.request(b"GET /boom HTTP/1.1\r\n\r\n").startswith(b"HTTP/1.1 500 ")
        assert server.request(b"GET /fine HTTP/1.1\r\n\r\n").endswith(b"\r\n\r\nok")

    def test_shutdown_stops_accepting(self, start_server):
        """Test that run() returns and the port is released."""
        server = start_server(GetOnlyHandler())
        port = server.port

        server.stop()

        assert server.stopped
        assert not server.server.is_running
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0)

    def test_bind_conflict_raises(self, start_server):
        """Test that an address in use surfaces as OSError."""
        running = start_server(GetOnlyHandler())
        config = ServerConfig(host="127.0.0.1", port=running.port)

        # SO_REUSEADDR does not allow two listeners on one port
        with pytest.raises(OSError):
            HTTPServer(config, handler=GetOnlyHandler()).run()
