"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together. Everything here is wiring; the behaviour lives in
the components.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP SERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │   HTTPServer    │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐    │
    │    │ SocketServer │───►│  Dispatcher  │───►│ ConnectionWorker │    │
    │    │   accept()   │    │ pool/thread  │    │ parse/handle/    │    │
    │    └──────────────┘    └──────────────┘    │ write/close      │    │
    │                                            └────────┬─────────┘    │
    │                                                     │               │
    │                                          ┌──────────┴──────────┐   │
    │                                          ▼                     ▼   │
    │                                    ┌──────────┐        ┌───────────┐│
    │                                    │ Handler  │        │   sink    ││
    │                                    └──────────┘        └───────────┘│
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. CLIENT CONNECTS
       └── SocketServer accepts and wraps the socket in a Connection

    2. DISPATCH
       └── Dispatcher queues it (pool) or starts a thread (thread)

    3. SERVE (worker thread)
       └── parse head → handler(request) → write response

    4. CLOSE
       └── FIN, drain, close; one ConnectionOutcome to the sink

=============================================================================
SHUTDOWN
=============================================================================

    1. Stop accepting (shutdown(), SIGINT or SIGTERM)
    2. Serve what was already accepted, including queued connections
    3. Stop the worker threads (bounded by SHUTDOWN_TIMEOUT)

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import ConnectionWorker, Dispatcher, SocketServer
from .events import OutcomeSink, make_logging_sink
from .handler import Handler
from .handlers import FileHandler
from .http import RequestParser


logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 30.0


class HTTPServer:
    """
    A one-request-per-connection HTTP/1.x server.

    Usage:
        server = HTTPServer(ServerConfig(port=8000), handler=FileHandler("."))
        server.run()     # blocks until Ctrl+C or server.shutdown()

    From another thread (tests, embedding):
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5.0)
        host, port = server.address
        ...
        server.shutdown()
        thread.join()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        handler: Optional[Handler] = None,
        sink: Optional[OutcomeSink] = None,
    ):
        """
        Args:
            config: Server configuration. Defaults to ServerConfig().
            handler: Request handler. Defaults to a FileHandler serving
                     config.root_dir.
            sink: Receives one ConnectionOutcome per connection. Defaults
                  to an access logger in config.log_format.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.handler = handler if handler is not None else FileHandler(self.config.root_dir)
        self.sink = sink if sink is not None else make_logging_sink(self.config.log_format)

        self._socket_server = SocketServer(self.config)
        self._worker = ConnectionWorker(
            handler=self.handler,
            parser=RequestParser(max_line_length=self.config.max_line_length),
            sink=self.sink,
        )
        self._dispatcher = Dispatcher(
            self._worker,
            max_concurrency=self.config.max_concurrency,
            policy=self.config.dispatch_policy,
        )

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port even when configured as 0."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            OSError: If the address cannot be bound.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._dispatcher.start()

        logger.info(
            f"Starting HTTP server on {self.config.host}:{self.config.port} "
            f"(policy={self.config.dispatch_policy}, workers={self.config.max_concurrency})"
        )

        try:
            self._socket_server.start(self._dispatcher.dispatch)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask run() to return. Safe from any thread."""
        self._socket_server.shutdown()

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._socket_server.shutdown()
        self._dispatcher.shutdown(wait=True, timeout=SHUTDOWN_TIMEOUT)
        logger.info("Server stopped")
