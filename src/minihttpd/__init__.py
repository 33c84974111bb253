"""
=============================================================================
MINIHTTPD - Minimal HTTP/1.x Server
=============================================================================

One request per connection: accept, parse the request head, call a handler,
write one response, close. Concurrency is a fixed pool of worker threads
fed by an unbounded queue (or, optionally, a thread per connection).

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttpd/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m minihttpd)
    ├── server.py            # HTTPServer wiring
    ├── config.py            # ServerConfig dataclass
    ├── events.py            # ConnectionOutcome and access-log sinks
    ├── handler.py           # Handler contract
    ├── core/
    │   ├── socket_server.py # Listening socket and accept loop
    │   ├── connection.py    # Client socket and its state machine
    │   ├── worker.py        # parse → handle → write → close
    │   ├── dispatcher.py    # pool or thread-per-connection
    │   └── thread_pool.py   # Fixed-size worker pool
    ├── http/
    │   ├── request.py       # Request parser
    │   ├── response.py      # Response serializer
    │   ├── errors.py        # Parse error kinds
    │   ├── status_codes.py  # Status codes and reason phrases
    │   └── mime_types.py    # Content-Type lookup
    └── handlers/
        ├── static.py        # Files under a root directory
        └── get_only.py      # 200 for GET, 405 otherwise

=============================================================================
QUICK START
=============================================================================

    from minihttpd import HTTPServer, ServerConfig, HTTPResponse

    def hello(request):
        return HTTPResponse(200, {"Content-Length": "5"}, b"hello")

    HTTPServer(ServerConfig(port=8000), handler=hello).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .events import ConnectionOutcome, OutcomeSink, log_outcome
from .handler import Handler, RequestHandler
from .handlers import FileHandler, GetOnlyHandler
from .http import HTTPRequest, HTTPResponse, HTTPStatus, Method, ParseError
from .server import HTTPServer

__all__ = [
    "__version__",
    "HTTPServer",
    "ServerConfig",
    "Handler",
    "RequestHandler",
    "FileHandler",
    "GetOnlyHandler",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "Method",
    "ParseError",
    "ConnectionOutcome",
    "OutcomeSink",
    "log_outcome",
]
