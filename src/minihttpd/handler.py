"""
=============================================================================
REQUEST HANDLER CAPABILITY
=============================================================================

The core knows handlers only through one signature:

    Handler = Callable[[HTTPRequest], HTTPResponse]

Any callable with that shape can serve requests: a plain function, a bound
method, a lambda in a test, or an instance of a RequestHandler subclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        HANDLER CONTRACT                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Synchronous: returns the complete response, no streaming.       │
    │                                                                      │
    │   2. Never raises: unsupported method, missing resource and          │
    │      internal faults are all expressed as a response (405, 404,      │
    │      500, ...). A handler that raises is broken; the worker logs     │
    │      the traceback and answers 500.                                  │
    │                                                                      │
    │   3. Thread-safe: every worker thread calls the same handler         │
    │      object. Mutable state inside a handler needs its own lock.      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable

from .http.request import HTTPRequest
from .http.response import HTTPResponse


Handler = Callable[[HTTPRequest], HTTPResponse]


class RequestHandler(ABC):
    """
    Base class for class-based handlers.

    Subclasses implement ``handle``; instances are callable and can be
    passed anywhere a Handler is expected:

        class Hello(RequestHandler):
            def handle(self, request):
                return HTTPResponse(200, {"Content-Length": "5"}, b"hello")

        server = HTTPServer(config, Hello())
    """

    @abstractmethod
    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Produce the response for ``request``. Must not raise."""

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)
