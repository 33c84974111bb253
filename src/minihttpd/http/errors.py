"""
=============================================================================
PARSE ERROR TAXONOMY
=============================================================================

Every way a request can fail to parse has its own exception class. They all
derive from ParseError, so the connection worker needs a single except clause,
while tests and access logs can still tell the failures apart.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ParseError hierarchy                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ParseError (status_code = 400)                                     │
    │      ├── EmptyRequest         no request line at all                 │
    │      ├── MissingMethod        request line has no method token       │
    │      ├── MissingPath          request line has no path token         │
    │      ├── MissingHeaderKey     header line like ": value"             │
    │      ├── MissingHeaderValue   header line without ": "               │
    │      └── InvalidRequest       bad method token, path or encoding     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Parsing is all-or-nothing: none of these carry a partially built request.
Every one of them is answered with 400 Bad Request.

=============================================================================
"""


class ParseError(Exception):
    """
    Raised when the request line or headers cannot be parsed.

    Attributes:
        kind: Stable name of the failure, used in outcome events.
        status_code: HTTP status to answer with (always 400).
    """

    kind = "ParseError"
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)


class EmptyRequest(ParseError):
    """The stream ended before a request line was read."""
    kind = "EmptyRequest"


class MissingMethod(ParseError):
    kind = "MissingMethod"


class MissingPath(ParseError):
    kind = "MissingPath"


class MissingHeaderKey(ParseError):
    kind = "MissingHeaderKey"


class MissingHeaderValue(ParseError):
    kind = "MissingHeaderValue"


class InvalidRequest(ParseError):
    """
    The request is structurally complete but unusable.

    Raised for a method with characters outside [A-Za-z0-9-_.], a path
    that is not a URI, a line that is not UTF-8, or a line longer than the
    parser allows.
    """
    kind = "InvalidRequest"


__all__ = [
    "ParseError",
    "EmptyRequest",
    "MissingMethod",
    "MissingPath",
    "MissingHeaderKey",
    "MissingHeaderValue",
    "InvalidRequest",
]
