"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows about the HTTP wire format, and nothing that knows
about sockets or threads:

    errors.py        ParseError and its subclasses
    status_codes.py  HTTPStatus and reason phrases
    request.py       HTTPRequest, Method, RequestParser
    response.py      HTTPResponse, ResponseSerializer
    mime_types.py    Content-Type lookup for files

The parser reads from any binary stream and the serializer writes to any
binary stream, so both are tested with io.BytesIO.

=============================================================================
"""

from .errors import (
    ParseError,
    EmptyRequest,
    MissingMethod,
    MissingPath,
    MissingHeaderKey,
    MissingHeaderValue,
    InvalidRequest,
)
from .status_codes import HTTPStatus, reason_phrase
from .request import HTTPRequest, Method, RequestParser, parse_request
from .response import (
    HTTPResponse,
    ResponseSerializer,
    write_response,
    empty_response,
    bad_request,
    not_found,
    method_not_allowed,
    internal_error,
)

__all__ = [
    # Errors
    "ParseError",
    "EmptyRequest",
    "MissingMethod",
    "MissingPath",
    "MissingHeaderKey",
    "MissingHeaderValue",
    "InvalidRequest",
    # Status
    "HTTPStatus",
    "reason_phrase",
    # Request
    "HTTPRequest",
    "Method",
    "RequestParser",
    "parse_request",
    # Response
    "HTTPResponse",
    "ResponseSerializer",
    "write_response",
    "empty_response",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "internal_error",
]
