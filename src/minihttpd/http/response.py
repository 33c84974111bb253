"""
=============================================================================
HTTP RESPONSE MODEL AND SERIALIZER
=============================================================================

Handlers return an HTTPResponse; the serializer turns it into the exact
bytes written back to the client.

=============================================================================
WIRE FORMAT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      RESPONSE ON THE WIRE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                 ← status line                  │
    │   content-length: 5\r\n               ← handler headers, in order,   │
    │   content-type: text/plain\r\n           names lowercased            │
    │   Connection: close\r\n               ← always added                 │
    │   \r\n                                ← end of head                  │
    │   hello                               ← body, verbatim               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Rules:

- The version is always HTTP/1.1, the reason phrase comes from the status.
- Header names go out lowercased: "Content-Length" is written as
  "content-length". Two names differing only in case are one header; the
  last value wins, at the position of the first.
- A header whose value is "" is not written. Handlers use this to say
  "do not send this header".
- The server closes every connection after one response, so it always
  writes "Connection: close" itself and ignores a Connection header set by
  the handler.
- Nothing is added automatically: no Date, no Server, no Content-Length.
  A handler that wants Content-Length sets it.

The whole response is built in memory first and then written with a single
write(): the client gets either the complete response or a closed socket.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Union

from .status_codes import HTTPStatus, reason_phrase


HTTP_VERSION = "HTTP/1.1"
CONNECTION_CLOSE = "Connection: close"


@dataclass
class HTTPResponse:
    """
    A response ready to be serialized.

    Attributes:
        status: Status code. Any int works; HTTPStatus members are ints.
        headers: Header name → value, written lowercased in insertion
                 order. Empty values are skipped on the wire.
        body: Raw body bytes.
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def reason(self) -> str:
        """Canonical reason phrase for the status code."""
        return reason_phrase(self.status)

    @property
    def status_line(self) -> str:
        """Status line without CRLF, e.g. ``"HTTP/1.1 404 Not Found"``."""
        return f"{HTTP_VERSION} {int(self.status)} {self.reason}"

    def set_header(self, name: str, value: Union[str, int]) -> "HTTPResponse":
        """
        Set a header and return self for chaining:

            HTTPResponse(200).set_header("Content-Length", 0)
        """
        self.headers[name] = str(value)
        return self

    def to_bytes(self) -> bytes:
        """Serialize status line, headers and body to wire bytes."""
        fields: Dict[str, str] = {}
        for name, value in self.headers.items():
            name = name.lower()
            if not value or name == "connection":
                continue
            fields[name] = value

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in fields.items())

        lines.append(CONNECTION_CLOSE)
        lines.append("")

        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return head + self.body


class ResponseSerializer:
    """
    Writes HTTPResponse objects onto a binary stream.

    Only I/O errors from the writer propagate; a response is always
    serializable.
    """

    def write(self, response: HTTPResponse, writer: BinaryIO) -> int:
        """
        Write one response and flush the writer.

        Args:
            response: The response to send.
            writer: Binary stream, e.g. ``socket.makefile("wb")``.

        Returns:
            Number of bytes written.

        Raises:
            OSError: If the underlying write or flush fails.
        """
        data = response.to_bytes()
        writer.write(data)
        writer.flush()
        return len(data)


def write_response(response: HTTPResponse, writer: BinaryIO) -> int:
    """Module-level shortcut for ``ResponseSerializer().write()``."""
    return ResponseSerializer().write(response, writer)


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================
#
# The server itself only ever needs bodiless responses: 400 for parse errors
# and 500 when a handler breaks its contract. Handlers use the same helpers.
#

def empty_response(status: int) -> HTTPResponse:
    """A response with no body and ``Content-Length: 0``."""
    return HTTPResponse(status=status, headers={"Content-Length": "0"})


def bad_request() -> HTTPResponse:
    return empty_response(HTTPStatus.BAD_REQUEST)


def not_found() -> HTTPResponse:
    return empty_response(HTTPStatus.NOT_FOUND)


def method_not_allowed(allowed: str = "GET") -> HTTPResponse:
    """405 response with an ``Allow`` header listing the accepted methods."""
    response = empty_response(HTTPStatus.METHOD_NOT_ALLOWED)
    response.headers["Allow"] = allowed
    return response


def internal_error() -> HTTPResponse:
    return empty_response(HTTPStatus.INTERNAL_SERVER_ERROR)
