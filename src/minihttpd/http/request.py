"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the bytes a client sends into a structured HTTPRequest, or raises one
of the ParseError subclasses from errors.py.

=============================================================================
WHAT WE READ
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST HEAD ON THE WIRE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /docs/index.html HTTP/1.1\r\n       ← request line             │
    │   ─┬─ ────────┬─────── ────┬───                                      │
    │    │          │            └── ignored (any extra tokens are)        │
    │    │          └── path: kept as an opaque string                     │
    │    └── method: letters, digits, "-", "_" and "."                     │
    │                                                                      │
    │   Host: example.com\r\n                   ← header lines             │
    │   Accept: */*\r\n                            split on first ": "     │
    │   \r\n                                    ← end of headers           │
    │                                                                      │
    │   (body)                                  ← never read               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The server answers exactly one request per connection and never reads a
body, so the parser stops as soon as it has consumed the blank line.

=============================================================================
PARSING ALGORITHM
=============================================================================

Single pass, one line at a time, no lookahead:

    1. readline()  → no bytes at all?        EmptyRequest
    2. split(" ")  → no method token?        MissingMethod
                   → no path token?          MissingPath
    3. readline() until "" or EOF:
           no ": " in the line?              MissingHeaderValue
           nothing before ": "?              MissingHeaderKey
           else headers[key] = value         (later duplicates win)
    4. validate method token and path URI   InvalidRequest

A missing blank line at EOF is tolerated: the headers read so far are kept.

Lines may end in CRLF or a bare LF. Lines must decode as UTF-8 and may not
be longer than max_line_length bytes.

=============================================================================
"""

import io
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Dict, Optional, Union
from urllib.parse import urlsplit

from .errors import (
    EmptyRequest,
    InvalidRequest,
    MissingHeaderKey,
    MissingHeaderValue,
    MissingMethod,
    MissingPath,
)


class Method(str, Enum):
    """
    Request methods the server knows by name.

    Any other well-formed method name parses as UNKNOWN; the raw
    token stays available as ``HTTPRequest.method_token``. Method names are
    case-sensitive, so ``get`` is UNKNOWN too.
    """

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


@dataclass
class HTTPRequest:
    """
    A parsed request: method, path and headers.

    Attributes:
        method: The request method. Strings are converted to Method.
        path: The request target exactly as sent ("/a/b?x=1#frag").
        headers: Header name → value. Names keep the case the client used.
        method_token: The raw method token from the request line.

    Two requests are equal when all four attributes are equal.
    """

    method: Method
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    method_token: str = ""

    def __post_init__(self):
        if not self.method_token:
            self.method_token = str(getattr(self.method, "value", self.method))
        if not isinstance(self.method, Method):
            self.method = Method(self.method)

    def get_header(self, name: str, default: str = "") -> str:
        """
        Look up a header ignoring case.

        The header mapping itself is case-preserving, so ``headers["host"]``
        misses when the client sent ``Host``. This helper does not.
        """
        if name in self.headers:
            return self.headers[name]
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default


class RequestParser:
    """
    Line-oriented parser for the request line and headers.

    Usage:
        parser = RequestParser()
        request = parser.parse(sock.makefile("rb"))

    The parser keeps no state between calls, so one instance can be shared
    by every worker thread.
    """

    # Letters, digits, "-", "_" and ".": enough for every registered method
    # name (VERSION-CONTROL, BASELINE-CONTROL, ...) and extension tokens
    METHOD_PATTERN = re.compile(r"^[A-Za-z0-9\-_.]+$")

    # RFC 3986: unreserved / gen-delims / sub-delims / "%"
    URI_PATTERN = re.compile(r"^[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+$")

    def __init__(self, max_line_length: int = 64 * 1024):
        """
        Args:
            max_line_length: Longest accepted line in bytes, not counting
                             the final "\\n". Longer lines raise
                             InvalidRequest.
        """
        self.max_line_length = max_line_length

    def parse(self, reader: BinaryIO) -> HTTPRequest:
        """
        Read one request head from a binary stream.

        Args:
            reader: Anything with ``readline(limit)`` returning bytes, e.g.
                    ``socket.makefile("rb")`` or ``io.BytesIO``.

        Returns:
            The parsed HTTPRequest.

        Raises:
            ParseError: One of its subclasses, see errors.py.
            OSError: If reading from the underlying stream fails.
        """
        # ---------------------------------------------------------------------
        # Request line
        # ---------------------------------------------------------------------
        request_line = self._read_line(reader)
        if request_line is None:
            raise EmptyRequest("Empty request")

        tokens = request_line.split(" ")
        method_token = tokens[0]
        if not method_token:
            raise MissingMethod("Missing method")
        if len(tokens) < 2 or not tokens[1]:
            raise MissingPath("Missing request path")
        path = tokens[1]

        # ---------------------------------------------------------------------
        # Headers
        # ---------------------------------------------------------------------
        headers = self._parse_headers(reader)

        # ---------------------------------------------------------------------
        # Build the request
        # ---------------------------------------------------------------------
        if not self.METHOD_PATTERN.match(method_token):
            raise InvalidRequest(f"Invalid method: {method_token!r}")
        self._check_uri(path)

        return HTTPRequest(
            method=Method(method_token),
            path=path,
            headers=headers,
            method_token=method_token,
        )

    def _parse_headers(self, reader: BinaryIO) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        while True:
            line = self._read_line(reader)
            if line is None or line == "":
                # EOF or the blank line: either way the head is over
                return headers

            key, separator, value = line.partition(": ")
            if not separator:
                raise MissingHeaderValue(f"Header without value: {line!r}")
            if not key:
                raise MissingHeaderKey(f"Header without name: {line!r}")
            headers[key] = value

    def _read_line(self, reader: BinaryIO) -> Optional[str]:
        """
        Read one line without its line ending.

        Returns:
            The decoded line, or None at end of stream.
        """
        raw = reader.readline(self.max_line_length + 1)
        if not raw:
            return None

        if len(raw) > self.max_line_length and not raw.endswith(b"\n"):
            raise InvalidRequest(f"Line exceeds {self.max_line_length} bytes")

        if raw.endswith(b"\n"):
            raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidRequest(f"Request is not valid UTF-8: {e}") from e

    def _check_uri(self, path: str) -> None:
        if not self.URI_PATTERN.match(path):
            raise InvalidRequest(f"Invalid request path: {path!r}")
        try:
            urlsplit(path)
        except ValueError as e:
            raise InvalidRequest(f"Invalid request path: {path!r}: {e}") from e


def parse_request(data: Union[bytes, BinaryIO], max_line_length: int = 64 * 1024) -> HTTPRequest:
    """
    Parse a request from raw bytes or a binary stream.

    Convenience wrapper around RequestParser, mostly for tests and tools:

        request = parse_request(b"GET / HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n")
    """
    if isinstance(data, (bytes, bytearray)):
        data = io.BytesIO(data)
    return RequestParser(max_line_length=max_line_length).parse(data)
