"""
=============================================================================
CONNECTION WORKER
=============================================================================

The worker turns one accepted connection into exactly one response,
whatever the client sent and whatever the handler did.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ConnectionWorker.serve()                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   PARSING       parser.parse(conn.reader)                            │
    │      │                                                               │
    │      ├── ParseError ──► PARSE_FAILED   response = 400                │
    │      ├── OSError ─────► IO_FAILED      nothing to answer, close      │
    │      │                                                               │
    │      ▼                                                               │
    │   HANDLING      response = handler(request)                          │
    │      │          (raises? log traceback, response = 500)              │
    │      ▼                                                               │
    │   SERIALIZING   serializer.write(response, conn.writer)              │
    │      │                                                               │
    │      └── OSError ─────► IO_FAILED                                    │
    │                                                                      │
    │   CLOSED        conn.close(), sink(outcome)                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

serve() never raises. Parse errors are the client's fault and are only
logged at DEBUG; I/O errors are logged at WARNING with the peer address;
a raising handler is a bug and is logged with its traceback.

=============================================================================
"""

import logging
import time
from dataclasses import dataclass
from typing import BinaryIO, Optional, Tuple

from ..events import ConnectionOutcome, OutcomeSink, log_outcome
from ..handler import Handler
from ..http.errors import ParseError
from ..http.request import HTTPRequest, RequestParser
from ..http.response import HTTPResponse, ResponseSerializer, bad_request, internal_error
from .connection import Connection, ConnectionState


logger = logging.getLogger(__name__)

HANDLER_ERROR = "HandlerError"
IO_ERROR = "IOError"


@dataclass
class Exchange:
    """
    One request/response round on a pair of streams.

    Attributes:
        request: The parsed request, None if parsing failed.
        response: The response that was (or would be) written.
        error: The ParseError or handler exception, None on success.
        bytes_sent: Bytes written to the writer.
    """

    request: Optional[HTTPRequest]
    response: HTTPResponse
    error: Optional[Exception] = None
    bytes_sent: int = 0

    @property
    def error_kind(self) -> Optional[str]:
        if self.error is None:
            return None
        if isinstance(self.error, ParseError):
            return self.error.kind
        return HANDLER_ERROR


class ConnectionWorker:
    """
    Serves single connections: parse, handle, serialize, close.

    One ConnectionWorker is shared by all pool threads. It holds only
    references to stateless collaborators, so serve() may run concurrently.

    Usage:
        worker = ConnectionWorker(handler=FileHandler("./public"))
        outcome = worker.serve(conn)     # blocks until conn is closed
    """

    def __init__(
        self,
        handler: Handler,
        parser: Optional[RequestParser] = None,
        serializer: Optional[ResponseSerializer] = None,
        sink: OutcomeSink = log_outcome,
    ):
        """
        Args:
            handler: Produces a response for each parsed request.
            parser: Request parser; a default RequestParser if omitted.
            serializer: Response serializer; a default one if omitted.
            sink: Receives one ConnectionOutcome per served connection.
        """
        self.handler = handler
        self.parser = parser or RequestParser()
        self.serializer = serializer or ResponseSerializer()
        self.sink = sink

    # =========================================================================
    # STREAM LEVEL
    # =========================================================================

    def exchange(self, reader: BinaryIO, writer: BinaryIO) -> Exchange:
        """
        Run parse → handle → serialize on bare streams.

        No connection state, no closing and no outcome event; used by
        tests and by callers that manage their own transport.

        Raises:
            OSError: If reading or writing fails.
        """
        try:
            request = self.parser.parse(reader)
        except ParseError as e:
            exchange = Exchange(request=None, response=bad_request(), error=e)
        else:
            response, error = self._handle(request)
            exchange = Exchange(request=request, response=response, error=error)

        exchange.bytes_sent = self.serializer.write(exchange.response, writer)
        return exchange

    # =========================================================================
    # CONNECTION LEVEL
    # =========================================================================

    def serve(self, conn: Connection) -> ConnectionOutcome:
        """
        Serve one connection end to end and close it.

        Returns:
            The outcome that was also passed to the sink.
        """
        start_time = time.time()
        outcome = ConnectionOutcome(connection_id=conn.id, peer=conn.peer)

        try:
            self._serve(conn, outcome)
        except Exception as e:
            logger.exception(f"[{conn.id}] Unexpected error serving {conn.peer}: {e}")
            outcome.error_kind = outcome.error_kind or type(e).__name__
            outcome.error = outcome.error or str(e)
        finally:
            conn.close()
            outcome.duration_ms = (time.time() - start_time) * 1000
            self._emit(outcome)

        return outcome

    def _serve(self, conn: Connection, outcome: ConnectionOutcome) -> None:
        # ─────────────────────────────────────────────────────────────────
        # READ AND PARSE
        # ─────────────────────────────────────────────────────────────────
        conn.transition(ConnectionState.PARSING)
        try:
            request = self.parser.parse(conn.reader)
        except ParseError as e:
            conn.transition(ConnectionState.PARSE_FAILED)
            logger.debug(f"[{conn.id}] Bad request from {conn.peer}: {e.kind}: {e}")
            outcome.error_kind = e.kind
            outcome.error = str(e)
            response = bad_request()
        except OSError as e:
            conn.transition(ConnectionState.IO_FAILED)
            logger.warning(f"[{conn.id}] Read from {conn.peer} failed: {e}")
            outcome.error_kind = IO_ERROR
            outcome.error = str(e)
            return
        else:
            # ─────────────────────────────────────────────────────────────
            # HANDLE
            # ─────────────────────────────────────────────────────────────
            outcome.method = request.method_token
            outcome.path = request.path
            conn.transition(ConnectionState.HANDLING)
            response, error = self._handle(request)
            if error is not None:
                outcome.error_kind = HANDLER_ERROR
                outcome.error = str(error)

        # ─────────────────────────────────────────────────────────────────
        # SERIALIZE AND WRITE
        # ─────────────────────────────────────────────────────────────────
        conn.transition(ConnectionState.SERIALIZING)
        outcome.status = int(response.status)
        try:
            outcome.bytes_sent = self.serializer.write(response, conn.writer)
        except OSError as e:
            conn.transition(ConnectionState.IO_FAILED)
            logger.warning(f"[{conn.id}] Write to {conn.peer} failed: {e}")
            outcome.error_kind = IO_ERROR
            outcome.error = str(e)

    def _handle(self, request: HTTPRequest) -> Tuple[HTTPResponse, Optional[Exception]]:
        """
        Call the handler.

        Handlers must not raise. One that does (or returns something other
        than an HTTPResponse) gets its traceback logged and a 500 sent.
        """
        try:
            response = self.handler(request)
            if not isinstance(response, HTTPResponse):
                raise TypeError(
                    f"Handler returned {type(response).__name__}, expected HTTPResponse"
                )
            return response, None
        except Exception as e:
            logger.exception(
                f"Handler failed for {request.method_token} {request.path}: {e}"
            )
            return internal_error(), e

    def _emit(self, outcome: ConnectionOutcome) -> None:
        try:
            self.sink(outcome)
        except Exception as e:
            logger.exception(f"[{outcome.connection_id}] Outcome sink failed: {e}")
