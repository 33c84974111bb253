"""
Unit tests for the connection worker and connection lifecycle.
"""

import io
import socket
import threading
import time

import pytest

from minihttpd.core.connection import Connection, ConnectionState
from minihttpd.core.worker import HANDLER_ERROR, IO_ERROR, ConnectionWorker
from minihttpd.events import discard_outcome
from minihttpd.handlers import GetOnlyHandler
from minihttpd.http import HTTPRequest, HTTPResponse, Method


OK_EMPTY = (
    b"HTTP/1.1 200 OK\r\n"
    b"content-length: 0\r\n"
    b"Connection: close\r\n"
    b"\r\n"
)

BAD_REQUEST = (
    b"HTTP/1.1 400 Bad Request\r\n"
    b"content-length: 0\r\n"
    b"Connection: close\r\n"
    b"\r\n"
)


class RecordingHandler:
    """Handler that remembers its requests and answers an empty 200."""

    def __init__(self):
        self.requests = []

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        self.requests.append(request)
        return HTTPResponse(status=200, headers={"Content-length": "0"})


def exploding_handler(request: HTTPRequest) -> HTTPResponse:
    raise RuntimeError("handler bug")


class BrokenWriter(io.RawIOBase):
    def writable(self):
        return True

    def write(self, data):
        raise BrokenPipeError("broken pipe")


class TestExchange:
    """Tests for parse → handle → serialize on plain streams."""

    def test_get_request(self):
        """Test a valid request produces the handler's response bytes."""
        handler = RecordingHandler()
        worker = ConnectionWorker(handler, sink=discard_outcome)
        out = io.BytesIO()

        exchange = worker.exchange(io.BytesIO(b"GET / HTTP/1.0\r\n\r\n"), out)

        assert out.getvalue() == OK_EMPTY
        assert exchange.error is None
        assert exchange.error_kind is None
        assert exchange.bytes_sent == len(OK_EMPTY)
        assert handler.requests == [HTTPRequest(Method.GET, "/")]

    def test_empty_input_is_400(self):
        """Test that an empty stream gets a 400 without calling the handler."""
        handler = RecordingHandler()
        worker = ConnectionWorker(handler, sink=discard_outcome)
        out = io.BytesIO()

        exchange = worker.exchange(io.BytesIO(b""), out)

        assert out.getvalue() == BAD_REQUEST
        assert exchange.request is None
        assert exchange.error_kind == "EmptyRequest"
        assert handler.requests == []

    @pytest.mark.parametrize("raw, kind", [
        (b"GET\r\n\r\n", "MissingPath"),
        (b" / HTTP/1.1\r\n\r\n", "MissingMethod"),
        (b"GET / HTTP/1.1\r\nHost\r\n\r\n", "MissingHeaderValue"),
        (b"GET / HTTP/1.1\r\n: x\r\n\r\n", "MissingHeaderKey"),
        (b"&&& /foo HTTP/1.1\r\n\r\n", "InvalidRequest"),
    ])
    def test_parse_errors_are_400(self, raw: bytes, kind: str):
        """Test that every parse failure becomes the same 400."""
        handler = RecordingHandler()
        worker = ConnectionWorker(handler, sink=discard_outcome)
        out = io.BytesIO()

        exchange = worker.exchange(io.BytesIO(raw), out)

        assert out.getvalue() == BAD_REQUEST
        assert exchange.error_kind == kind
        assert handler.requests == []

    def test_raising_handler_is_500(self):
        """Test that a handler exception becomes a 500."""
        worker = ConnectionWorker(exploding_handler, sink=discard_outcome)
        out = io.BytesIO()

        exchange = worker.exchange(io.BytesIO(b"GET / HTTP/1.1\r\n\r\n"), out)

        assert out.getvalue().startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
        assert exchange.error_kind == HANDLER_ERROR
        assert isinstance(exchange.error, RuntimeError)

    def test_handler_returning_wrong_type_is_500(self):
        """Test that a non-HTTPResponse return value becomes a 500."""
        worker = ConnectionWorker(lambda request: "oops", sink=discard_outcome)
        out = io.BytesIO()

        exchange = worker.exchange(io.BytesIO(b"GET / HTTP/1.1\r\n\r\n"), out)

        assert exchange.response.status == 500
        assert isinstance(exchange.error, TypeError)

    def test_write_error_propagates(self):
        """Test that exchange() leaves I/O errors to the caller."""
        worker = ConnectionWorker(GetOnlyHandler(), sink=discard_outcome)

        with pytest.raises(OSError):
            worker.exchange(io.BytesIO(b"GET / HTTP/1.1\r\n\r\n"), BrokenWriter())


class TestServe:
    """Tests for serving a real socket end to end."""

    def test_serve_success(self, connection_pair, read_all):
        """Test state history, response bytes and the outcome event."""
        events = []
        worker = ConnectionWorker(RecordingHandler(), sink=events.append)
        conn, client = connection_pair()

        client.sendall(b"GET /index.html HTTP/1.1\r\nHost: x\r\n\r\n")
        client.shutdown(socket.SHUT_WR)
        outcome = worker.serve(conn)

        assert read_all(client) == OK_EMPTY
        assert conn.history == [
            ConnectionState.ACCEPTED,
            ConnectionState.PARSING,
            ConnectionState.HANDLING,
            ConnectionState.SERIALIZING,
            ConnectionState.CLOSED,
        ]
        assert events == [outcome]
        assert outcome.status == 200
        assert outcome.ok
        assert outcome.method == "GET"
        assert outcome.path == "/index.html"
        assert outcome.bytes_sent == len(OK_EMPTY)
        assert outcome.connection_id == conn.id

    def test_serve_parse_failure(self, connection_pair, read_all):
        """Test that a malformed head is answered with 400 and reported."""
        events = []
        handler = RecordingHandler()
        worker = ConnectionWorker(handler, sink=events.append)
        conn, client = connection_pair()

        client.sendall(b"GET\r\n\r\n")
        client.shutdown(socket.SHUT_WR)
        worker.serve(conn)

        assert read_all(client) == BAD_REQUEST
        assert conn.history == [
            ConnectionState.ACCEPTED,
            ConnectionState.PARSING,
            ConnectionState.PARSE_FAILED,
            ConnectionState.SERIALIZING,
            ConnectionState.CLOSED,
        ]
        assert handler.requests == []
        assert events[0].status == 400
        assert events[0].error_kind == "MissingPath"
        assert events[0].method == "-"

    def test_serve_client_closed_early(self, connection_pair, read_all):
        """Test that a client closing without sending anything gets a 400."""
        events = []
        worker = ConnectionWorker(RecordingHandler(), sink=events.append)
        conn, client = connection_pair()

        client.shutdown(socket.SHUT_WR)
        worker.serve(conn)

        assert read_all(client) == BAD_REQUEST
        assert events[0].error_kind == "EmptyRequest"

    def test_serve_handler_failure(self, connection_pair, read_all):
        """Test that a raising handler produces 500 and HandlerError."""
        events = []
        worker = ConnectionWorker(exploding_handler, sink=events.append)
        conn, client = connection_pair()

        client.sendall(b"GET / HTTP/1.1\r\n\r\n")
        client.shutdown(socket.SHUT_WR)
        worker.serve(conn)

        assert read_all(client).startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
        assert events[0].status == 500
        assert events[0].error_kind == HANDLER_ERROR
        assert "handler bug" in events[0].error

    def test_serve_read_timeout(self, connection_pair, read_all):
        """Test that a stalled client is dropped without a response."""
        events = []
        handler = RecordingHandler()
        worker = ConnectionWorker(handler, sink=events.append)
        conn, client = connection_pair(timeout=0.2)

        client.sendall(b"GET / HTTP/1.1\r\n")  # head never finishes
        worker.serve(conn)

        assert read_all(client) == b""
        assert ConnectionState.IO_FAILED in conn.history
        assert conn.state == ConnectionState.CLOSED
        assert handler.requests == []
        assert events[0].status is None
        assert events[0].error_kind == IO_ERROR

    def test_serve_never_raises_on_sink_error(self, connection_pair, read_all):
        """Test that a failing sink does not break serving."""
        def bad_sink(outcome):
            raise ValueError("sink down")

        worker = ConnectionWorker(RecordingHandler(), sink=bad_sink)
        conn, client = connection_pair()

        client.sendall(b"GET / HTTP/1.1\r\n\r\n")
        client.shutdown(socket.SHUT_WR)
        outcome = worker.serve(conn)

        assert outcome.status == 200
        assert read_all(client) == OK_EMPTY


class TestConnection:
    """Tests for the Connection wrapper."""

    def test_peer_formatting(self):
        """Test the printable peer address."""
        a, b = socket.socketpair()
        try:
            assert Connection(socket=a, address=("10.0.0.1", 5555)).peer == "10.0.0.1:5555"
            assert Connection(socket=b).peer == "-"
        finally:
            a.close()
            b.close()

    def test_close_is_idempotent(self):
        """Test that closing twice records CLOSED once."""
        a, b = socket.socketpair()
        conn = Connection(socket=a)
        try:
            conn.close()
            conn.close()
        finally:
            b.close()

        assert conn.closed
        assert conn.history.count(ConnectionState.CLOSED) == 1

    def test_no_transition_after_close(self):
        """Test that CLOSED is terminal."""
        a, b = socket.socketpair()
        conn = Connection(socket=a)
        conn.close()
        b.close()

        with pytest.raises(RuntimeError):
            conn.transition(ConnectionState.PARSING)

    def test_context_manager_closes(self):
        """Test that leaving the with-block closes the connection."""
        a, b = socket.socketpair()
        with Connection(socket=a) as conn:
            assert conn.state == ConnectionState.ACCEPTED
        b.close()

        assert conn.closed

    def test_close_bounded_against_chatty_peer(self):
        """Test that a peer that never stops sending cannot stall close()."""
        a, b = socket.socketpair()
        conn = Connection(socket=a)
        stop = threading.Event()

        def flood():
            try:
                while not stop.is_set():
                    b.sendall(b"x" * 1024)
            except OSError:
                pass  # Our end is closed

        sender = threading.Thread(target=flood, daemon=True)
        sender.start()
        try:
            started = time.time()
            conn.close()
            elapsed = time.time() - started
        finally:
            stop.set()
            sender.join(5.0)
            b.close()

        assert conn.closed
        assert elapsed < 2.0
