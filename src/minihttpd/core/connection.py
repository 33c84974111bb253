"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket: buffered line reading for the parser, a
writer for the serializer, a printable peer address for logs, and the
per-connection state machine.

=============================================================================
ONE REQUEST, THEN CLOSE
=============================================================================

Every connection carries exactly one request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept → read head → handle → write response → close               │
    │                                                                      │
    │   No keep-alive, no pipelining. Anything the client sends after      │
    │   the head (a body, a second request) is read and discarded          │
    │   during close.                                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    ACCEPTED ──► PARSING ──┬──► HANDLING ─────► SERIALIZING ──┬──► CLOSED
                           │                        ▲          │      ▲
                           ├──► PARSE_FAILED ───────┘          │      │
                           │                                   │      │
                           └──► IO_FAILED ◄────────────────────┘      │
                                    │                                  │
                                    └──────────────────────────────────┘

CLOSED is terminal: nothing is retried and nothing is reopened.

=============================================================================
CLOSING A TCP CONNECTION PROPERLY
=============================================================================

If a socket is closed while unread bytes sit in its receive buffer (say the
body of a POST we never read), the kernel answers with RST instead of FIN.
An RST can make the client discard the response it already received. So
close() does:

    1. shutdown(SHUT_WR)   send FIN: "no more data from us"
    2. drain               read until the client closes, 0.5s at most in total
    3. close()             release the file descriptor

The reader and writer created by makefile() hold references to the socket;
they are closed first, otherwise the descriptor would stay open.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, List, Optional


logger = logging.getLogger(__name__)

DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Lifecycle states of a connection."""

    ACCEPTED = "accepted"          # Handed over by the listener
    PARSING = "parsing"            # Reading the request head
    HANDLING = "handling"          # Handler is running
    PARSE_FAILED = "parse_failed"  # Head was malformed, a 400 will be sent
    SERIALIZING = "serializing"    # Writing the response
    IO_FAILED = "io_failed"        # Read or write failed, abandon
    CLOSED = "closed"              # Socket released


@dataclass
class Connection:
    """
    A client connection owned by exactly one worker.

    Attributes:
        socket: The accepted client socket.
        address: Peer address as returned by accept().
        id: Short random id for log correlation.
        state: Current ConnectionState.
        history: Every state the connection has been in, in order.
        created_at: Time the connection was accepted.
        timeout: Socket timeout for reads and writes; None blocks forever.
    """

    socket: socket.socket
    address: Any = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.ACCEPTED
    history: List[ConnectionState] = field(default_factory=list, repr=False)
    created_at: float = field(default_factory=time.time)
    timeout: Optional[float] = None

    _reader: Optional[BinaryIO] = field(default=None, repr=False)
    _writer: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)
        self.history.append(self.state)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def peer(self) -> str:
        """
        Best-effort printable peer address.

        "ip:port" for TCP peers, "-" when the address is unknown (for
        example the unnamed end of a socketpair).
        """
        if isinstance(self.address, tuple) and len(self.address) >= 2:
            return f"{self.address[0]}:{self.address[1]}"
        return str(self.address) if self.address else "-"

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary reader over the socket, created on first use."""
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
        return self._reader

    @property
    def writer(self) -> BinaryIO:
        """Buffered binary writer over the socket, created on first use."""
        if self._writer is None:
            self._writer = self.socket.makefile("wb")
        return self._writer

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # STATE
    # =========================================================================

    def transition(self, state: ConnectionState) -> None:
        """Move to ``state`` and record it in the history."""
        if self.closed:
            raise RuntimeError(f"[{self.id}] Connection already closed")
        logger.debug(f"[{self.id}] {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection gracefully. Safe to call more than once.
        """
        if self.closed:
            return

        for stream in (self._writer, self._reader):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                pass  # Flushing into a dead socket

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        self.history.append(ConnectionState.CLOSED)
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self) -> None:
        """Discard unread input until EOF, for at most DRAIN_TIMEOUT in total."""
        deadline = time.time() + DRAIN_TIMEOUT
        try:
            while True:
                remaining = deadline - time.time()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                if not self.socket.recv(4096):
                    break
        except OSError:
            pass  # Includes socket.timeout

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
