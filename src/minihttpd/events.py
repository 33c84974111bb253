"""
=============================================================================
CONNECTION OUTCOME EVENTS
=============================================================================

The core does not write access logs itself. When a connection finishes, the
worker builds a ConnectionOutcome and hands it to a sink supplied by
whoever created the server:

    ┌──────────────┐   ConnectionOutcome   ┌─────────────────────────────┐
    │    Worker    │ ────────────────────► │  sink(outcome)              │
    └──────────────┘                       │   - log_outcome (default)   │
                                           │   - a list.append in tests  │
                                           │   - a metrics counter       │
                                           └─────────────────────────────┘

Exactly one outcome is emitted per accepted connection, whatever happened:

    status=200, error_kind=None            handled normally
    status=400, error_kind="MissingPath"   parse failure, 400 written
    status=500, error_kind="HandlerError"  handler raised, 500 written
    status=None, error_kind="IOError"      read failed, nothing written
    status=200, error_kind="IOError"       write failed mid-response

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional


access_logger = logging.getLogger("minihttpd.access")


@dataclass
class ConnectionOutcome:
    """
    Result of serving one connection.

    Attributes:
        connection_id: Short id of the connection, also used in log lines.
        peer: Client address as "ip:port", or "-" when unknown.
        status: Status code written (or attempted), None if no response.
        error_kind: Name of the failure, None on success.
        error: Human-readable error message, None on success.
        method: Raw method token, "-" if the request did not parse.
        path: Request path, "-" if the request did not parse.
        bytes_sent: Bytes of response written to the socket.
        duration_ms: Time from accept to close.
    """

    connection_id: str
    peer: str
    status: Optional[int] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None
    method: str = "-"
    path: str = "-"
    bytes_sent: int = 0
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """
        Combined-log style line:

            127.0.0.1:53422 - - [19/Oct/2026:10:00:00 +0000] "GET /a.txt" 200 12 0.41ms
        """
        status = self.status if self.status is not None else "-"
        line = (
            f'{self.peer} - - [{time.strftime("%d/%b/%Y:%H:%M:%S %z")}] '
            f'"{self.method} {self.path}" {status} {self.bytes_sent} '
            f'{self.duration_ms:.2f}ms'
        )
        if self.error_kind:
            line += f" error={self.error_kind}"
        return line


OutcomeSink = Callable[[ConnectionOutcome], None]


def log_outcome(outcome: ConnectionOutcome) -> None:
    """Default sink: one text access line per connection."""
    access_logger.info(outcome.to_text())


def make_logging_sink(log_format: str = "text", level: int = logging.INFO) -> OutcomeSink:
    """
    Build an access-log sink.

    Args:
        log_format: "text" for combined-log lines, "json" for one JSON
                    object per line (for log aggregators).
        level: Level access lines are logged at.
    """
    if log_format == "json":
        def sink(outcome: ConnectionOutcome) -> None:
            access_logger.log(level, json.dumps(outcome.to_dict()))
    else:
        def sink(outcome: ConnectionOutcome) -> None:
            access_logger.log(level, outcome.to_text())
    return sink


def discard_outcome(outcome: ConnectionOutcome) -> None:
    """Sink that drops every event."""
