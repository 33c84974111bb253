"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All server options in one dataclass, with defaults that match a plain
``python -m minihttpd``: all interfaces, port 8000, four workers, files
served from the current directory.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m minihttpd --port 3000                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── MINIHTTPD_PORT=3000 python -m minihttpd                    │
    │                                                                      │
    │   3. Defaults in ServerConfig                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

validate() runs once at startup and raises ValueError for anything that
would only fail later, deep inside a worker thread.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


POLICIES = ("pool", "thread")
LOG_FORMATS = ("text", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    Development:
        ServerConfig(
            host="127.0.0.1",    # Localhost only
            port=8080,
            log_level="DEBUG",
        )

    Tests:
        ServerConfig(host="127.0.0.1", port=0)    # OS picks a free port
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8000
    """The port to listen on. 0 lets the OS choose one."""

    backlog: int = 128
    """
    Maximum number of connections the kernel queues before accept().
    Separate from the dispatcher queue, which has no limit.
    """

    timeout: Optional[float] = None
    """
    Read/write timeout for client sockets, in seconds.
    None blocks forever: a client that never finishes its request head
    holds its worker until it disconnects.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    max_concurrency: int = 4
    """Worker threads for the "pool" policy. Ignored by "thread"."""

    dispatch_policy: str = "pool"
    """
    How accepted connections are scheduled.
    - "pool" - max_concurrency workers, unbounded FIFO queue
    - "thread" - one new thread per connection
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_line_length: int = 64 * 1024
    """Longest request or header line accepted, in bytes."""

    root_dir: str = "."
    """Directory served by the file handler."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """
    Access log format: 'text' or 'json'.
    JSON is easier for log aggregators, text for humans.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        MINIHTTPD_HOST       Bind address (default: 0.0.0.0)
        MINIHTTPD_PORT       Port (default: 8000)
        MINIHTTPD_WORKERS    Pool size (default: 4)
        MINIHTTPD_POLICY     pool or thread (default: pool)
        MINIHTTPD_TIMEOUT    Client socket timeout in seconds (default: none)
        MINIHTTPD_ROOT       Served directory (default: .)
        MINIHTTPD_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        """
        timeout = os.getenv("MINIHTTPD_TIMEOUT")
        return cls(
            host=os.getenv("MINIHTTPD_HOST", "0.0.0.0"),
            port=int(os.getenv("MINIHTTPD_PORT", "8000")),
            max_concurrency=int(os.getenv("MINIHTTPD_WORKERS", "4")),
            dispatch_policy=os.getenv("MINIHTTPD_POLICY", "pool"),
            timeout=float(timeout) if timeout else None,
            root_dir=os.getenv("MINIHTTPD_ROOT", "."),
            log_level=os.getenv("MINIHTTPD_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Check every value, raising ValueError for the first bad one.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 0:
            raise ValueError("backlog must be >= 0")

        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")

        if self.dispatch_policy not in POLICIES:
            raise ValueError(
                f"Unknown dispatch_policy {self.dispatch_policy!r}, "
                f"expected one of {', '.join(POLICIES)}"
            )

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_line_length < 1:
            raise ValueError("max_line_length must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log_level {self.log_level!r}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Unknown log_format {self.log_format!r}, "
                f"expected one of {', '.join(LOG_FORMATS)}"
            )
