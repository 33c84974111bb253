"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking and concurrency half of the server. Nothing in here knows
what a handler does with a request.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Binds, listens and runs the accept() loop                        │
    │  • Wraps each client socket in a Connection                         │
    │  • Stops on shutdown(), SIGINT or SIGTERM                           │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ dispatch(conn)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          DISPATCHER                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • "pool": fixed ThreadPool, unbounded FIFO queue                   │
    │  • "thread": one thread per connection                              │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ worker.serve(conn)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                       CONNECTION WORKER                              │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Parse the head, call the handler, write one response            │
    │  • Close gracefully and emit a ConnectionOutcome                    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState
from .dispatcher import DispatchPolicy, Dispatcher
from .socket_server import SocketServer
from .thread_pool import ThreadPool
from .worker import ConnectionWorker, Exchange

__all__ = [
    "SocketServer",      # Accept loop
    "Connection",        # One client socket plus its state machine
    "ConnectionState",
    "ConnectionWorker",  # parse → handle → write → close
    "Exchange",
    "Dispatcher",        # Schedules worker.serve(conn)
    "DispatchPolicy",
    "ThreadPool",
]
