"""
=============================================================================
CONNECTION DISPATCHER
=============================================================================

Decides WHEN an accepted connection gets served. The worker decides HOW;
the listener only accepts. Two admission policies are available:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  POOL (default)                                                      │
    │  ─────────────────────────────────────────────────────────────────  │
    │  max_concurrency long-lived threads + one unbounded queue.           │
    │  At most N connections are served at once; the rest wait in the     │
    │  queue, in accept order, until a worker frees up.                    │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │  THREAD_PER_CONNECTION                                               │
    │  ─────────────────────────────────────────────────────────────────  │
    │  A fresh thread for every connection. No queueing and no cap;        │
    │  max_concurrency is ignored.                                         │
    └─────────────────────────────────────────────────────────────────────┘

Either way the per-connection contract is the same: worker.serve(conn) runs
exactly once per accepted connection, on a thread that owns that connection
until it is closed.

=============================================================================
"""

import logging
import threading
from enum import Enum
from typing import Optional, Set

from .connection import Connection
from .thread_pool import ThreadPool
from .worker import ConnectionWorker


logger = logging.getLogger(__name__)


class DispatchPolicy(Enum):
    POOL = "pool"
    THREAD_PER_CONNECTION = "thread"


class Dispatcher:
    """
    Schedules ``worker.serve(conn)`` for every dispatched connection.

    Usage:
        dispatcher = Dispatcher(worker, max_concurrency=8)
        dispatcher.start()
        socket_server.start(dispatcher.dispatch)    # blocks
        dispatcher.shutdown()
    """

    def __init__(
        self,
        worker: ConnectionWorker,
        max_concurrency: int = 4,
        policy: DispatchPolicy = DispatchPolicy.POOL,
    ):
        """
        Args:
            worker: Serves each connection.
            max_concurrency: Pool size for the POOL policy. Must be >= 1.
            policy: Admission policy, a DispatchPolicy or its value string.

        Raises:
            ValueError: For max_concurrency < 1 or an unknown policy.
        """
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")

        self.worker = worker
        self.max_concurrency = max_concurrency
        self.policy = DispatchPolicy(policy)

        self._pool: Optional[ThreadPool] = None
        if self.policy is DispatchPolicy.POOL:
            self._pool = ThreadPool(size=max_concurrency)

        # Live threads of the THREAD_PER_CONNECTION policy, for shutdown()
        self._threads: Set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def pool(self) -> Optional[ThreadPool]:
        """The worker pool (POOL policy only)."""
        return self._pool

    def start(self) -> None:
        if self._pool is not None:
            self._pool.start()
        logger.debug(
            f"Dispatcher started: policy={self.policy.value} "
            f"max_concurrency={self.max_concurrency}"
        )

    def dispatch(self, conn: Connection) -> None:
        """
        Schedule a connection. Returns immediately.

        A connection dispatched after shutdown() is closed unserved.
        """
        if self._closed:
            logger.warning(f"[{conn.id}] Dispatcher closed, dropping connection from {conn.peer}")
            conn.close()
            return

        if self._pool is not None:
            try:
                self._pool.submit(self.worker.serve, args=(conn,))
            except RuntimeError as e:
                # Lost the race against shutdown()
                logger.warning(f"[{conn.id}] {e}, dropping connection from {conn.peer}")
                conn.close()
            return

        thread = threading.Thread(
            target=self._run_in_thread,
            args=(conn,),
            name=f"Conn-{conn.id}",
            daemon=True,
        )
        with self._lock:
            self._threads.add(thread)
        thread.start()

    def _run_in_thread(self, conn: Connection) -> None:
        try:
            self.worker.serve(conn)
        finally:
            with self._lock:
                self._threads.discard(threading.current_thread())

    @property
    def active_threads(self) -> int:
        """Connection threads still running (THREAD_PER_CONNECTION only)."""
        with self._lock:
            return len(self._threads)

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop taking connections and let the in-flight ones finish.

        Args:
            wait: Block until in-flight and queued connections are served.
            timeout: Upper bound in seconds for the wait; None is unbounded.
        """
        self._closed = True

        if self._pool is not None:
            self._pool.shutdown(wait=wait, timeout=timeout)
            return

        if wait:
            with self._lock:
                threads = list(self._threads)
            for thread in threads:
                thread.join(timeout)
