"""
=============================================================================
FIXED-SIZE THREAD POOL
=============================================================================

N long-lived worker threads pulling tasks from one shared queue.

=============================================================================
WHY A FIXED POOL?
=============================================================================

Thread-per-connection is the simplest model, but it puts no limit on how
many requests run at once:

    for conn in accept_loop():
        Thread(target=serve, args=(conn,)).start()    # 10k clients, 10k threads

A fixed pool bounds concurrency at exactly N. When all N workers are busy,
new tasks wait in the queue until a worker frees up:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          ThreadPool(N=3)                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   submit() ──► ┌──────────────────────────┐                          │
    │                │ queue.Queue (unbounded)  │                          │
    │                │  [task] [task] [task] …  │                          │
    │                └────────────┬─────────────┘                          │
    │                             │ get()                                  │
    │              ┌──────────────┼──────────────┐                         │
    │              ▼              ▼              ▼                         │
    │         ┌─────────┐    ┌─────────┐    ┌─────────┐                    │
    │         │Worker-0 │    │Worker-1 │    │Worker-2 │                    │
    │         │  BUSY   │    │  BUSY   │    │  IDLE   │                    │
    │         └─────────┘    └─────────┘    └─────────┘                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The queue has no size limit: a burst of connections is absorbed in memory
instead of being rejected. The pool never grows or shrinks.

=============================================================================
POISON PILLS
=============================================================================

shutdown() puts one None per worker on the queue. A worker that gets None
leaves its loop. Because the queue is FIFO, every task submitted before
shutdown() runs first.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"        # Waiting for a task
    BUSY = "busy"        # Running a task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """A deferred call: ``func(*args, **kwargs)``."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread: take a task, run it, repeat until a poison pill.

    A task that raises is logged and counted; the worker keeps going.
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        # daemon=True: a stuck worker does not keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()
        waited = start_time - task.submitted_at

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} finished task in "
                f"{time.time() - start_time:.3f}s (queued {waited:.3f}s)"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Exactly ``size`` worker threads sharing one unbounded task queue.

    Usage:
        pool = ThreadPool(size=4)
        pool.start()
        pool.submit(worker.serve, args=(conn,))
        ...
        pool.shutdown(wait=True)
    """

    def __init__(self, size: int = 4):
        """
        Args:
            size: Number of worker threads, and so the maximum number of
                  tasks running at the same time. Must be >= 1.
        """
        if size < 1:
            raise ValueError(f"Thread pool size must be >= 1, got {size}")

        self.size = size
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False

    def start(self):
        """Create and start all worker threads. Idempotent."""
        with self._lock:
            if self._started:
                return
            if self._shutdown:
                raise RuntimeError("Thread pool was shut down")

            logger.info(f"Starting thread pool with {self.size} workers")
            for worker_id in range(self.size):
                worker = Worker(self._task_queue, worker_id)
                self._workers.append(worker)
                worker.start()
            self._started = True

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None):
        """
        Queue ``func(*args, **kwargs)`` for a worker. Never blocks.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        with self._lock:
            if not self._started:
                raise RuntimeError("Thread pool not started")
            if self._shutdown:
                raise RuntimeError("Thread pool is shutting down")

            # Queued under the lock so no task lands behind the stop sentinels
            self._task_queue.put(Task(func=func, args=args, kwargs=kwargs or {}))

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Join the worker threads. Queued tasks always run before
                  the workers exit.
            timeout: Upper bound in seconds for the whole join; None waits
                     as long as it takes.
        """
        with self._lock:
            if not self._started or self._shutdown:
                return
            self._shutdown = True
            logger.info("Shutting down thread pool...")
            for _ in self._workers:
                self._task_queue.put(None)

        if wait:
            deadline = None if timeout is None else time.time() + timeout
            for worker in self._workers:
                remaining = None if deadline is None else max(0.0, deadline - time.time())
                worker.join(remaining)
                if worker.is_alive():
                    logger.warning(f"Worker {worker.worker_id} did not stop in time")

        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def queue_size(self) -> int:
        """Tasks waiting for a free worker (approximate, see Queue.qsize)."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.queue_size,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
