"""
=============================================================================
THREAD POOL
=============================================================================

A bounded set of worker threads consuming connections from one queue.
The event loop only enqueues; it never waits on a client.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   event loop  ── submit(handle, (conn,)) ──┐                        │
    │                                            ▼                        │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │  TASK QUEUE  (queue.Queue, maxsize=queue_size)              │   │
    │   │  [Task] [Task] [Task] ...                                   │   │
    │   └──────────────────────┬──────────────────────────────────────┘   │
    │                          │ get()                                    │
    │                          ▼                                          │
    │   ┌──────────┐ ┌──────────┐ ┌──────────┐        ┌──────────┐        │
    │   │ Worker-0 │ │ Worker-1 │ │ Worker-2 │  ...   │ Worker-N │        │
    │   └──────────┘ └──────────┘ └──────────┘        └──────────┘        │
    │    min_workers started up front; one more is added on submit when  │
    │    every worker is busy, up to max_workers                          │
    └─────────────────────────────────────────────────────────────────────┘

A full queue rejects the task (submit() returns False) instead of blocking
the event loop. The caller decides what to do with the rejected work.

=============================================================================
SHUTDOWN (poison pills)
=============================================================================

    pool.shutdown()
        └─ queue.join()               wait for queued tasks to finish
        └─ queue.put(None) per worker a None task tells a worker to exit
        └─ worker.join()

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


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

    A task that raises is logged with its traceback and counted as failed;
    the worker keeps going.
    """

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        idle_timeout: float = 1.0,
    ):
        """
        Args:
            task_queue: Queue to pull tasks from.
            worker_id: Identifier used in the thread name and logs.
            idle_timeout: Seconds between shutdown checks while idle.
        """
        # daemon=True: a stuck client cannot keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            if task is None:
                break

            try:
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
            elapsed = time.time() - start_time
            logger.debug(f"Worker {self.worker_id} completed task in {elapsed:.3f}s")
            self.tasks_completed += 1

        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Fixed-bound pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()

        if not pool.submit(handle_connection, args=(conn,)):
            conn.close()     # queue full

        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        """
        Args:
            min_workers: Workers started by start().
            max_workers: Upper bound on workers.
            queue_size: Maximum queued (not yet running) tasks.
            idle_timeout: Seconds between a worker's shutdown checks.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=queue_size)

        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Protects _workers
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Start ``min_workers`` workers. Calling it again does nothing."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")

        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._started = True
        self._shutdown = False

    def _add_worker(self) -> Worker:
        """Start one more worker. Caller holds ``_lock``."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout,
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
    ) -> bool:
        """
        Queue a task without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")

        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put(task, block=False)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker if all are busy and work is waiting."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return

            busy_count = sum(1 for w in self._workers if w.state == WorkerState.BUSY)
            if busy_count == len(self._workers) and self._task_queue.qsize() > 0:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop all workers.

        Args:
            wait: Let queued tasks finish first. With False, queued tasks
                  are abandoned.
            timeout: Upper bound, in seconds, on waiting for the queue.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            if timeout:
                deadline = time.time() + timeout
                while self._task_queue.unfinished_tasks:
                    if time.time() > deadline:
                        logger.warning("Shutdown timeout, forcing stop")
                        break
                    time.sleep(0.1)
            else:
                self._task_queue.join()

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.shutdown()
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                pass  # Worker still sees its shutdown flag

        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def pending(self) -> int:
        """Tasks queued but not yet picked up."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts, for logging."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self.pending,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
