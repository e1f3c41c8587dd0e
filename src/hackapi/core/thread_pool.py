"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Connections are served by a fixed set of worker threads that grows on
demand, up to a ceiling:

    accept loop ──submit()──► ┌──────────────────┐
                              │   task queue     │ bounded
                              └────────┬─────────┘
                         ┌─────────────┼─────────────┐
                         ▼             ▼             ▼
                     Worker-0      Worker-1  ...  Worker-N     N < max_workers

    - start() launches min_workers threads.
    - submit() adds a worker when every existing one is busy and work is
      waiting, until max_workers is reached.
    - A full queue makes submit() return False; the server answers 503.
    - shutdown() drains the queue, then sends one None ("poison pill") per
      worker.
    - A task that is never run (it waited past its timeout, or was still
      queued when shutdown gave up) gets its on_drop callback instead. The
      server uses it to close the connection the task would have served.

Connection handling is I/O bound (socket reads and writes release the
GIL), so threads give real concurrency here.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A queued call. Tasks that waited longer than ``timeout`` are dropped."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    timeout: Optional[float] = None
    on_drop: Optional[Callable[[], Any]] = None
    submitted_at: float = field(default_factory=time.time)

    @property
    def expired(self) -> bool:
        return self.timeout is not None and time.time() - self.submitted_at > self.timeout

    def drop(self):
        """Run the on_drop callback, if any. Never raises."""
        if self.on_drop is None:
            return
        try:
            self.on_drop()
        except Exception as e:
            logger.exception(f"on_drop callback failed: {e}")


class Worker(threading.Thread):
    """Daemon thread that runs tasks from the shared queue until it gets None."""

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int, idle_timeout: float = 60.0):
        super().__init__(name=f"hackapi-worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0
        self._stop_event = threading.Event()

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")
        while not self._stop_event.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task):
        if task.expired:
            logger.warning(
                f"Dropping task that waited {time.time() - task.submitted_at:.2f}s "
                f"(timeout {task.timeout}s)"
            )
            self.tasks_failed += 1
            task.drop()
            return

        self.state = WorkerState.BUSY
        started = time.time()
        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
        except Exception as e:
            logger.exception(f"Worker {self.worker_id} task failed after {time.time() - started:.3f}s: {e}")
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        self._stop_event.set()


class ThreadPool:
    """
    Bounded, growable pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(handle, args=(conn,)):
            reject(conn)
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        max_queue_size: int = 100,
        idle_timeout: float = 60.0,
    ):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(f"Invalid worker bounds: min={min_workers} max={max_workers}")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = max_queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=max_queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False
        self._next_worker_id = 0

    def start(self):
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers (max {self.max_workers})")
        self._shutting_down = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        # caller holds self._lock
        worker = Worker(self._task_queue, self._next_worker_id, self.idle_timeout)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        timeout: Optional[float] = None,
        on_drop: Optional[Callable[[], Any]] = None,
    ) -> bool:
        """
        Queue ``func(*args, **kwargs)`` without blocking.

        ``on_drop`` is called instead of ``func`` if the task is never run:
        it waited longer than ``timeout`` seconds, or shutdown abandoned it.

        Returns:
            False if the queue is full.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put_nowait(Task(func, args, kwargs or {}, timeout, on_drop))
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            all_busy = all(w.state is WorkerState.BUSY for w in self._workers)
            if all_busy and len(self._workers) < self.max_workers and not self._task_queue.empty():
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop all workers.

        Args:
            wait: Let queued tasks finish first.
            timeout: Upper bound on that wait, in seconds.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool")
        self._shutting_down = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline and time.time() > deadline:
                    logger.warning("Thread pool shutdown timed out, abandoning queued tasks")
                    self._drop_queued()
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.stop()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass
        for worker in workers:
            worker.join(timeout=2.0)
        self._drop_queued()

        self._started = False
        logger.info("Thread pool stopped")

    def _drop_queued(self):
        while True:
            try:
                task = self._task_queue.get_nowait()
            except queue.Empty:
                return
            try:
                if task is not None:
                    task.drop()
            finally:
                self._task_queue.task_done()

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state is WorkerState.BUSY)

    @property
    def queued_tasks(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": len(self._workers),
            "busy": self.busy_workers,
            "queued": self.queued_tasks,
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }
