import threading
from queue import Full, Queue
from time import monotonic

from micro_sentry.consts import DEFAULT_QUEUE_SIZE
from micro_sentry.utils import logger

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Callable, Optional


_STOP = object()


class BackgroundWorker:
    """Runs submitted jobs one at a time on a lazily started daemon thread.

    The queue is bounded: :py:meth:`submit` reports whether the job was
    accepted instead of blocking the caller.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._jobs: "Queue[Any]" = Queue(queue_size)
        self._lock = threading.Lock()
        self._thread: "Optional[threading.Thread]" = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.is_alive:
                return
            thread = threading.Thread(
                target=self._run, name="micro-sentry.BackgroundWorker", daemon=True
            )
            try:
                thread.start()
            except RuntimeError:
                # interpreter shutdown
                logger.debug("background worker could not be started")
                return
            self._thread = thread

    def kill(self) -> None:
        """Asks the thread to stop after the jobs already queued. Returns
        immediately; use :py:meth:`flush` to wait for pending jobs."""
        logger.debug("background worker got kill request")
        with self._lock:
            if self._thread is None:
                return
            try:
                self._jobs.put_nowait(_STOP)
            except Full:
                logger.debug("background worker queue full, kill failed")
            self._thread = None

    def submit(self, job: "Callable[[], Any]") -> bool:
        """Queues `job`. Returns `False` if the queue is full."""
        if not self.is_alive:
            self.start()
        try:
            self._jobs.put_nowait(job)
        except Full:
            return False
        return True

    def flush(
        self,
        timeout: float,
        callback: "Optional[Callable[[int, float], None]]" = None,
    ) -> None:
        """Waits up to `timeout` seconds for queued jobs to finish.

        If the jobs are not done after a short grace period, `callback` is
        called with the number of pending jobs and the timeout.
        """
        logger.debug("background worker got flush request")
        with self._lock:
            if not self.is_alive or timeout <= 0:
                return

            grace = min(0.1, timeout)
            if self._join(grace):
                return

            if callback is not None:
                callback(self._pending(), timeout)

            if not self._join(timeout - grace):
                logger.error("flush timed out, dropped %s events", self._pending())
        logger.debug("background worker flushed")

    def _pending(self) -> int:
        # the job currently running is no longer in the queue
        return self._jobs.qsize() + 1

    def _join(self, timeout: float) -> bool:
        """`Queue.join` with a timeout. Returns whether all jobs finished."""
        deadline = monotonic() + timeout
        done = self._jobs.all_tasks_done
        with done:
            while self._jobs.unfinished_tasks:
                remaining = deadline - monotonic()
                if remaining <= 0:
                    return False
                done.wait(remaining)
        return True

    def _run(self) -> None:
        while True:
            job = self._jobs.get()
            try:
                if job is _STOP:
                    return
                try:
                    job()
                except Exception:
                    logger.error("Failed processing job", exc_info=True)
            finally:
                self._jobs.task_done()
