"""Bounded fan-out for recursive directory descent.

A fixed number of permits gates how many directory scans run on their own
thread. A caller that finds no free permit does the work inline instead of
waiting, so a descent never blocks on the pool.
"""

import os
import threading
from typing import Any, Callable, Generic, Optional, TypeVar

from tree_tools.core import get_logger, settings

logger = get_logger(__name__)

T = TypeVar("T")


class PermitPool:
    """Fixed-capacity counting permit pool."""

    def __init__(self, size: Optional[int] = None):
        self.size = size or settings.max_workers or os.cpu_count() or 1
        self._semaphore = threading.BoundedSemaphore(self.size)

    def try_acquire(self) -> bool:
        """Take a permit if one is free, without waiting."""
        return self._semaphore.acquire(blocking=False)

    def release(self) -> None:
        self._semaphore.release()


class BranchGroup(Generic[T]):
    """Results of the child branches spawned from one directory.

    Each call to ``run`` either starts the branch on a new thread (when a
    permit is free) or runs it inline. ``join`` waits for the threaded
    branches and returns every result, inline ones included.
    """

    def __init__(self, pool: PermitPool):
        self._pool = pool
        self._threads: list[threading.Thread] = []
        self._results: list[T] = []
        self._failures: list[BaseException] = []
        self._lock = threading.Lock()

    def run(self, fn: Callable[..., T], *args: Any) -> None:
        if self._pool.try_acquire():
            thread = threading.Thread(
                target=self._run_branch, args=(fn, args), daemon=True
            )
            try:
                thread.start()
            except RuntimeError as e:
                # Out of threads; fall back to inline work
                self._pool.release()
                logger.warning("Could not start branch thread", error=str(e))
            else:
                self._threads.append(thread)
                return

        result = fn(*args)
        with self._lock:
            self._results.append(result)

    def _run_branch(self, fn: Callable[..., T], args: tuple) -> None:
        try:
            result = fn(*args)
            with self._lock:
                self._results.append(result)
        except BaseException as e:
            with self._lock:
                self._failures.append(e)
        finally:
            self._pool.release()

    def join(self) -> list[T]:
        """Wait for every spawned branch and return all results.

        Raises:
            BaseException: The first unexpected exception raised by a branch
        """
        for thread in self._threads:
            thread.join()
        if self._failures:
            raise self._failures[0]
        return list(self._results)
