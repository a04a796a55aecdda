"""Bounded producer/consumer channel for traversal results.

Producers are the threads of a running traversal, the consumer is the
caller iterating the stream. ``push`` blocks while the buffer is full, which
bounds memory on very large trees. A consumer that stops iterating without
cancelling the traversal leaves its producers blocked.
"""

import queue
import threading
from typing import Generic, Iterator, Optional, TypeVar

from tree_tools.core import settings

T = TypeVar("T")

_CLOSED = object()


class ResultStream(Generic[T]):
    """Bounded, thread-safe stream of traversal results."""

    def __init__(
        self,
        maxsize: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self._queue: queue.Queue = queue.Queue(
            maxsize=maxsize if maxsize is not None else settings.stream_buffer_size
        )
        self._cancel = cancel
        self._close_lock = threading.Lock()
        self._closed = False
        self._error: Optional[BaseException] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        return self._cancel is not None and self._cancel.is_set()

    def push(self, item: T) -> bool:
        """Hand an item to the consumer, blocking while the buffer is full.

        Returns:
            True if the item was queued, False if the stream was cancelled
            while waiting for room
        """
        if self._closed:
            raise RuntimeError("push on a closed ResultStream")
        if self._cancel is None:
            self._queue.put(item)
            return True

        while not self._cancel.is_set():
            try:
                self._queue.put(item, timeout=settings.push_poll_interval)
                return True
            except queue.Full:
                continue
        return False

    def close(self, error: Optional[BaseException] = None) -> None:
        """Signal the end of the stream. Safe to call more than once.

        An ``error`` is re-raised to the consumer once it reaches the end.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            self._error = error

        # The end marker must get through even if the buffer is full
        # and the consumer has gone away after cancelling.
        while True:
            try:
                self._queue.put(_CLOSED, timeout=settings.push_poll_interval)
                return
            except queue.Full:
                if self.cancelled:
                    self._discard_pending()

    def _discard_pending(self) -> None:
        try:
            while True:
                self._queue.get_nowait()
        except queue.Empty:
            pass

    def drain(self) -> Iterator[T]:
        """Yield items until the stream is closed."""
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # Leave the marker for any other iterator
                self._queue.put(_CLOSED)
                if self._error is not None:
                    raise self._error
                return
            yield item

    def __iter__(self) -> Iterator[T]:
        return self.drain()

    def to_list(self) -> list[T]:
        """Drain the whole stream into a list."""
        return list(self.drain())
