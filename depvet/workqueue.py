"""Deduplicating work queue processed by a pool of threads."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Protocol, TypeVar

from depvet.log import get_logger


class WorkQueueItem(Protocol):
    def id(self) -> str: ...


T = TypeVar("T", bound=WorkQueueItem)

_POLL_INTERVAL = 0.05


@dataclass
class WorkQueueCallbacks(Generic[T]):
    """Optional hooks run when an item is added and when it is handled."""

    on_add: Optional[Callable[["WorkQueue[T]", T], None]] = None
    on_done: Optional[Callable[["WorkQueue[T]", T], None]] = None


class WorkQueue(Generic[T]):
    """Runs ``handler(queue, item)`` for every distinct item on worker threads.

    An item is accepted only once per ``id()``. Handler errors are logged and
    do not stop the queue. Handlers may add further items.
    """

    def __init__(
        self,
        buffer_size: int,
        concurrency: int,
        handler: Callable[["WorkQueue[T]", T], None],
        callbacks: WorkQueueCallbacks[T] | None = None,
    ) -> None:
        self.callbacks: WorkQueueCallbacks[T] = callbacks or WorkQueueCallbacks()
        self._handler = handler
        self._concurrency = concurrency
        self._items: queue.Queue[T] = queue.Queue(maxsize=max(buffer_size, 0))
        self._done = threading.Event()
        self._seen: set[str] = set()
        self._seen_lock = threading.Lock()
        self._pending = 0
        self._cond = threading.Condition()
        self._threads: list[threading.Thread] = []

    def __enter__(self) -> "WorkQueue[T]":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def start(self) -> None:
        """Start the worker threads."""
        for _ in range(self._concurrency):
            thread = threading.Thread(target=self._work, daemon=True)
            self._threads.append(thread)
            thread.start()

    def wait(self) -> None:
        """Block until every added item has been handled."""
        with self._cond:
            self._cond.wait_for(lambda: self._pending == 0)

    def stop(self) -> None:
        """Stop the workers; items still queued are left unprocessed."""
        self._done.set()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join()

    def add(self, item: T) -> bool:
        """Queue ``item`` unless an item with the same id was added before."""
        with self._seen_lock:
            item_id = item.id()
            if item_id in self._seen:
                return False
            self._seen.add(item_id)

        with self._cond:
            self._pending += 1

        self._items.put(item)
        if self.callbacks.on_add is not None:
            self.callbacks.on_add(self, item)
        return True

    def _work(self) -> None:
        while not self._done.is_set():
            try:
                item = self._items.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                continue

            try:
                try:
                    self._handler(self, item)
                except Exception as exc:
                    get_logger().error("Handler fn failed with %s", exc)

                if self.callbacks.on_done is not None:
                    self.callbacks.on_done(self, item)
            finally:
                with self._cond:
                    self._pending -= 1
                    if self._pending == 0:
                        self._cond.notify_all()