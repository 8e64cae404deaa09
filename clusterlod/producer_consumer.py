"""A synchronized single-producer, single-consumer ring of reusable items."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

T = TypeVar("T")


class ProducerConsumer(Generic[T]):
    """A fixed-capacity circular queue of reusable items shared by two threads.

    The producer fills the next free slot from a callback; the consumer reads
    the oldest filled slot from a callback. A produce callback may return a
    replacement item for its slot; returning ``None`` keeps the (possibly
    mutated) item in place.
    """

    def __init__(self, items: Iterable[T]) -> None:
        self._items = list(items)
        if not self._items:
            raise ValueError("a producer/consumer queue needs at least one item")
        self._capacity = len(self._items)
        self._produce_cursor = 0
        self._consume_cursor = 0
        self._size = 0
        self._produce_promised = False
        self._cancel = False
        self._lock = threading.Lock()
        self._produced = threading.Condition(self._lock)
        self._returned = threading.Condition(self._lock)

    # Callback API

    def try_produce(self, callback: Callable[[T], T | None]) -> bool:
        """Produce into a free slot without blocking; False if full or canceled."""
        return self.produce(False, callback)

    def wait_produce(self, callback: Callable[[T], T | None]) -> bool:
        """Wait for a free slot and produce into it; False if canceled."""
        return self.produce(True, callback)

    def try_consume(self, callback: Callable[[T], object]) -> bool:
        """Consume the oldest item without blocking; False if empty or canceled."""
        return self.consume(False, callback)

    def wait_consume(self, callback: Callable[[T], object]) -> bool:
        """Wait for an item and consume it; False if canceled."""
        return self.consume(True, callback)

    def maybe_try_consume(self, callback: Callable[[T], bool]) -> bool:
        """Like try_consume, but the item is kept unless the callback returns True."""
        return self.maybe_consume(False, callback)

    def maybe_wait_consume(self, callback: Callable[[T], bool]) -> bool:
        """Like wait_consume, but the item is kept unless the callback returns True."""
        return self.maybe_consume(True, callback)

    def produce(self, block: bool, callback: Callable[[T], T | None]) -> bool:
        """Produce one item, optionally blocking until a slot is free."""
        if not self._begin_produce(block):
            return False
        # The callback runs without holding any lock.
        replacement = callback(self._items[self._produce_cursor])
        if replacement is not None:
            self._items[self._produce_cursor] = replacement
        self._finish_produce()
        return True

    def consume(self, block: bool, callback: Callable[[T], object]) -> bool:
        """Consume one item, optionally blocking until one is available."""
        if not self._begin_consume(block):
            return False
        callback(self._items[self._consume_cursor])
        self._finish_consume()
        return True

    def maybe_consume(self, block: bool, callback: Callable[[T], bool]) -> bool:
        """Consume one item only if the callback accepts it by returning True."""
        if not self._begin_consume(block):
            return False
        accepted = bool(callback(self._items[self._consume_cursor]))
        if accepted:
            self._finish_consume()
        return accepted

    # State

    def cancel(self) -> None:
        """Unblock any threads waiting on this queue."""
        with self._lock:
            self._cancel = True
            self._produced.notify_all()
            self._returned.notify_all()

    def canceled(self) -> bool:
        """Whether the queue is canceled, to tell a cancel from a full queue."""
        with self._lock:
            return self._cancel

    def __len__(self) -> int:
        with self._lock:
            return self._size

    def empty(self) -> bool:
        return len(self) == 0

    def full(self) -> bool:
        return len(self) == self._capacity

    def promised_size(self) -> int:
        """Queued items plus one if a producer is currently filling a slot."""
        with self._lock:
            return self._size + (1 if self._produce_promised else 0)

    def promised_empty(self) -> bool:
        return self.promised_size() == 0

    def drain(self) -> None:
        """Block until the consumer has emptied the queue."""
        with self._lock:
            self._returned.wait_for(lambda: self._size == 0)

    def storage(self) -> tuple[T, ...]:
        """A snapshot of every slot in storage order."""
        with self._lock:
            return tuple(self._items)

    # Internals

    def _begin_produce(self, block: bool) -> bool:
        with self._lock:
            if block:
                self._returned.wait_for(lambda: self._cancel or self._size < self._capacity)
                result = not self._cancel
            else:
                result = not self._cancel and self._size < self._capacity
            self._produce_promised = result
            return result

    def _finish_produce(self) -> None:
        with self._lock:
            self._size += 1
            self._produce_cursor = (self._produce_cursor + 1) % self._capacity
            self._cancel = False
            self._produce_promised = False
            self._produced.notify_all()

    def _begin_consume(self, block: bool) -> bool:
        with self._lock:
            if block:
                self._produced.wait_for(lambda: self._cancel or self._size > 0)
                return not self._cancel
            return not self._cancel and self._size > 0

    def _finish_consume(self) -> None:
        with self._lock:
            self._size -= 1
            self._consume_cursor = (self._consume_cursor + 1) % self._capacity
            self._returned.notify_all()