"""Insertion-ordered, duplicate-free collection with lock-guarded writes."""
from __future__ import annotations

import threading
from typing import Generic, Iterable, Iterator, List, TypeVar

T = TypeVar("T")


class OrderedSet(Generic[T]):
    """Ordered sequence plus membership set.

    Iteration order is insertion order; adding an element already present is a
    no-op. Every access takes the lock and iteration works on a snapshot, so a
    reader never observes a half-applied ``update``.
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._order: List[T] = []
        self._members = set()
        self._lock = threading.Lock()
        self.update(items)

    def add(self, item: T) -> bool:
        """Add ``item``; return True if it was not already present."""
        with self._lock:
            if item in self._members:
                return False
            self._members.add(item)
            self._order.append(item)
            return True

    def update(self, items: Iterable[T]) -> None:
        items = list(items)
        with self._lock:
            for item in items:
                if item not in self._members:
                    self._members.add(item)
                    self._order.append(item)

    def snapshot(self) -> List[T]:
        with self._lock:
            return list(self._order)

    def __contains__(self, item: object) -> bool:
        with self._lock:
            return item in self._members

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def __bool__(self) -> bool:
        return len(self) > 0

    def __repr__(self) -> str:
        return f"OrderedSet({self.snapshot()!r})"
