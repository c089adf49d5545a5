"""Bounded least-recently-used cache."""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Iterator
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """Fixed-capacity mapping that evicts the least recently used entry.

    `get` promotes a hit to most-recently-used; `set` beyond capacity evicts
    exactly one entry (the oldest). `has` does not promote.
    """

    def __init__(self, max_size: int = 50) -> None:
        if int(max_size) < 1:
            raise ValueError("max_size must be >= 1")
        self.max_size = int(max_size)
        self._data: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: K) -> V | None:
        with self._lock:
            if key not in self._data:
                return None
            self._data.move_to_end(key)
            return self._data[key]

    def set(self, key: K, value: V) -> K | None:
        """Insert or replace `key`; return the evicted key, if any."""
        with self._lock:
            if key in self._data:
                del self._data[key]
            self._data[key] = value
            if len(self._data) > self.max_size:
                evicted, _ = self._data.popitem(last=False)
                return evicted
            return None

    def has(self, key: K) -> bool:
        with self._lock:
            return key in self._data

    def delete(self, key: K) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def keys(self) -> list[K]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._data.keys())

    def values(self) -> list[V]:
        with self._lock:
            return list(self._data.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())
