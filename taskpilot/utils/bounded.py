"""Fixed-capacity containers for in-process history and caches."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, Iterator, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class BoundedDict(Generic[K, V]):
    """Mapping that evicts its oldest entry once ``capacity`` is reached.

    Re-assigning an existing key refreshes its position. All operations are
    guarded by a lock so the structure can be shared across threads.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._data: "OrderedDict[K, V]" = OrderedDict()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[K]:
        with self._lock:
            return iter(list(self._data))

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: K, value: V) -> None:
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
            self._data[key] = value
            while len(self._data) > self.capacity:
                self._data.popitem(last=False)

    def setdefault(self, key: K, factory: Callable[[], V]) -> V:
        with self._lock:
            if key not in self._data:
                self.set(key, factory())
            return self._data[key]

    def pop(self, key: K, default: Optional[V] = None) -> Optional[V]:
        with self._lock:
            return self._data.pop(key, default)

    def values(self) -> list[V]:
        with self._lock:
            return list(self._data.values())

    def items(self) -> list[Tuple[K, V]]:
        with self._lock:
            return list(self._data.items())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class TTLCache(Generic[K, V]):
    """Bounded cache whose entries expire ``ttl`` seconds after insertion."""

    def __init__(
        self,
        ttl: float,
        capacity: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: BoundedDict[K, Tuple[float, V]] = BoundedDict(capacity)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: K) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl:
            # expired
            self._entries.pop(key)
            return None
        return value

    def set(self, key: K, value: V) -> None:
        self._entries.set(key, (self._clock(), value))

    def values(self) -> list[V]:
        return [value for _, value in self._entries.values()]

    def clear(self) -> None:
        self._entries.clear()
