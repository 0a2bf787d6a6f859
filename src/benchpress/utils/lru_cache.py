"""Bounded LRU cache with optional per-entry time-to-live.

Holds compiled templates inside an Environment. Writes (insert, evict,
invalidate) are serialized by a lock; ``get`` on a present, unexpired
entry takes no lock. Expiry uses an injectable monotonic clock so tests
can advance time without sleeping.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


@dataclass(slots=True)
class CacheEntry(Generic[V]):
    """A cached value with its insertion time and expiry."""

    value: V
    inserted_at: float
    expires_at: float | None
    hits: int = 0


class LRUCache(Generic[K, V]):
    """Least-recently-used cache bounded by entry count.

    Args:
        maxsize: Maximum entries; the least recently used is evicted first.
            ``0`` disables caching entirely.
        ttl: Seconds an entry stays valid after insertion; None never expires
        clock: Monotonic time source

    Example:
        >>> cache = LRUCache(maxsize=2)
        >>> cache.set("a", 1)
        >>> cache.get("a")
        1

    """

    __slots__ = ("_clock", "_data", "_lock", "evictions", "hits", "maxsize", "misses", "ttl")

    def __init__(
        self,
        maxsize: int = 400,
        ttl: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive or None")
        self.maxsize = maxsize
        self.ttl = ttl
        self._clock = clock
        self._data: OrderedDict[K, CacheEntry[V]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: K, default: V | None = None) -> V | None:
        """Return the cached value, or ``default`` if absent or expired."""
        entry = self._data.get(key)
        if entry is None:
            self.misses += 1
            return default
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            with self._lock:
                if self._data.get(key) is entry:
                    del self._data[key]
                    self.evictions += 1
                    logger.debug("cache entry %r expired", key)
            self.misses += 1
            return default
        entry.hits += 1
        self.hits += 1
        try:
            self._data.move_to_end(key)
        except KeyError:
            # Removed by a concurrent writer after we read it; the value is still valid
            pass
        return entry.value

    def entry(self, key: K) -> CacheEntry[V] | None:
        """Return the raw entry without touching recency or counters."""
        return self._data.get(key)

    def set(self, key: K, value: V) -> None:
        """Insert or replace ``key``, evicting least-recently-used entries."""
        if self.maxsize == 0:
            return
        now = self._clock()
        expires = now + self.ttl if self.ttl is not None else None
        with self._lock:
            self._data[key] = CacheEntry(value, now, expires)
            self._data.move_to_end(key)
            while len(self._data) > self.maxsize:
                evicted, _ = self._data.popitem(last=False)
                self.evictions += 1
                logger.debug("evicted %r from cache", evicted)

    def pop(self, key: K) -> V | None:
        """Remove ``key`` and return its value, or None if absent."""
        with self._lock:
            entry = self._data.pop(key, None)
        return entry.value if entry is not None else None

    def clear(self) -> None:
        """Remove every entry. Counters are kept."""
        with self._lock:
            self._data.clear()

    def __contains__(self, key: object) -> bool:
        entry = self._data.get(key)  # type: ignore[call-overload]
        if entry is None:
            return False
        return entry.expires_at is None or self._clock() < entry.expires_at

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._data))

    def keys(self) -> list[K]:
        return list(self._data)

    def info(self) -> dict[str, int]:
        """Counters plus current size and capacity."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": len(self._data),
            "maxsize": self.maxsize,
        }
