"""
TTL Cache

Small in-process cache for responses from external services.

DESIGN DECISION: Expiry is checked on read, and expired entries are
swept only when the cache grows past its size bound. There is no
background task and no hard eviction of live entries.
"""

import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, TypeVar


V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    value: V
    timestamp: float


class TTLCache(Generic[V]):
    """Time-bounded key/value cache with an injectable clock."""

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry[V]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.timestamp < self._ttl

    def get(self, key: Hashable) -> Optional[V]:
        """Value for ``key`` if present and not expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self._is_fresh(entry, self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: Hashable, value: V) -> None:
        self._entries[key] = CacheEntry(value=value, timestamp=self._clock())
        if len(self._entries) > self._max_entries:
            self.sweep()

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items()
            if not self._is_fresh(entry, now)
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
