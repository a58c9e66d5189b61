"""
Time-to-live cache with explicit invalidation.

Backs both the per-pool price cache and the route cache. Each entry
stores its insertion time; staleness is checked on read.
"""

import time
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


class TTLCache(Generic[K, V]):
    """
    Dict-backed cache of ``key -> (value, timestamp)``.

    Features:
    - O(1) lookup with expiry checked on read
    - Stale entries evicted lazily when read
    - Wholesale invalidation hook for pool-set changes
    - Hit/miss accounting
    """

    __slots__ = ("_entries", "_ttl", "_clock", "_hits", "_misses")

    def __init__(self, ttl: float | None, clock: Clock = time.monotonic) -> None:
        """
        Initialize cache.

        Args:
            ttl: Entry lifetime in seconds, or None for no expiry.
            clock: Monotonic time source (injectable for tests).
        """
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive")
        self._entries: dict[K, tuple[V, float]] = {}
        self._ttl = ttl
        self._clock = clock
        self._hits = 0
        self._misses = 0

    def get(self, key: K) -> V | None:
        """
        Get a fresh value.

        Args:
            key: Cache key.

        Returns:
            Cached value, or None if missing or expired.
        """
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        value, stored_at = entry
        if self._ttl is not None and self._clock() - stored_at >= self._ttl:
            del self._entries[key]
            self._misses += 1
            return None

        self._hits += 1
        return value

    def set(self, key: K, value: V) -> None:
        """Store a value stamped with the current time."""
        self._entries[key] = (value, self._clock())

    def age(self, key: K) -> float | None:
        """Seconds since a key was stored, or None if absent."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry[1]

    def invalidate(self, key: K) -> None:
        """Drop a single entry."""
        self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @property
    def ttl(self) -> float | None:
        return self._ttl

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses

    @property
    def hit_rate(self) -> float:
        """Share of reads served from the cache."""
        total = self._hits + self._misses
        return self._hits / total if total > 0 else 0.0
