"""Bounded in-memory TTL cache for ingredient lookups.

Cache stores: normalized ingredient name → IngredientRecord (or a miss).

DESIGN DECISIONS:
- Every entry carries its last-write timestamp
- Expiry is checked explicitly on read; an expired entry is removed and
  reported as absent
- When full, the oldest write is evicted first
- The clock is injectable so tests control time
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Tuple, TypeVar


V = TypeVar("V")

DEFAULT_MAX_ENTRIES = 1024
DEFAULT_TTL_SECONDS = 300.0


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0


class IngredientCache(Generic[V]):
    """Bounded map with last-write timestamps and expiry on read.

    Usage:
        cache = IngredientCache(max_entries=500, ttl_seconds=60)
        cache.set("milk, whole", record)
        found, record = cache.get("milk, whole")
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError(f"Invalid max_entries: {max_entries}. Must be positive.")
        if ttl_seconds <= 0:
            raise ValueError(f"Invalid ttl_seconds: {ttl_seconds}. Must be positive.")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.stats = CacheStats()
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Tuple[bool, Optional[V]]:
        """Look up key.

        Returns:
            (found, value); value may legitimately be None for cached misses
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats.misses += 1
                return False, None
            written_at, value = entry
            if self._clock() - written_at >= self.ttl_seconds:
                del self._entries[key]
                self.stats.expirations += 1
                self.stats.misses += 1
                return False, None
            self.stats.hits += 1
            return True, value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            self._entries[key] = (self._clock(), value)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self.stats.evictions += 1

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        found, _ = self.get(key)
        return found
