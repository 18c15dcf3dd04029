"""
In-memory derived image cache.

Bounded, TTL-expiring store for derivative sets keyed by content hash.
Suitable for a single process; a multi-instance deployment should put
a shared store (Redis or similar) behind the same port.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from mealsnap.config import CacheConfig
from mealsnap.domain.image.models import DerivedImageSet
from mealsnap.domain.shared.value_objects import ContentHash

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: DerivedImageSet
    stored_at: float

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.stored_at > ttl_seconds


class InMemoryDerivedImageCache:
    """In-memory implementation of the derived image cache.

    Entries expire lazily on read. When full, the oldest inserted entry
    is evicted (insertion order, reads do not refresh position). All
    mutations happen under one lock, so concurrent uploads never see a
    torn entry.

    Example:
        >>> cache = InMemoryDerivedImageCache(max_entries=2)
        >>> await cache.set("a" * 32, derived)
        >>> assert await cache.get("a" * 32) is derived
    """

    def __init__(
        self,
        max_entries: int = 50,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize empty cache.

        Args:
            max_entries: Capacity before the oldest entry is evicted
            ttl_seconds: Entry lifetime (default: 1 hour)
            clock: Monotonic time source, injectable for tests
        """
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        logger.debug(
            "Derived image cache initialized",
            max_entries=max_entries,
            ttl_seconds=ttl_seconds,
        )

    @classmethod
    def from_config(
        cls, config: CacheConfig, clock: Callable[[], float] = time.monotonic
    ) -> "InMemoryDerivedImageCache":
        return cls(max_entries=config.max_entries, ttl_seconds=config.ttl_seconds, clock=clock)

    @staticmethod
    def make_key(data: bytes) -> str:
        """Cache key for raw upload bytes (hex content hash)."""
        return ContentHash.of(data).value

    async def get(self, key: str) -> Optional[DerivedImageSet]:
        """Get cached derivatives.

        Args:
            key: Content hash

        Returns:
            The cached set if found and not expired, None otherwise
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                logger.debug("Cache miss", key=key)
                return None

            if entry.is_expired(self._clock(), self.ttl_seconds):
                del self._entries[key]
                self._misses += 1
                logger.debug("Cache expired", key=key)
                return None

            self._hits += 1
            logger.debug("Cache hit", key=key)
            return entry.value

    async def set(self, key: str, value: DerivedImageSet) -> None:
        """Store derivatives, evicting the oldest entry when full.

        Args:
            key: Content hash
            value: Derivative set to cache
        """
        with self._lock:
            if key in self._entries:
                # replace in place and move to newest position
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Cache evicted oldest entry", key=evicted_key)

            self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
            logger.debug("Cached derived images", key=key, size=len(self._entries))

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Clear all cache entries (for testing)."""
        with self._lock:
            self._entries.clear()
        logger.debug("Cache cleared")

    def remove_expired(self) -> int:
        """Remove all expired entries from cache.

        Returns:
            Number of expired entries removed
        """
        with self._lock:
            now = self._clock()
            expired_keys = [
                key
                for key, entry in self._entries.items()
                if entry.is_expired(now, self.ttl_seconds)
            ]
            for key in expired_keys:
                del self._entries[key]

        if expired_keys:
            logger.debug("Cleaned up expired cache entries", count=len(expired_keys))
        return len(expired_keys)

    def stats(self) -> dict[str, float]:
        """Counters since construction plus current occupancy."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": (self._hits / lookups) if lookups else 0.0,
            }
