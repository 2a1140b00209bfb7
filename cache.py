"""
In-memory TTL cache for upstream JSON responses.

Provides:
- One entry per request URL (the URL is the key, used verbatim)
- TTL enforcement on read, with lazy eviction of expired entries
- Size bound with oldest-first eviction when the entry limit is reached

There is no background sweep. Fetch-level locking is left to callers:
the internal lock only protects the map itself.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from constants import CACHE_TTL_SECONDS, MAX_CACHE_ENTRIES, CACHE_EVICT_FRACTION

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cached JSON value with its absolute expiry time."""
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """An entry is stale strictly after its expiry time."""
        return now > self.expires_at


class MemoryCache:
    """
    Thread-safe in-memory cache with TTL and a size bound.

    Usage:
        cache = MemoryCache()
        entry = cache.read(url)
        if entry is None:
            cache.write(url, fetch(url))
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        max_entries: int = MAX_CACHE_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            ttl: Lifetime of an entry in seconds
            max_entries: Maximum number of entries held at once
            clock: Time source returning seconds, injectable for tests
        """
        self.ttl = ttl
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def read(self, key: str) -> Optional[CacheEntry]:
        """
        Read a live entry.

        Expired entries are removed as a side effect of the read.

        Args:
            key: Cache key

        Returns:
            CacheEntry if present and live, None otherwise
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                logger.debug("Cache entry expired")
                return None
            return entry

    def get(self, key: str) -> Any:
        """Return the cached value for key, or None."""
        entry = self.read(key)
        return entry.value if entry else None

    def write(self, key: str, value: Any) -> CacheEntry:
        """
        Store a value, replacing any previous entry for the key.

        Args:
            key: Cache key
            value: JSON-serializable value

        Returns:
            The stored CacheEntry
        """
        entry = CacheEntry(value=value, expires_at=self._clock() + self.ttl)
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict()
            self._entries[key] = entry
        return entry

    def _evict(self) -> None:
        """
        Make room for one more entry. Caller must hold the lock.

        Expired entries go first; if none are expired, the oldest
        fraction by expiry time is dropped.
        """
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        if expired:
            for key in expired:
                del self._entries[key]
            logger.info(f"Evicted {len(expired)} expired cache entries")
            return

        by_expiry = sorted(self._entries.items(), key=lambda item: item[1].expires_at)
        to_evict = by_expiry[:max(1, len(by_expiry) // CACHE_EVICT_FRACTION)]
        for key, _ in to_evict:
            del self._entries[key]
        logger.info(f"Evicted {len(to_evict)} cache entries")

    def clear(self) -> int:
        """
        Remove every entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Expired entries still in the map are counted separately; they
        leave the map on their next read or on eviction.

        Returns:
            Dict with cache stats
        """
        now = self._clock()
        with self._lock:
            expired_count = sum(1 for e in self._entries.values() if e.is_expired(now))
            total = len(self._entries)

        return {
            "total_entries": total,
            "live_entries": total - expired_count,
            "expired_entries": expired_count,
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl,
        }
