"""TTL and LRU caching for RPC responses."""

import hashlib
import json
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from blockpool_client.core.models import CacheEntryStats, CacheStats


def make_cache_key(method: str, params: dict[str, Any] | None) -> str:
    """
    Generate cache key from method and parameters.

    Parameters
    ----------
    method : str
        RPC method name
    params : dict[str, Any] | None
        Method parameters

    Returns
    -------
    str
        Cache key of the form '<method>:<sha256 of params>'

    """
    # Create a deterministic string representation
    key_str = json.dumps(params or {}, sort_keys=True, separators=(",", ":"), default=str)
    # Keep the method readable so entries can be invalidated per method
    return f"{method}:{hashlib.sha256(key_str.encode()).hexdigest()}"


class CacheEntry:
    """
    Cache entry with TTL support.

    Parameters
    ----------
    key : str
        Cache key
    value : Any
        Cached value
    ttl_ms : int
        Time-to-live in milliseconds
    created_at : float
        Creation timestamp in seconds

    """

    __slots__ = ("created_at", "hits", "key", "ttl_ms", "value")

    def __init__(self, key: str, value: Any, ttl_ms: int, created_at: float) -> None:
        self.key = key
        self.value = value
        self.ttl_ms = ttl_ms
        self.created_at = created_at
        self.hits = 0

    def is_expired(self, now: float) -> bool:
        """
        Check if cache entry has expired.

        Parameters
        ----------
        now : float
            Current timestamp in seconds

        Returns
        -------
        bool
            True once ``ttl_ms`` has fully elapsed

        """
        return (now - self.created_at) * 1000 >= self.ttl_ms


class CacheManager:
    """
    Bounded in-memory cache with per-entry TTL and LRU eviction.

    Expiry is checked lazily on read; when a new key arrives at capacity the
    least-recently-used entry is evicted.

    Parameters
    ----------
    max_size : int
        Maximum number of entries
    default_ttl_ms : int
        TTL used when ``set`` is called without one
    clock : Callable[[], float]
        Time source in seconds (injectable for tests)

    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl_ms: int = 30_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size <= 0:
            msg = f"max_size must be positive, got {max_size}"
            raise ValueError(msg)
        if default_ttl_ms <= 0:
            msg = f"default_ttl_ms must be positive, got {default_ttl_ms}"
            raise ValueError(msg)
        self.max_size = max_size
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock
        # Insertion order doubles as access order: head is least recently used
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        entry = self._cache.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def get(self, key: str) -> Any | None:
        """
        Get cached value if it exists and hasn't expired.

        Parameters
        ----------
        key : str
            Cache key

        Returns
        -------
        Any | None
            Cached value if found and valid, None otherwise

        """
        entry = self._cache.get(key)

        if entry is None:
            self._misses += 1
            return None

        if entry.is_expired(self._clock()):
            # Clean up expired entry
            del self._cache[key]
            self._misses += 1
            return None

        self._cache.move_to_end(key)
        entry.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl_ms: int | None = None) -> None:
        """
        Store value in cache with TTL.

        Parameters
        ----------
        key : str
            Cache key
        value : Any
            Value to cache
        ttl_ms : int | None
            Time-to-live in milliseconds. Uses default_ttl_ms if None.

        """
        ttl_ms = ttl_ms or self.default_ttl_ms
        if key not in self._cache and len(self._cache) >= self.max_size:
            self._evict_lru()

        self._cache[key] = CacheEntry(key, value, ttl_ms, self._clock())
        self._cache.move_to_end(key)

    def delete(self, key: str) -> bool:
        """Remove a single entry; returns True if it existed."""
        return self._cache.pop(key, None) is not None

    def invalidate(self, method: str) -> int:
        """
        Remove every entry cached for an RPC method.

        Parameters
        ----------
        method : str
            RPC method name used when building the keys

        Returns
        -------
        int
            Number of entries removed

        """
        prefix = f"{method}:"
        stale = [key for key in self._cache if key.startswith(prefix)]
        for key in stale:
            del self._cache[key]
        return len(stale)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()
        self._misses = 0

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries from cache.

        Returns
        -------
        int
            Number of entries removed

        """
        now = self._clock()
        expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(now)]
        for key in expired_keys:
            del self._cache[key]
        return len(expired_keys)

    def stats(self) -> CacheStats:
        """
        Diagnostic snapshot of the cache.

        Returns
        -------
        CacheStats
            Size, hit rate over reads since the last clear, and per-entry ages

        """
        now = self._clock()
        entries = [
            CacheEntryStats(key=entry.key, hits=entry.hits, age_ms=int((now - entry.created_at) * 1000))
            for entry in self._cache.values()
        ]
        hits = sum(entry.hits for entry in self._cache.values())
        reads = hits + self._misses
        return CacheStats(size=len(self._cache), hit_rate=hits / reads if reads else 0.0, entries=entries)

    def _evict_lru(self) -> None:
        if self._cache:
            self._cache.popitem(last=False)
