"""Expiring, size-bounded key/value cache.

Entries carry an expiration time and a last-access time. Expired entries are
dropped lazily on access and by a periodic sweep; when a new key is inserted
into a full cache the least recently accessed entry is evicted.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SWEEP_INTERVAL = 10 * 60.0


@dataclass
class _CacheEntry(Generic[T]):
    value: T
    expiration: float
    last_accessed: float


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache counters.

    Attributes:
        hits: Successful lookups.
        misses: Lookups that found nothing or an expired entry.
        evictions: Entries removed to make room for new keys.
        size: Current number of stored entries (expired ones included
            until they are swept or accessed).
    """

    hits: int
    misses: int
    evictions: int
    size: int


class ExpiringCache:
    """TTL + LRU cache.

    Example:
        ```python
        cache = ExpiringCache(max_size=2, default_ttl=60)
        cache.set("a", 1)
        cache.get("a")  # -> 1
        cache.stats()   # -> CacheStats(hits=1, misses=0, evictions=0, size=1)
        ```
    """

    def __init__(
        self,
        max_size: int = 100,
        default_ttl: float = 300.0,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            max_size: Maximum number of entries.
            default_ttl: Time-to-live in seconds when ``set`` gets no ttl.
            enabled: When False, the cache stores nothing and never hits.
            clock: Monotonic time source in seconds.
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self._entries: dict[str, _CacheEntry[Any]] = {}
        self._max_size = max_size
        self._default_ttl = default_ttl
        self._enabled = enabled
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._sweeper: asyncio.Task[None] | None = None

        logger.debug(
            f"Cache created: max_size={max_size}, ttl={default_ttl}s, enabled={enabled}"
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def max_size(self) -> int:
        return self._max_size

    def set(self, key: str, value: T, ttl: float | None = None) -> T:
        """Store a value.

        Args:
            key: Cache key.
            value: Value to store.
            ttl: Time-to-live in seconds. ``None`` uses the default; ``0``
                expires the entry as soon as the clock moves.

        Returns:
            The value, so callers can ``return cache.set(key, value)``.
        """
        if not self._enabled:
            return value

        now = self._clock()
        lifetime = self._default_ttl if ttl is None else ttl

        if key not in self._entries and len(self._entries) >= self._max_size:
            self._evict_least_recent()

        self._entries[key] = _CacheEntry(
            value=value,
            expiration=now + lifetime,
            last_accessed=now,
        )
        return value

    def get(self, key: str) -> Any | None:
        """Look up a value, returning None when absent or expired."""
        if not self._enabled:
            self._misses += 1
            return None

        entry = self._entries.get(key)
        now = self._clock()

        if entry is None or entry.expiration < now:
            if entry is not None:
                del self._entries[key]
            self._misses += 1
            return None

        entry.last_accessed = now
        self._hits += 1
        return entry.value

    def has(self, key: str) -> bool:
        """Check for a live entry without touching counters or recency."""
        if not self._enabled:
            return False

        entry = self._entries.get(key)
        return entry is not None and entry.expiration >= self._clock()

    def delete(self, key: str) -> bool:
        if not self._enabled:
            return False
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("Cache cleared")

    def sweep(self) -> int:
        """Remove every expired entry.

        Returns:
            The number of entries removed.
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expiration < now]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            size=len(self._entries),
        )

    def start_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL) -> None:
        """Start the periodic background sweep on the running event loop.

        Args:
            interval: Seconds between sweeps.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever(interval))

    async def close(self) -> None:
        """Stop the background sweep, if running."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    def _evict_least_recent(self) -> None:
        if not self._entries:
            return

        oldest_key = min(self._entries, key=lambda k: self._entries[k].last_accessed)
        del self._entries[oldest_key]
        self._evictions += 1
        logger.debug(f"Evicted least recently used cache entry: {oldest_key}")
