"""
Caching & Request Coalescing

Bounded in-memory LRU cache with read-time TTL, plus in-flight sharing so
concurrent requests for the same key run the producer only once.
"""
import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cache entry with value and insertion time"""
    key: str
    value: Any
    inserted_at: float

    def age(self, now: float) -> float:
        return now - self.inserted_at


@dataclass
class CacheStats:
    """Cache statistics"""
    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    evictions: int = 0
    errors: int = 0
    stale_served: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


def make_key(resource: str, subject: str) -> str:
    """
    Build a cache key for one resource of one subject.

    Examples:
        trades:0x56687bf447db6ffa42ffe2204a05edaa20f55839
        pnl:0x56687bf447db6ffa42ffe2204a05edaa20f55839
    """
    return f"{resource}:{subject.lower()}"


class CoalescingCache:
    """
    TTL cache with in-flight request coalescing.

    - Fresh entries (age < ttl at read time) are served without running the producer
    - At most one producer runs per key; concurrent callers await the same task
    - Producer errors propagate to every waiter and are never cached
    - Capacity is bounded; least recently used entries are displaced first
    """

    def __init__(self, max_entries: int = 2048, clock: Callable[[], float] = time.monotonic):
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._clock = clock
        self.max_entries = max_entries
        self.stats = CacheStats()

        logger.info(f"CoalescingCache initialized: max_entries={max_entries}")

    def _lookup(self, key: str, max_age: float) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None or entry.age(self._clock()) >= max_age:
            return None
        self._entries.move_to_end(key)
        return entry

    def _store(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, inserted_at=self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self.stats.evictions += 1
            logger.debug(f"Cache LRU eviction: {evicted}")

    def get(self, key: str, ttl: float) -> Optional[Any]:
        """Return the cached value if younger than ttl"""
        entry = self._lookup(key, ttl)
        return entry.value if entry else None

    def set(self, key: str, value: Any) -> None:
        self._store(key, value)

    def peek(self, key: str, max_age: float) -> Optional[Any]:
        """Return a possibly stale value no older than max_age, for degraded responses"""
        entry = self._lookup(key, max_age)
        if entry is None:
            return None
        self.stats.stale_served += 1
        logger.debug(f"Cache STALE: {key} (age: {entry.age(self._clock()):.1f}s)")
        return entry.value

    async def get_or_fetch(
        self,
        key: str,
        ttl: float,
        producer: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Get a fresh value or compute it once.

        Args:
            key: Cache key (see make_key)
            ttl: Freshness window in seconds
            producer: Zero-argument coroutine function computing the value

        Returns:
            Cached or freshly produced value

        Raises:
            Whatever the producer raises
        """
        entry = self._lookup(key, ttl)
        if entry is not None:
            self.stats.hits += 1
            logger.debug(f"Cache HIT: {key}")
            return entry.value

        task = self._in_flight.get(key)
        if task is not None:
            self.stats.coalesced += 1
            logger.debug(f"Cache COALESCED: {key}")
        else:
            self.stats.misses += 1
            logger.debug(f"Cache MISS: {key}")
            task = asyncio.ensure_future(self._produce(key, producer))
            self._in_flight[key] = task

        # A cancelled waiter must not cancel the computation other callers share
        return await asyncio.shield(task)

    async def _produce(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await producer()
        except Exception:
            self.stats.errors += 1
            raise
        else:
            self._store(key, value)
            return value
        finally:
            self._in_flight.pop(key, None)

    def invalidate(self, key: Optional[str] = None) -> int:
        """Drop one key, or everything when key is None"""
        if key is None:
            count = len(self._entries)
            self._entries.clear()
        else:
            count = 1 if self._entries.pop(key, None) is not None else 0
        logger.info(f"Cache invalidated: {count} entries")
        return count

    def get_size(self) -> int:
        return len(self._entries)

    def in_flight(self) -> int:
        return len(self._in_flight)

    def get_info(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "in_flight": len(self._in_flight),
            "hits": self.stats.hits,
            "misses": self.stats.misses,
            "coalesced": self.stats.coalesced,
            "evictions": self.stats.evictions,
            "hit_rate": round(self.stats.hit_rate, 4),
        }
