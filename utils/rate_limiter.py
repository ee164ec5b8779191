"""
Client-side request pacing for the Polymarket Data API.

One token bucket per limit group ("trades", "default"), shared by every
client in the process, so documented limits are respected before the
upstream has to answer with HTTP 429.
"""
import asyncio
import time
import logging
from typing import Callable, Dict, Optional
from dataclasses import dataclass, field

from config.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Pacing for one limit group"""
    requests_per_second: float
    burst_size: int
    timeout: float = 30.0  # longest a caller may queue for a slot

    @property
    def window_capacity(self) -> float:
        """Requests allowed per 10 s window, the unit the upstream documents"""
        return self.requests_per_second * 10


@dataclass
class RateLimitStats:
    endpoint: str
    total_requests: int = 0
    queued_requests: int = 0
    queued_seconds: float = 0.0
    timeouts: int = 0
    since: float = field(default_factory=time.time)

    @property
    def queued_ratio(self) -> float:
        return self.queued_requests / self.total_requests if self.total_requests else 0.0


class TokenBucket:
    """
    Continuous-refill bucket holding at most `burst_size` request slots.

    Callers queue behind a lock, so slots are handed out in arrival order.
    """

    def __init__(self, config: RateLimitConfig, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self._clock = clock
        self._slots = float(config.burst_size)
        self._updated = clock()
        self._lock = asyncio.Lock()

    def available(self) -> float:
        elapsed = self._clock() - self._updated
        return min(self._slots + elapsed * self.config.requests_per_second, float(self.config.burst_size))

    def _take(self) -> float:
        """Take a slot if one is free; otherwise return the seconds until one is."""
        self._slots = self.available()
        self._updated = self._clock()
        if self._slots >= 1:
            self._slots -= 1
            return 0.0
        return (1 - self._slots) / self.config.requests_per_second

    async def acquire(self, timeout: Optional[float] = None) -> float:
        """
        Wait for a request slot.

        Returns:
            Seconds spent waiting

        Raises:
            asyncio.TimeoutError: The slot would arrive after `timeout` seconds
        """
        deadline = self._clock() + (self.config.timeout if timeout is None else timeout)
        started = self._clock()

        async with self._lock:
            while True:
                wait = self._take()
                if wait == 0.0:
                    return self._clock() - started
                if self._clock() + wait > deadline:
                    raise asyncio.TimeoutError(
                        f"No request slot within {deadline - started:.2f}s"
                    )
                await asyncio.sleep(wait)


class RateLimiter:
    """
    Limit groups for the Data API (requests per 10 seconds):
    - GET /trades: 75
    - everything else: 200
    """

    def __init__(self, custom_limits: Optional[Dict[str, RateLimitConfig]] = None):
        self._limits: Dict[str, RateLimitConfig] = {
            "trades": RateLimitConfig(requests_per_second=settings.TRADES_REQUESTS_PER_SECOND, burst_size=8),
            "default": RateLimitConfig(requests_per_second=settings.DEFAULT_REQUESTS_PER_SECOND, burst_size=20),
        }
        self._limits.update(custom_limits or {})
        self._buckets: Dict[str, TokenBucket] = {}
        self._stats: Dict[str, RateLimitStats] = {}

        logger.info(
            "RateLimiter ready: "
            + ", ".join(f"{name}={cfg.window_capacity:.0f}/10s" for name, cfg in self._limits.items())
        )

    def _bucket(self, endpoint: str) -> TokenBucket:
        bucket = self._buckets.get(endpoint)
        if bucket is None:
            config = self._limits.get(endpoint) or self._limits["default"]
            bucket = self._buckets[endpoint] = TokenBucket(config)
            self._stats[endpoint] = RateLimitStats(endpoint=endpoint)
        return bucket

    async def acquire(self, endpoint: str = "default", timeout: Optional[float] = None) -> None:
        """
        Wait for a slot in the endpoint's limit group.

        Raises:
            asyncio.TimeoutError: If timeout exceeded
        """
        bucket = self._bucket(endpoint)
        stats = self._stats[endpoint]
        stats.total_requests += 1

        try:
            waited = await bucket.acquire(timeout)
        except asyncio.TimeoutError:
            stats.timeouts += 1
            logger.warning(f"⏳ Rate limit queue timeout for {endpoint}")
            raise

        if waited > 0.01:
            stats.queued_requests += 1
            stats.queued_seconds += waited

    def get_stats(self, endpoint: Optional[str] = None) -> Dict[str, RateLimitStats]:
        if endpoint:
            self._bucket(endpoint)
            return {endpoint: self._stats[endpoint]}
        return dict(self._stats)
