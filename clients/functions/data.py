import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from clients.fetcher import FetchThrottle, ResilientFetcher
from clients.pnl_subgraph import PnLSubgraphClient
from clients.polymarket import PolymarketDataAPI, PolymarketGamma, UpstreamUnavailable
from config.settings import settings
from pnl.models import FetchResult, LeaderboardEntry
from pnl.normalize import normalize_leaderboard_entry
from utils.cache import CoalescingCache, make_key
from utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    """
    Process-scoped shared state and upstream clients.

    Built once at startup (API lifespan or script main) and passed by
    reference; nothing here lives in module globals.
    """
    cache: CoalescingCache
    throttle: FetchThrottle
    rate_limiter: RateLimiter
    data_api: PolymarketDataAPI
    gamma: PolymarketGamma
    subgraph: PnLSubgraphClient
    fetcher: ResilientFetcher
    http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def create(cls, http_client: Optional[httpx.AsyncClient] = None) -> "EngineContext":
        if http_client is None:
            http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

        rate_limiter = RateLimiter()
        throttle = FetchThrottle.from_settings()
        data_api = PolymarketDataAPI(rate_limiter=rate_limiter, http_client=http_client)
        gamma = PolymarketGamma(http_client=http_client)
        subgraph = PnLSubgraphClient(http_client=http_client)

        sources = data_api.page_sources()
        sources["subgraph_positions"] = subgraph.user_positions_page

        logger.info("⚙️ Engine context initialized")
        return cls(
            cache=CoalescingCache(max_entries=settings.CACHE_MAX_ENTRIES),
            throttle=throttle,
            rate_limiter=rate_limiter,
            data_api=data_api,
            gamma=gamma,
            subgraph=subgraph,
            fetcher=ResilientFetcher(sources, throttle=throttle),
            http_client=http_client,
        )

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()


class SubjectDataLoader:
    """
    Cached, coalesced access to every paginated resource of a subject.

    A fetch that got no records at all because every page failed is not
    cached; the last good value (up to the stale window) is served instead,
    and UpstreamUnavailable is raised when there is none.
    """

    def __init__(self, context: EngineContext):
        self.context = context
        self.cache = context.cache
        self.fetcher = context.fetcher

    async def _load(self, resource: str, wallet: str, page_size: int, max_pages: int) -> FetchResult:
        key = make_key(resource, wallet)

        async def produce() -> FetchResult:
            result = await self.fetcher.fetch(resource, wallet, page_size, max_pages)
            if not result.records and result.missing_pages:
                raise UpstreamUnavailable(f"{resource} unreachable for {wallet}")
            return result

        try:
            return await self.cache.get_or_fetch(key, settings.RAW_DATA_CACHE_TTL_SECONDS, produce)
        except UpstreamUnavailable:
            stale = self.cache.peek(key, settings.STALE_DASHBOARD_TTL_SECONDS)
            if stale is None:
                raise
            logger.warning(f"♻️ Serving stale {resource} for {wallet[:10]}...")
            return stale

    async def load_positions(self, wallet: str) -> FetchResult:
        return await self._load("positions", wallet, settings.POSITIONS_PAGE_SIZE, settings.MAX_PAGES)

    async def load_trades(self, wallet: str) -> FetchResult:
        return await self._load("trades", wallet, settings.TRADES_PAGE_SIZE, settings.MAX_PAGES)

    async def load_activity(self, wallet: str) -> FetchResult:
        return await self._load("activity", wallet, settings.ACTIVITY_PAGE_SIZE, settings.MAX_PAGES)

    async def load_closed_positions(self, wallet: str) -> FetchResult:
        return await self._load(
            "closed_positions",
            wallet,
            settings.CLOSED_POSITIONS_PAGE_SIZE,
            settings.CLOSED_POSITIONS_MAX_PAGES,
        )

    async def load_subgraph_positions(self, wallet: str) -> FetchResult:
        return await self._load(
            "subgraph_positions",
            wallet,
            settings.SUBGRAPH_PAGE_SIZE,
            settings.SUBGRAPH_MAX_PAGES,
        )

    async def load_leaderboard(self, wallet: str) -> LeaderboardEntry:
        async def produce() -> LeaderboardEntry:
            return normalize_leaderboard_entry(await self.context.data_api.get_leaderboard_entry(wallet))

        return await self.cache.get_or_fetch(
            make_key("leaderboard", wallet),
            settings.RAW_DATA_CACHE_TTL_SECONDS,
            produce,
        )

    async def load_all(self, wallet: str):
        """Positions, trades, activity, closed positions and leaderboard, concurrently."""
        return await asyncio.gather(
            self.load_positions(wallet),
            self.load_trades(wallet),
            self.load_activity(wallet),
            self.load_closed_positions(wallet),
            self.load_leaderboard(wallet),
            return_exceptions=True,
        )
