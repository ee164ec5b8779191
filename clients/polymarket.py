"""
Polymarket API Clients

Data API (trades, activity, positions, closed positions, leaderboard) and
Gamma API (profile search).

Every HTTP failure is translated into the Upstream* exception family so
callers can tell rate limiting, missing subjects and outages apart.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from config.settings import settings
from utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

PageFunction = Callable[[str, int, int], Awaitable[List[Dict[str, Any]]]]


# Exceptions
class PolymarketError(Exception):
    pass


class UpstreamError(PolymarketError):
    """Upstream request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamRateLimited(UpstreamError):
    """HTTP 429."""


class UpstreamUnavailable(UpstreamError):
    """5xx, timeout or transport failure."""


class UpstreamNotFound(UpstreamError):
    """Subject or resource does not exist upstream."""


def raise_for_upstream(response: httpx.Response) -> None:
    """Map a non-2xx response onto the Upstream* exceptions."""
    status = response.status_code
    if status < 400:
        return
    message = f"{response.request.method} {response.request.url.path} -> HTTP {status}"
    if status == 429:
        raise UpstreamRateLimited(message, status)
    if status == 404:
        raise UpstreamNotFound(message, status)
    if status >= 500:
        raise UpstreamUnavailable(message, status)
    raise UpstreamError(message, status)


class _HttpBase:
    """Shared request plumbing: optional injected client, error mapping."""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._client = http_client

    async def _send(self, method: str, url: str, **kwargs) -> Any:
        try:
            if self._client is not None:
                response = await self._client.request(method, url, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(f"{method} {url} timed out: {e}") from e
        except httpx.TransportError as e:
            raise UpstreamUnavailable(f"{method} {url} failed: {e}") from e

        raise_for_upstream(response)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"{method} {url} returned invalid JSON") from e

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


class PolymarketDataAPI(_HttpBase):
    """
    Polymarket Data API wrapper.

    Official API limits (requests per 10 seconds):
    - GET /trades: 75 req/10s (7.5 req/s)
    - Other endpoints: 200 req/10s (20 req/s)

    Requests are paced through a shared RateLimiter; list endpoints always
    return a list (non-list payloads become an empty page).
    """

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(settings.POLYMARKET_DATA_URL, timeout, http_client)
        self.rate_limiter = rate_limiter or RateLimiter()

    async def _get(self, endpoint: str, params: Dict[str, Any], limit_group: str = "default") -> Any:
        try:
            await self.rate_limiter.acquire(limit_group)
        except asyncio.TimeoutError as e:
            raise UpstreamRateLimited(f"Local rate limit wait exceeded for {endpoint}") from e
        return await self._send("GET", f"{self.base_url}{endpoint}", params=params)

    async def _get_list(self, endpoint: str, params: Dict[str, Any], limit_group: str = "default") -> List[Dict[str, Any]]:
        data = await self._get(endpoint, params, limit_group)
        if not isinstance(data, list):
            logger.debug(f"{endpoint} returned {type(data).__name__}, treating as empty page")
            return []
        return data

    async def get_trades(self, user: str, limit: int = 500, offset: int = 0, **kwargs) -> List[Dict[str, Any]]:
        """
        Fetch trades for a wallet.

        Args:
            user: Wallet address (0x-prefixed)
            limit: Results per page
            offset: Pagination offset (max 10,000)
            **kwargs: Additional query parameters

        Returns:
            List of trade objects
        """
        params = {"user": user, "limit": limit, "offset": offset, **kwargs}
        return await self._get_list("/trades", params, limit_group="trades")

    async def get_activity(self, user: str, limit: int = 500, offset: int = 0, **kwargs) -> List[Dict[str, Any]]:
        """Fetch activity events (TRADE, REDEEM, DEPOSIT, ...) for a wallet, newest first."""
        params = {"user": user, "limit": limit, "offset": offset, **kwargs}
        return await self._get_list("/activity", params)

    async def get_positions(self, user: str, limit: int = 500, offset: int = 0, **kwargs) -> List[Dict[str, Any]]:
        """Fetch current positions with avgPrice, curPrice, cashPnl and currentValue."""
        params = {"user": user, "limit": limit, "offset": offset, **kwargs}
        return await self._get_list("/positions", params)

    async def get_closed_positions(
        self,
        user: str,
        limit: int = 50,
        offset: int = 0,
        sort_by: str = "REALIZEDPNL",
        sort_direction: str = "DESC",
        **kwargs
    ) -> List[Dict[str, Any]]:
        """
        Fetch closed positions for a wallet.

        Args:
            user: Wallet address (0x-prefixed)
            limit: Results per page (upstream caps this well below the true count)
            offset: Pagination offset
            sort_by: REALIZEDPNL, TITLE, PRICE, AVGPRICE, TIMESTAMP
            sort_direction: ASC or DESC

        Returns:
            List of closed position objects
        """
        params = {
            "user": user,
            "limit": limit,
            "offset": offset,
            "sortBy": sort_by,
            "sortDirection": sort_direction,
            **kwargs,
        }
        return await self._get_list("/closed-positions", params)

    async def get_leaderboard_entry(self, user: str, time_period: str = "all") -> Optional[Dict[str, Any]]:
        """Fetch the wallet's all-time leaderboard row (vol, pnl, rank), if ranked."""
        params = {
            "timePeriod": time_period,
            "orderBy": "VOL",
            "limit": 1,
            "offset": 0,
            "category": "overall",
            "user": user,
        }
        rows = await self._get_list("/v1/leaderboard", params)
        return rows[0] if rows else None

    def page_sources(self) -> Dict[str, PageFunction]:
        """Paginated resources keyed by name, as (subject, offset, limit) page functions."""

        async def trades(subject: str, offset: int, limit: int):
            return await self.get_trades(subject, limit=limit, offset=offset)

        async def activity(subject: str, offset: int, limit: int):
            return await self.get_activity(subject, limit=limit, offset=offset)

        async def positions(subject: str, offset: int, limit: int):
            return await self.get_positions(subject, limit=limit, offset=offset)

        async def closed_positions(subject: str, offset: int, limit: int):
            return await self.get_closed_positions(subject, limit=limit, offset=offset)

        return {
            "trades": trades,
            "activity": activity,
            "positions": positions,
            "closed_positions": closed_positions,
        }


class PolymarketGamma(_HttpBase):
    """Gamma API - profile search"""

    NAME_FIELDS = ("name", "username", "pseudonym", "displayName", "display_name", "handle")
    WALLET_FIELDS = ("proxyWallet", "wallet", "address", "walletAddress")

    def __init__(self, timeout: Optional[float] = None, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(settings.POLYMARKET_GAMMA_URL, timeout, http_client)

    @staticmethod
    def _extract_profiles(data: Any) -> List[Dict[str, Any]]:
        """Profiles may be the root array or nested under profiles/data/results."""
        if isinstance(data, list):
            return [p for p in data if isinstance(p, dict)]
        if not isinstance(data, dict):
            return []
        for candidate in (
            data.get("profiles"),
            (data.get("data") or {}).get("profiles") if isinstance(data.get("data"), dict) else None,
            data.get("results"),
        ):
            if isinstance(candidate, list):
                return [p for p in candidate if isinstance(p, dict)]
        return []

    @classmethod
    def profile_names(cls, profile: Dict[str, Any]) -> List[str]:
        return [str(profile[f]) for f in cls.NAME_FIELDS if profile.get(f)]

    @classmethod
    def profile_wallet(cls, profile: Dict[str, Any]) -> Optional[str]:
        for f in cls.WALLET_FIELDS:
            if profile.get(f):
                return str(profile[f])
        return None

    async def search_profiles(self, query: str) -> List[Dict[str, Any]]:
        data = await self._send(
            "GET",
            f"{self.base_url}/public-search",
            params={"q": query, "search_profiles": "true"},
        )
        return self._extract_profiles(data)

    async def resolve_profile(self, username: str) -> Dict[str, Any]:
        """
        Resolve a username to a profile carrying a wallet.

        Exact (case-insensitive) name match wins, otherwise the first profile
        with a wallet.

        Raises:
            UpstreamNotFound: No profile with a wallet matches
        """
        profiles = [p for p in await self.search_profiles(username) if self.profile_wallet(p)]
        if not profiles:
            raise UpstreamNotFound(f"User not found: {username}")

        wanted = username.lower()
        for profile in profiles:
            if any(name.lower() == wanted for name in self.profile_names(profile)):
                return profile

        logger.info(f"🔎 No exact profile match for '{username}', using first result")
        return profiles[0]
