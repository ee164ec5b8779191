"""
Dashboard orchestration.

Execution flow per request:
1. Validate and resolve the identifier (username or wallet)
2. Start the authoritative PnL computation (coalesced, awaited fully)
3. Fan out positions, trades, activity, closed positions and leaderboard
4. Reconcile everything into stats, a PnL series and achievements

Degradation:
- Unknown subject -> placeholder dashboard
- Data fetch deadline exceeded -> placeholder dashboard
- Every core fetch unreachable -> UpstreamUnavailable
- Whole-request deadline exceeded -> stale dashboard or ComputationTimeout
"""

import asyncio
import logging
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional

from clients.functions.data import EngineContext, SubjectDataLoader
from clients.functions.pnl import AuthoritativePnLService
from clients.polymarket import PolymarketGamma, UpstreamError, UpstreamNotFound, UpstreamUnavailable
from config.settings import settings
from config.system_constants import MIN_SEARCH_QUERY_LENGTH, USERNAME_PATTERN, WALLET_PATTERN
from pnl.achievements import calculate_achievements
from pnl.fifo import match_trades
from pnl.history import build_history
from pnl.ledger import compute_balance
from pnl.models import (
    AuthoritativePnL,
    DashboardData,
    FetchResult,
    LeaderboardEntry,
    PositionStatus,
    Profile,
)
from pnl.normalize import (
    normalize_activities,
    normalize_closed_positions,
    normalize_positions,
    normalize_trades,
    utcnow,
)
from pnl.placeholder import placeholder_dashboard
from pnl.stats import aggregate
from utils.cache import make_key

logger = logging.getLogger(__name__)

_USERNAME_RE = re.compile(USERNAME_PATTERN)
_WALLET_RE = re.compile(WALLET_PATTERN)


class InvalidSubject(ValueError):
    """Identifier is malformed."""


class ComputationTimeout(Exception):
    """Whole-request deadline exceeded."""


def is_wallet(identifier: str) -> bool:
    return bool(_WALLET_RE.match(identifier))


def validate_identifier(identifier: str) -> str:
    identifier = (identifier or "").strip()
    if not identifier or not (_USERNAME_RE.match(identifier) or is_wallet(identifier)):
        raise InvalidSubject(f"Invalid username format: {identifier!r}")
    return identifier


class DashboardService:
    """Builds dashboards, wallet PnL summaries and username suggestions."""

    def __init__(self, context: EngineContext):
        self.context = context
        self.cache = context.cache
        self.gamma: PolymarketGamma = context.gamma
        self.loader = SubjectDataLoader(context)
        self.pnl = AuthoritativePnLService(self.loader)

    # ========================================================================
    # AUTHORITATIVE PNL
    # ========================================================================

    async def authoritative_pnl(self, wallet: str) -> Optional[AuthoritativePnL]:
        """Coalesced authoritative PnL; None when its sources are unreachable."""
        try:
            return await self.cache.get_or_fetch(
                make_key("pnl", wallet),
                settings.PNL_CACHE_TTL_SECONDS,
                lambda: self.pnl.compute(wallet),
            )
        except UpstreamError as e:
            logger.warning(f"⚠️ Authoritative PnL unavailable for {wallet[:10]}...: {e}")
            return None

    async def get_wallet_pnl(self, wallet: str) -> AuthoritativePnL:
        """PnL summary for a leaderboard row; zeros when upstream fails."""
        if not is_wallet(wallet):
            raise InvalidSubject(f"Invalid wallet address: {wallet!r}")
        return await self.authoritative_pnl(wallet.lower()) or AuthoritativePnL()

    # ========================================================================
    # PROFILES
    # ========================================================================

    async def resolve(self, identifier: str) -> Profile:
        """
        Resolve an identifier to a Profile.

        Raises:
            UpstreamNotFound: No profile matches the username
            UpstreamUnavailable: Profile search unreachable
        """
        if is_wallet(identifier):
            return Profile(username=identifier, wallet=identifier.lower())

        raw = await self.gamma.resolve_profile(identifier)
        names = PolymarketGamma.profile_names(raw)
        return Profile(
            username=names[0] if names else identifier,
            wallet=PolymarketGamma.profile_wallet(raw).lower(),
            display_name=raw.get("displayName") or raw.get("name"),
            profile_image=raw.get("profileImage") or raw.get("profile_image_url"),
            bio=raw.get("bio") or raw.get("description"),
        )

    async def search_usernames(self, query: str) -> List[str]:
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_QUERY_LENGTH:
            return []

        async def produce() -> List[str]:
            names: List[str] = []
            for profile in await self.gamma.search_profiles(query):
                candidates = PolymarketGamma.profile_names(profile)
                if candidates and candidates[0] not in names:
                    names.append(candidates[0])
            return names[:settings.SEARCH_RESULTS_LIMIT]

        try:
            return await self.cache.get_or_fetch(
                make_key("search", query),
                settings.SEARCH_CACHE_TTL_SECONDS,
                produce,
            )
        except UpstreamError as e:
            logger.warning(f"⚠️ Profile search failed for '{query}': {e}")
            return []

    # ========================================================================
    # DASHBOARD
    # ========================================================================

    async def get_dashboard(self, identifier: str) -> DashboardData:
        """
        Build the dashboard for a username or wallet.

        Raises:
            InvalidSubject: Malformed identifier
            UpstreamUnavailable: Upstream unreachable and nothing cached
            ComputationTimeout: Request deadline exceeded and nothing cached
        """
        identifier = validate_identifier(identifier)
        stale_key = make_key("dashboard", identifier)

        try:
            dashboard = await asyncio.wait_for(
                self._build(identifier),
                timeout=settings.REQUEST_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            stale = self.cache.peek(stale_key, settings.STALE_DASHBOARD_TTL_SECONDS)
            if stale is not None:
                logger.warning(f"⏱️ Deadline exceeded for {identifier}, serving stale dashboard")
                return stale
            raise ComputationTimeout(
                f"Request for {identifier} took longer than {settings.REQUEST_TIMEOUT_SECONDS:.0f}s"
            )

        if not dashboard.is_placeholder:
            self.cache.set(stale_key, dashboard)
        return dashboard

    async def _build(self, identifier: str) -> DashboardData:
        try:
            profile = await self.resolve(identifier)
        except UpstreamNotFound as e:
            logger.info(f"👻 {identifier} not found upstream ({e}), returning placeholder data")
            return placeholder_dashboard(identifier)

        wallet = profile.wallet
        pnl_task = asyncio.ensure_future(self.authoritative_pnl(wallet))

        try:
            results = await asyncio.wait_for(
                self.loader.load_all(wallet),
                timeout=settings.DATA_FETCH_TIMEOUT_SECONDS,
            )
            data = self._unpack(identifier, results)
        except asyncio.TimeoutError:
            pnl_task.cancel()
            logger.warning(
                f"⏱️ Data fetch for {identifier} exceeded {settings.DATA_FETCH_TIMEOUT_SECONDS:.0f}s, "
                f"returning placeholder data"
            )
            return placeholder_dashboard(identifier)
        except BaseException:
            pnl_task.cancel()
            raise

        authoritative = await pnl_task
        return self._assemble(profile, data, authoritative)

    def _unpack(self, identifier: str, results: List[Any]) -> Dict[str, Any]:
        """Split gather results into data, raising when every core fetch failed."""
        names = ("positions", "trades", "activity", "closed_positions", "leaderboard")
        data: Dict[str, Any] = {}
        failures = []

        for name, result in zip(names, results):
            if isinstance(result, UpstreamError):
                logger.warning(f"⚠️ {name} unavailable for {identifier}: {result}")
                failures.append(name)
                data[name] = None
            elif isinstance(result, BaseException):
                raise result
            else:
                data[name] = result

        if all(name in failures for name in ("positions", "trades", "activity")):
            raise UpstreamUnavailable(f"Polymarket is unreachable for {identifier}")
        return data

    def _assemble(
        self,
        profile: Profile,
        data: Dict[str, Any],
        authoritative: Optional[AuthoritativePnL],
    ) -> DashboardData:
        fetches: List[FetchResult] = [
            data[name] for name in ("positions", "trades", "activity", "closed_positions") if data[name]
        ]
        data_complete = len(fetches) == 4 and all(f.complete and not f.missing_pages for f in fetches)

        def records(name: str) -> List[dict]:
            return data[name].records if data[name] else []

        positions = normalize_positions(records("positions"))
        trades = normalize_trades(records("trades"))
        activity = normalize_activities(records("activity"))
        closed = normalize_closed_positions(records("closed_positions"))
        leaderboard: LeaderboardEntry = data["leaderboard"] or LeaderboardEntry()

        fifo = match_trades(trades)
        ledger = compute_balance(activity)
        stats = aggregate(
            positions,
            trades,
            activity,
            profile.wallet,
            authoritative=authoritative,
            closed_positions=closed,
            volume=leaderboard.volume,
            fifo=fifo,
            ledger=ledger,
            data_complete=data_complete,
        )

        history = build_history(
            activity,
            closed,
            stats.total_pnl,
            trades=trades,
            now=utcnow(),
            max_points=settings.PNL_HISTORY_MAX_POINTS,
        )
        recent = sorted(fifo.trades_with_pnl, key=lambda t: t.timestamp, reverse=True)

        if leaderboard.rank is not None:
            profile = replace(profile, rank=leaderboard.rank)

        return DashboardData(
            profile=profile,
            stats=stats,
            pnl_history=history,
            positions=[p for p in positions if p.status == PositionStatus.ACTIVE],
            recent_trades=recent[:settings.RECENT_TRADES_LIMIT],
            achievements=calculate_achievements(stats, trades),
        )
