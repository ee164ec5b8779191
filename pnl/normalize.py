"""
Normalization of raw Data API / subgraph records into domain models.

Upstream payloads are inconsistently shaped: numbers arrive as strings,
timestamps as seconds, milliseconds or ISO dates, and field names vary
between endpoints. Everything here is total: a malformed record degrades
to defaults instead of raising.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from config.system_constants import COLLATERAL_SCALE, MILLISECOND_TIMESTAMP_THRESHOLD
from pnl.models import (
    ActivityEvent,
    ActivityKind,
    ClosedPositionRecord,
    LeaderboardEntry,
    Outcome,
    Position,
    PositionStatus,
    Trade,
    TradeSide,
)

logger = logging.getLogger(__name__)

UNKNOWN_MARKET = "Unknown Market"

_ACTIVITY_KIND_ALIASES = {
    "WITHDRAW": ActivityKind.WITHDRAWAL,
    "WITHDRAWAL": ActivityKind.WITHDRAWAL,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse epoch seconds, epoch milliseconds or an ISO-8601 string (UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    number = None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip().replace(".", "", 1).isdigit():
        number = float(value)

    if number is not None:
        if number > MILLISECOND_TIMESTAMP_THRESHOLD:
            number /= 1000.0
        try:
            return datetime.fromtimestamp(number, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Unparseable timestamp: {value!r}")
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    return None


def _market_name(raw: Dict[str, Any]) -> str:
    market = raw.get("market")
    if isinstance(market, dict):
        market = market.get("question")
    return raw.get("title") or market or UNKNOWN_MARKET


def _side(value: Any) -> Optional[TradeSide]:
    if not isinstance(value, str):
        return None
    upper = value.upper()
    if upper == "BUY":
        return TradeSide.BUY
    if upper == "SELL":
        return TradeSide.SELL
    return None


def _outcome(value: Any) -> Outcome:
    if isinstance(value, str) and value.upper() == "NO":
        return Outcome.NO
    return Outcome.YES


# ============================================================================
# DATA API RECORDS
# ============================================================================

def normalize_activity(raw: Dict[str, Any]) -> ActivityEvent:
    kind_name = str(raw.get("type") or "").upper()
    kind = _ACTIVITY_KIND_ALIASES.get(kind_name)
    if kind is None:
        try:
            kind = ActivityKind(kind_name)
        except ValueError:
            kind = ActivityKind.OTHER

    return ActivityEvent(
        kind=kind,
        amount=to_float(raw.get("usdcSize")),
        timestamp=parse_timestamp(raw.get("timestamp")) or utcnow(),
        side=_side(raw.get("side")),
        market=raw.get("title") or raw.get("conditionId"),
        outcome=raw.get("outcome"),
    )


def normalize_trade(raw: Dict[str, Any], index: int = 0) -> Trade:
    return Trade(
        id=str(raw.get("transactionHash") or raw.get("id") or f"trade-{index}"),
        timestamp=parse_timestamp(raw.get("timestamp")) or utcnow(),
        market=_market_name(raw),
        side=_side(raw.get("side")) or TradeSide.SELL,
        outcome=_outcome(raw.get("outcome")),
        price=to_float(raw.get("price")),
        size=to_float(raw.get("size")),
    )


def normalize_position(raw: Dict[str, Any], index: int = 0) -> Position:
    size = to_float(raw.get("size"))
    market = raw.get("market")
    market_id = raw.get("conditionId") or (market.get("condition_id") if isinstance(market, dict) else None)
    return Position(
        id=str(raw.get("asset") or raw.get("id") or f"pos-{index}"),
        market=_market_name(raw),
        market_id=str(market_id or f"market-{index}"),
        outcome=str(raw.get("outcome") or Outcome.YES.value),
        entry_price=to_float(raw.get("avgPrice", raw.get("average_price"))),
        current_price=to_float(raw.get("curPrice", raw.get("current_price"))),
        size=size,
        unrealized_pnl=to_float(raw.get("cashPnl", raw.get("pnl"))),
        status=PositionStatus.ACTIVE if size > 0 else PositionStatus.CLOSED,
        opened_at=parse_timestamp(raw.get("created_at")) or utcnow(),
    )


def normalize_closed_position(raw: Dict[str, Any]) -> ClosedPositionRecord:
    return ClosedPositionRecord(
        market=_market_name(raw),
        outcome=str(raw.get("outcome") or ""),
        realized_pnl=to_float(raw.get("realizedPnl")),
        end_date=parse_timestamp(raw.get("endDate") or raw.get("timestamp")),
        title=raw.get("title") or "",
        token_id=raw.get("asset"),
    )


def normalize_leaderboard_entry(raw: Optional[Dict[str, Any]]) -> LeaderboardEntry:
    if not raw:
        return LeaderboardEntry()
    rank = raw.get("rank")
    return LeaderboardEntry(
        volume=to_float(raw.get("vol")),
        pnl=to_float(raw.get("pnl")),
        rank=int(rank) if rank not in (None, "") and str(rank).isdigit() else None,
        username=raw.get("userName"),
        x_username=raw.get("xUsername"),
    )


# ============================================================================
# SUBGRAPH RECORDS
# ============================================================================

def subgraph_realized_pnl(raw: Dict[str, Any]) -> float:
    """Realized PnL of one subgraph userPosition, in USDC."""
    return to_float(raw.get("realizedPnl")) / COLLATERAL_SCALE


# ============================================================================
# BULK HELPERS
# ============================================================================

def normalize_trades(records: Iterable[Any]) -> List[Trade]:
    return [normalize_trade(raw, i) for i, raw in enumerate(records) if isinstance(raw, dict)]


def normalize_positions(records: Iterable[Any]) -> List[Position]:
    return [normalize_position(raw, i) for i, raw in enumerate(records) if isinstance(raw, dict)]


def normalize_activities(records: Iterable[Any]) -> List[ActivityEvent]:
    return [normalize_activity(raw) for raw in records if isinstance(raw, dict)]


def normalize_closed_positions(records: Iterable[Any]) -> List[ClosedPositionRecord]:
    return [normalize_closed_position(raw) for raw in records if isinstance(raw, dict)]
