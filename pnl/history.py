"""
PnL history reconstruction.

No upstream source has both full coverage and reliable timestamps, so the
series is built from closed-position records (cumulative realized PnL by end
date) and then pinned to the authoritative final figure at "now".
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from pnl.models import (
    ActivityEvent,
    ActivityKind,
    ClosedPositionRecord,
    PnLDataPoint,
    Trade,
)
from pnl.normalize import utcnow

logger = logging.getLogger(__name__)


def _latest_by_market(items, market_attr: str = "market") -> Dict[str, datetime]:
    latest: Dict[str, datetime] = {}
    for item in items:
        market = getattr(item, market_attr)
        if not market:
            continue
        if market not in latest or item.timestamp > latest[market]:
            latest[market] = item.timestamp
    return latest


def _date_records(
    records: Sequence[ClosedPositionRecord],
    activity_events: Sequence[ActivityEvent],
    trades: Optional[Sequence[Trade]],
    now: datetime,
) -> List[tuple]:
    """Pair each record with a usable end date, borrowing one when missing."""
    redeemed_at = _latest_by_market(e for e in activity_events if e.kind == ActivityKind.REDEEM)
    traded_at = _latest_by_market(trades or [])

    dated = []
    dropped = 0
    for record in records:
        end_date = record.end_date or redeemed_at.get(record.market) or traded_at.get(record.market)
        if end_date is None:
            dropped += 1
            continue
        dated.append((min(end_date, now), record))

    if dropped:
        logger.debug(f"History: dropped {dropped} closed positions without any date")
    return dated


def _sample(points: List[PnLDataPoint], max_points: int) -> List[PnLDataPoint]:
    """Evenly thin points down to max_points, always keeping the last one."""
    if max_points <= 0 or len(points) <= max_points:
        return points
    step = len(points) / max_points
    sampled = [points[int(i * step)] for i in range(max_points - 1)]
    sampled.append(points[-1])
    return sampled


def build_history(
    activity_events: Sequence[ActivityEvent],
    closed_positions: Sequence[ClosedPositionRecord],
    authoritative_final_pnl: float,
    trades: Optional[Sequence[Trade]] = None,
    now: Optional[datetime] = None,
    max_points: Optional[int] = None,
) -> List[PnLDataPoint]:
    """
    Build a cumulative PnL time series.

    Args:
        activity_events: Activity events, used to date closed positions
        closed_positions: Closed-position records (possibly capped upstream)
        authoritative_final_pnl: Headline total PnL the series must end on
        trades: Optional trades, second source for missing end dates
        now: Reference time for the terminal point (defaults to UTC now)
        max_points: Optional cap on the number of record points

    Returns:
        Points non-decreasing in timestamp whose last value equals
        authoritative_final_pnl
    """
    now = now or utcnow()
    dated = _date_records(closed_positions, activity_events, trades, now)

    if not dated:
        return [
            PnLDataPoint(timestamp=now - timedelta(days=1), value=authoritative_final_pnl),
            PnLDataPoint(timestamp=now, value=authoritative_final_pnl),
        ]

    dated.sort(key=lambda pair: pair[0])

    points: List[PnLDataPoint] = []
    cumulative = 0.0
    for end_date, record in dated:
        cumulative += record.realized_pnl
        points.append(PnLDataPoint(timestamp=end_date, value=cumulative))

    if max_points:
        points = _sample(points, max_points)

    points.append(PnLDataPoint(timestamp=now, value=authoritative_final_pnl))

    logger.debug(
        f"History: {len(points)} points from {len(dated)} closed positions, "
        f"reconstructed ${cumulative:,.2f} vs final ${authoritative_final_pnl:,.2f}"
    )
    return points
