"""
Placeholder (demo) dashboard for subjects that cannot be resolved or whose
data could not be fetched in time.

The data is fixed and run through the same engine as real data, so the
result is internally consistent and clearly labelled as a placeholder.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from pnl.achievements import calculate_achievements
from pnl.fifo import match_trades
from pnl.history import build_history
from pnl.models import (
    ClosedPositionRecord,
    DashboardData,
    Outcome,
    Position,
    PositionStatus,
    Profile,
    Trade,
    TradeSide,
)
from pnl.normalize import utcnow
from pnl.stats import aggregate

PLACEHOLDER_WALLET = "0x0000000000000000000000000000000000000000"

# (market, outcome, entry, current, size, days open)
_DEMO_POSITIONS = [
    ("Will Bitcoin reach $100k in 2025?", "YES", 0.65, 0.72, 100.0, 7),
    ("Will AI surpass human intelligence by 2030?", "NO", 0.45, 0.38, 150.0, 5),
    ("US Presidential Election 2024", "YES", 0.55, 0.48, 200.0, 3),
]

# (market, side, outcome, price, size, hours ago)
_DEMO_TRADES = [
    ("Will Bitcoin reach $100k in 2025?", TradeSide.BUY, Outcome.YES, 0.72, 50.0, 1),
    ("US Presidential Election 2024", TradeSide.SELL, Outcome.YES, 0.48, 100.0, 3),
    ("Will AI surpass human intelligence by 2030?", TradeSide.BUY, Outcome.NO, 0.38, 75.0, 6),
    ("Climate change resolution passed?", TradeSide.SELL, Outcome.NO, 0.62, 120.0, 12),
    ("Will Bitcoin reach $100k in 2025?", TradeSide.BUY, Outcome.YES, 0.65, 100.0, 24),
    ("US Presidential Election 2024", TradeSide.BUY, Outcome.YES, 0.55, 300.0, 72),
    ("Climate change resolution passed?", TradeSide.BUY, Outcome.NO, 0.49, 120.0, 96),
]

# Repeating daily realized results for the demo history
_DEMO_DAILY_PNL = [12.5, -4.0, 8.25, 3.0, -6.5, 15.0, -2.25]


def _demo_positions(now: datetime) -> List[Position]:
    positions = []
    for i, (market, outcome, entry, current, size, days) in enumerate(_DEMO_POSITIONS, start=1):
        positions.append(Position(
            id=f"demo-pos{i}",
            market=market,
            market_id=f"demo-market{i}",
            outcome=outcome,
            entry_price=entry,
            current_price=current,
            size=size,
            unrealized_pnl=(current - entry) * size,
            status=PositionStatus.ACTIVE,
            opened_at=now - timedelta(days=days),
        ))
    return positions


def _demo_trades(now: datetime) -> List[Trade]:
    return [
        Trade(
            id=f"demo-trade{i}",
            timestamp=now - timedelta(hours=hours),
            market=market,
            side=side,
            outcome=outcome,
            price=price,
            size=size,
        )
        for i, (market, side, outcome, price, size, hours) in enumerate(_DEMO_TRADES, start=1)
    ]


def _demo_closed_positions(now: datetime, days: int = 30) -> List[ClosedPositionRecord]:
    return [
        ClosedPositionRecord(
            market=f"Demo market {day}",
            outcome="YES",
            realized_pnl=_DEMO_DAILY_PNL[day % len(_DEMO_DAILY_PNL)],
            end_date=now - timedelta(days=days - day),
        )
        for day in range(days)
    ]


def placeholder_dashboard(username: Optional[str] = None, now: Optional[datetime] = None) -> DashboardData:
    now = now or utcnow()
    positions = _demo_positions(now)
    trades = _demo_trades(now)
    closed = _demo_closed_positions(now)

    fifo = match_trades(trades)
    stats = aggregate(
        positions,
        trades,
        [],
        PLACEHOLDER_WALLET,
        closed_positions=closed,
        fifo=fifo,
    )
    history = build_history([], closed, stats.total_pnl, trades=trades, now=now)
    recent = sorted(fifo.trades_with_pnl, key=lambda t: t.timestamp, reverse=True)

    return DashboardData(
        profile=Profile(
            username=username or "demo_user",
            wallet=PLACEHOLDER_WALLET,
            display_name="Demo account",
            bio="Demo account for preview",
        ),
        stats=stats,
        pnl_history=history,
        positions=positions,
        recent_trades=recent,
        achievements=calculate_achievements(stats, trades),
        is_placeholder=True,
    )
