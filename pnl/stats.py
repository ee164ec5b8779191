"""
Stats aggregator.

Composes ledger, FIFO and authoritative figures into one PortfolioStats.
Redundant signals are never averaged: each figure comes from the first
provider in priority order that has real output.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from pnl.fifo import match_trades
from pnl.ledger import compute_balance
from pnl.models import (
    ActivityEvent,
    AuthoritativePnL,
    ClosedPositionRecord,
    LedgerBalance,
    PortfolioStats,
    Position,
    PositionStatus,
    Trade,
    TradeMetrics,
)

logger = logging.getLogger(__name__)

Provider = Tuple[str, Callable[[], Optional[float]]]


def first_available(providers: Sequence[Provider]) -> Tuple[str, float]:
    """Return (name, value) of the first provider yielding a value."""
    for name, provider in providers:
        value = provider()
        if value is not None:
            return name, value
    return "none", 0.0


def realized_pnl_providers(
    authoritative: Optional[AuthoritativePnL],
    fifo: TradeMetrics,
    ledger: LedgerBalance,
) -> List[Provider]:
    """Authoritative first, then FIFO matching, then the cash-flow ledger."""

    def from_authoritative() -> Optional[float]:
        if authoritative is None:
            return None
        if authoritative.realized_pnl or authoritative.complete:
            return authoritative.realized_pnl
        return None

    def from_fifo() -> Optional[float]:
        return fifo.realized_pnl if fifo.matched_sells else None

    def from_ledger() -> Optional[float]:
        return ledger.realized_pnl if ledger.events_processed else None

    return [
        ("authoritative", from_authoritative),
        ("fifo", from_fifo),
        ("ledger", from_ledger),
    ]


def best_worst_trade(
    authoritative: Optional[AuthoritativePnL],
    closed_positions: Sequence[ClosedPositionRecord],
    fifo: TradeMetrics,
    positions: Sequence[Position],
) -> Tuple[str, float, float]:
    """
    Best/worst single result, from the first tier with nonzero data:
    1. authoritative closed-position list
    2. paginated closed-position endpoint
    3. FIFO-matched trades
    4. unrealized PnL of open positions
    """
    tiers = [
        ("authoritative", list(authoritative.closed_position_pnls) if authoritative else []),
        ("closed_positions", [r.realized_pnl for r in closed_positions]),
        ("fifo", [t.profit for t in fifo.trades_with_pnl if t.profit is not None]),
        ("positions", [p.unrealized_pnl for p in positions]),
    ]
    for name, values in tiers:
        if any(values):
            return name, max(values), min(values)
    return "none", 0.0, 0.0


def closed_position_win_metrics(records: Sequence[ClosedPositionRecord]) -> Tuple[float, int]:
    """Win rate (percent) and longest win streak over dated closed positions."""
    wins = sum(1 for r in records if r.realized_pnl > 0)
    losses = sum(1 for r in records if r.realized_pnl < 0)
    decided = wins + losses
    win_rate = wins / decided * 100 if decided else 0.0

    dated = sorted((r for r in records if r.end_date), key=lambda r: r.end_date)
    streak = best = 0
    for record in dated:
        if record.realized_pnl > 0:
            streak += 1
            best = max(best, streak)
        elif record.realized_pnl < 0:
            streak = 0
    return win_rate, best


def aggregate(
    positions: Sequence[Position],
    trades: Sequence[Trade],
    activity: Sequence[ActivityEvent],
    subject: str,
    *,
    authoritative: Optional[AuthoritativePnL] = None,
    closed_positions: Sequence[ClosedPositionRecord] = (),
    volume: Optional[float] = None,
    fifo: Optional[TradeMetrics] = None,
    ledger: Optional[LedgerBalance] = None,
    data_complete: bool = True,
) -> PortfolioStats:
    """
    Build the portfolio summary for one subject.

    Args:
        positions: Current positions
        trades: Trade history (any order)
        activity: Activity events in upstream order
        subject: Wallet address, for logging
        authoritative: Subgraph/positions PnL, preferred when present
        closed_positions: Closed-position records from the paginated endpoint
        volume: Authoritative (leaderboard) volume, used when positive
        fifo: Precomputed FIFO metrics (computed here when None)
        ledger: Precomputed ledger balance (computed here when None)
        data_complete: Whether every upstream fetch reached its last page

    Returns:
        PortfolioStats
    """
    fifo = fifo if fifo is not None else match_trades(trades)
    ledger = ledger if ledger is not None else compute_balance(activity)

    active = [p for p in positions if p.status == PositionStatus.ACTIVE]
    open_value = sum(p.current_value for p in active)

    realized_source, realized = first_available(realized_pnl_providers(authoritative, fifo, ledger))

    if authoritative is not None:
        unrealized = authoritative.unrealized_pnl
        total_value = authoritative.portfolio_value
    else:
        unrealized = sum(p.unrealized_pnl for p in positions)
        total_value = ledger.cash_balance + open_value

    trade_source, best, worst = best_worst_trade(authoritative, closed_positions, fifo, positions)

    if fifo.matched_sells:
        win_rate, win_streak = fifo.win_rate, fifo.win_streak
    elif closed_positions:
        win_rate, win_streak = closed_position_win_metrics(closed_positions)
    elif authoritative and authoritative.closed_position_pnls:
        win_rate, win_streak = closed_position_win_metrics(
            [ClosedPositionRecord(market="", outcome="", realized_pnl=v) for v in authoritative.closed_position_pnls]
        )
    else:
        win_rate, win_streak = 0.0, 0

    total_volume = volume if volume and volume > 0 else sum(t.notional for t in trades)

    if authoritative is not None and authoritative.closed_positions:
        closed_count = authoritative.closed_positions
    else:
        closed_count = len(closed_positions)

    active_count = len(active) if positions or authoritative is None else authoritative.open_positions

    stats = PortfolioStats(
        total_value=total_value,
        total_pnl=realized + unrealized,
        realized_pnl=realized,
        unrealized_pnl=unrealized,
        total_volume=total_volume,
        total_trades=len(trades),
        win_rate=win_rate,
        best_trade=best,
        worst_trade=worst,
        active_positions=active_count,
        closed_positions=closed_count,
        open_positions_value=open_value,
        win_streak=win_streak,
        cash_balance=ledger.cash_balance,
        realized_pnl_source=realized_source,
        ledger_realized_pnl=ledger.realized_pnl,
        fifo_realized_pnl=fifo.realized_pnl,
        activity_truncated=ledger.truncated,
        data_complete=data_complete,
    )

    logger.info(
        f"💼 {subject[:10]}...: total PnL ${stats.total_pnl:,.2f} "
        f"(realized ${realized:,.2f} via {realized_source}, unrealized ${unrealized:,.2f}), "
        f"best/worst via {trade_source}, ledger ${ledger.realized_pnl:,.2f}, fifo ${fifo.realized_pnl:,.2f}"
    )
    return stats
