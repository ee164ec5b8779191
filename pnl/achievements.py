"""Achievement badges derived from portfolio stats."""

from typing import List, Sequence

from config.system_constants import (
    ACHIEVEMENT_ACTIVE_POSITIONS,
    ACHIEVEMENT_PROFIT,
    ACHIEVEMENT_TRADE_COUNT,
    ACHIEVEMENT_VOLUME,
    ACHIEVEMENT_WIN_STREAK,
)
from pnl.models import Achievement, PortfolioStats, Trade


def _badge(id: str, name: str, description: str, icon: str, value: float, total: float) -> Achievement:
    return Achievement(
        id=id,
        name=name,
        description=description,
        icon=icon,
        unlocked=value >= total,
        progress=max(0.0, min(value, total)),
        total=total,
    )


def calculate_achievements(stats: PortfolioStats, trades: Sequence[Trade]) -> List[Achievement]:
    return [
        _badge("first_trade", "First Trade", "Complete your first trade", "star",
               len(trades), 1),
        _badge("win_streak_5", "Hot Streak", f"Win {ACHIEVEMENT_WIN_STREAK} trades in a row", "zap",
               stats.win_streak, ACHIEVEMENT_WIN_STREAK),
        _badge("volume_1k", "Trader", f"Trade ${ACHIEVEMENT_VOLUME:,.0f} in volume", "trending",
               stats.total_volume, ACHIEVEMENT_VOLUME),
        _badge("positions_10", "Active Trader", f"Hold {ACHIEVEMENT_ACTIVE_POSITIONS} positions simultaneously", "target",
               stats.active_positions, ACHIEVEMENT_ACTIVE_POSITIONS),
        _badge("profit_100", "Profitable", f"Earn ${ACHIEVEMENT_PROFIT:,.0f} in profit", "trophy",
               stats.total_pnl, ACHIEVEMENT_PROFIT),
        _badge("trades_50", "Veteran", f"Complete {ACHIEVEMENT_TRADE_COUNT} trades", "award",
               stats.total_trades, ACHIEVEMENT_TRADE_COUNT),
    ]
