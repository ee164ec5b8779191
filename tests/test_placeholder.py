"""
Tests for achievements and the placeholder dashboard.
"""
import pytest

from pnl.achievements import calculate_achievements
from pnl.models import PortfolioStats, TradeSide
from pnl.placeholder import PLACEHOLDER_WALLET, placeholder_dashboard
from tests.conftest import NOW, make_trade


def test_achievement_progress_is_clamped():
    stats = PortfolioStats(total_pnl=-50.0, total_volume=2500.0, win_streak=3, total_trades=1)
    badges = {a.id: a for a in calculate_achievements(stats, [make_trade(TradeSide.BUY, 0.5, 1)])}

    assert set(badges) == {"first_trade", "win_streak_5", "volume_1k", "positions_10", "profit_100", "trades_50"}
    assert badges["first_trade"].unlocked
    assert badges["volume_1k"].unlocked
    assert badges["volume_1k"].progress == badges["volume_1k"].total
    assert not badges["win_streak_5"].unlocked
    assert badges["win_streak_5"].progress == 3
    assert badges["profit_100"].progress == 0.0


def test_no_trades_unlocks_nothing():
    assert not any(a.unlocked for a in calculate_achievements(PortfolioStats(), []))


class TestPlaceholderDashboard:

    def test_is_labelled(self):
        dashboard = placeholder_dashboard("ghost", now=NOW)

        assert dashboard.is_placeholder
        assert dashboard.profile.username == "ghost"
        assert dashboard.profile.wallet == PLACEHOLDER_WALLET

    def test_is_internally_consistent(self):
        dashboard = placeholder_dashboard(now=NOW)
        stats = dashboard.stats

        assert dashboard.profile.username == "demo_user"
        assert dashboard.pnl_history[-1].timestamp == NOW
        assert dashboard.pnl_history[-1].value == pytest.approx(stats.total_pnl)
        assert stats.total_pnl == pytest.approx(stats.realized_pnl + stats.unrealized_pnl)
        assert stats.total_trades == len(dashboard.recent_trades)
        assert stats.active_positions == len(dashboard.positions)
        assert len(dashboard.achievements) == 6

    def test_recent_trades_newest_first_with_profit_on_sells(self):
        trades = placeholder_dashboard(now=NOW).recent_trades

        assert all(a.timestamp >= b.timestamp for a, b in zip(trades, trades[1:]))
        assert any(t.profit is not None for t in trades if t.side == TradeSide.SELL)
        assert all(t.profit is None for t in trades if t.side == TradeSide.BUY)
