"""
Tests for provider priority in the stats aggregator.
"""
import pytest

from pnl.fifo import match_trades
from pnl.ledger import compute_balance
from pnl.models import ActivityKind, AuthoritativePnL, TradeMetrics, TradeSide
from pnl.stats import aggregate, best_worst_trade, first_available, realized_pnl_providers
from tests.conftest import WALLET, make_closed, make_event, make_position, make_trade

BUY, SELL = TradeSide.BUY, TradeSide.SELL


@pytest.fixture
def trades():
    return [make_trade(BUY, 0.5, 10, hours=1), make_trade(SELL, 0.8, 10, hours=2)]


@pytest.fixture
def activity():
    return [
        make_event(ActivityKind.DEPOSIT, 100),
        make_event(ActivityKind.TRADE, 5, side=BUY),
        make_event(ActivityKind.TRADE, 8, side=SELL),
    ]


def test_first_available_skips_missing_values():
    providers = [("a", lambda: None), ("b", lambda: 0.0), ("c", lambda: 9.0)]

    assert first_available(providers) == ("b", 0.0)
    assert first_available([("a", lambda: None)]) == ("none", 0.0)


class TestRealizedPriority:

    def test_authoritative_wins(self, trades, activity):
        fifo, ledger = match_trades(trades), compute_balance(activity)
        authoritative = AuthoritativePnL(realized_pnl=50.0)

        assert first_available(realized_pnl_providers(authoritative, fifo, ledger)) == ("authoritative", 50.0)

    def test_complete_zero_is_still_authoritative(self, trades, activity):
        fifo, ledger = match_trades(trades), compute_balance(activity)
        authoritative = AuthoritativePnL(realized_pnl=0.0, complete=True)

        assert first_available(realized_pnl_providers(authoritative, fifo, ledger))[0] == "authoritative"

    def test_incomplete_zero_falls_back_to_fifo(self, trades, activity):
        fifo, ledger = match_trades(trades), compute_balance(activity)
        source, value = first_available(realized_pnl_providers(AuthoritativePnL(), fifo, ledger))

        assert source == "fifo"
        assert value == pytest.approx(3.0)

    def test_ledger_when_nothing_matched(self, activity):
        source, value = first_available(
            realized_pnl_providers(None, TradeMetrics(), compute_balance(activity))
        )

        assert source == "ledger"
        assert value == pytest.approx(3.0)


class TestBestWorst:

    def test_first_tier_with_data(self, trades):
        fifo = match_trades(trades)
        authoritative = AuthoritativePnL(closed_position_pnls=[4.0, -2.0])

        assert best_worst_trade(authoritative, [make_closed(10)], fifo, []) == ("authoritative", 4.0, -2.0)
        assert best_worst_trade(None, [make_closed(10), make_closed(-1)], fifo, []) == ("closed_positions", 10, -1)

    def test_falls_through_to_positions(self):
        positions = [make_position(7.0), make_position(-3.0, market="B")]

        assert best_worst_trade(None, [], TradeMetrics(), positions) == ("positions", 7.0, -3.0)
        assert best_worst_trade(None, [], TradeMetrics(), []) == ("none", 0.0, 0.0)


class TestAggregate:

    def test_without_authoritative(self, trades, activity):
        positions = [make_position(20.0, current=0.6, size=100)]
        stats = aggregate(positions, trades, activity, WALLET)

        assert stats.realized_pnl_source == "fifo"
        assert stats.realized_pnl == pytest.approx(3.0)
        assert stats.unrealized_pnl == pytest.approx(20.0)
        assert stats.total_pnl == pytest.approx(23.0)
        assert stats.cash_balance == pytest.approx(103.0)
        assert stats.total_value == pytest.approx(163.0)
        assert stats.total_volume == pytest.approx(13.0)
        assert stats.total_trades == 2
        assert stats.active_positions == 1
        assert stats.win_rate == pytest.approx(100.0)

    def test_with_authoritative(self, trades, activity):
        authoritative = AuthoritativePnL(
            realized_pnl=120.0,
            unrealized_pnl=-20.0,
            portfolio_value=300.0,
            open_positions=2,
            closed_positions=4,
            closed_position_pnls=[100.0, 30.0, -5.0, -5.0],
            complete=True,
        )
        stats = aggregate(
            [make_position(-20.0)], trades, activity, WALLET,
            authoritative=authoritative, volume=5000.0,
        )

        assert stats.realized_pnl == 120.0
        assert stats.total_pnl == pytest.approx(100.0)
        assert stats.total_value == 300.0
        assert stats.total_volume == 5000.0
        assert stats.closed_positions == 4
        assert stats.best_trade == 100.0
        assert stats.worst_trade == -5.0
        assert stats.ledger_realized_pnl == pytest.approx(3.0)
        assert stats.fifo_realized_pnl == pytest.approx(3.0)

    def test_win_rate_from_closed_positions_without_matches(self):
        closed = [make_closed(5, days_ago=3), make_closed(2, days_ago=2), make_closed(-1, days_ago=1)]
        stats = aggregate([], [], [], WALLET, closed_positions=closed)

        assert stats.win_rate == pytest.approx(200 / 3)
        assert stats.win_streak == 2
        assert stats.closed_positions == 3
        assert stats.realized_pnl_source == "none"
