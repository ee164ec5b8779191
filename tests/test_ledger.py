"""
Tests for the cash-flow ledger.
"""
import pytest

from pnl.ledger import compute_balance
from pnl.models import ActivityKind, TradeSide
from tests.conftest import make_event


class TestComputeBalance:
    """Ledger rules per activity kind."""

    def test_deposit_buy_sell(self):
        events = [
            make_event(ActivityKind.DEPOSIT, 100),
            make_event(ActivityKind.TRADE, 40, side=TradeSide.BUY),
            make_event(ActivityKind.TRADE, 55, side=TradeSide.SELL),
        ]
        balance = compute_balance(events)

        assert balance.cash_balance == pytest.approx(115)
        assert balance.net_deposits == pytest.approx(100)
        assert balance.realized_pnl == pytest.approx(15)

    def test_withdrawal_sign_is_ignored(self):
        events = [
            make_event(ActivityKind.DEPOSIT, 100),
            make_event(ActivityKind.WITHDRAWAL, -30),
        ]
        balance = compute_balance(events)

        assert balance.cash_balance == pytest.approx(70)
        assert balance.withdrawals == pytest.approx(30)
        assert balance.net_deposits == pytest.approx(70)
        assert balance.realized_pnl == pytest.approx(0)

    def test_positive_conversion_counts_as_deposit(self):
        balance = compute_balance([
            make_event(ActivityKind.CONVERSION, 25),
            make_event(ActivityKind.CONVERSION, -10),
        ])

        assert balance.deposits == pytest.approx(25)
        assert balance.cash_balance == pytest.approx(25)
        assert balance.realized_pnl == pytest.approx(0)

    def test_income_and_fees(self):
        balance = compute_balance([
            make_event(ActivityKind.REDEEM, 40),
            make_event(ActivityKind.REWARD, 5),
            make_event(ActivityKind.CLAIM, 3),
            make_event(ActivityKind.FEE, -2),
        ])

        assert balance.cash_balance == pytest.approx(46)
        assert balance.realized_pnl == pytest.approx(46)

    def test_unknown_kinds_and_sideless_trades_are_ignored(self):
        balance = compute_balance([
            make_event(ActivityKind.OTHER, 500),
            make_event(ActivityKind.TRADE, 20),
        ])

        assert balance.cash_balance == 0
        assert balance.events_processed == 2

    def test_window_keeps_first_events(self):
        events = [
            make_event(ActivityKind.DEPOSIT, 10),
            make_event(ActivityKind.DEPOSIT, 20),
            make_event(ActivityKind.DEPOSIT, 40),
        ]
        balance = compute_balance(events, window=2)

        assert balance.deposits == pytest.approx(30)
        assert balance.events_processed == 2
        assert balance.events_total == 3
        assert balance.truncated

    def test_empty(self):
        balance = compute_balance([])

        assert balance.cash_balance == 0
        assert balance.realized_pnl == 0
        assert not balance.truncated


DEPOSIT, WITHDRAWAL, TRADE = ActivityKind.DEPOSIT, ActivityKind.WITHDRAWAL, ActivityKind.TRADE


@pytest.mark.parametrize("events", [
    [],
    [make_event(TRADE, 33.3, side=TradeSide.BUY)],
    [
        make_event(TRADE, 12.5, side=TradeSide.SELL, days_ago=1),
        make_event(DEPOSIT, 50, days_ago=9),
        make_event(ActivityKind.FEE, 0.07, days_ago=3),
        make_event(TRADE, 41.17, side=TradeSide.BUY, days_ago=5),
    ],
    [
        make_event(WITHDRAWAL, -80.1),
        make_event(ActivityKind.REDEEM, 99.99),
        make_event(ActivityKind.CONVERSION, 0.3),
        make_event(ActivityKind.CONVERSION, -7),
        make_event(DEPOSIT, 0.1),
        make_event(TRADE, 0.2, side=TradeSide.SELL),
        make_event(ActivityKind.REWARD, 1e-7),
        make_event(ActivityKind.OTHER, 5),
    ],
    [make_event(kind, 17.01 * (i + 1), side=side) for i, (kind, side) in enumerate([
        (DEPOSIT, None), (TRADE, TradeSide.BUY), (ActivityKind.CLAIM, None),
        (TRADE, TradeSide.SELL), (WITHDRAWAL, None), (TRADE, TradeSide.BUY),
        (ActivityKind.REDEEM, None), (DEPOSIT, None),
    ])],
])
def test_realized_is_cash_minus_net_deposits(events):
    balance = compute_balance(events)

    assert balance.realized_pnl == balance.cash_balance - balance.net_deposits
    assert balance.net_deposits == balance.deposits - balance.withdrawals


def test_identity_holds_when_window_truncates():
    events = [make_event(DEPOSIT, 10.01), make_event(TRADE, 3.3, side=TradeSide.SELL), make_event(WITHDRAWAL, 4)]
    balance = compute_balance(events, window=2)

    assert balance.truncated
    assert balance.realized_pnl == balance.cash_balance - balance.net_deposits
