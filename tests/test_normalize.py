"""
Tests for upstream record normalization.
"""
from datetime import datetime, timezone

import pytest

from pnl.models import ActivityKind, Outcome, PositionStatus, TradeSide
from pnl.normalize import (
    normalize_activity,
    normalize_closed_position,
    normalize_leaderboard_entry,
    normalize_position,
    normalize_trade,
    normalize_trades,
    parse_timestamp,
    subgraph_realized_pnl,
    to_float,
)

EPOCH = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


class TestParseTimestamp:

    @pytest.mark.parametrize("value", [1700000000, 1700000000000, "1700000000", 1700000000.0])
    def test_epoch_seconds_and_milliseconds(self, value):
        assert parse_timestamp(value) == EPOCH

    def test_iso_with_z(self):
        assert parse_timestamp("2023-11-14T22:13:20Z") == EPOCH

    def test_naive_iso_is_utc(self):
        assert parse_timestamp("2023-11-14T22:13:20").tzinfo is not None

    @pytest.mark.parametrize("value", [None, "", "yesterday", {"t": 1}])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None


def test_to_float():
    assert to_float("0.25") == 0.25
    assert to_float(None) == 0.0
    assert to_float("n/a", default=-1.0) == -1.0


class TestTrade:

    def test_fields(self):
        trade = normalize_trade({
            "transactionHash": "0xabc",
            "timestamp": 1700000000,
            "title": "Will it rain?",
            "side": "buy",
            "outcome": "No",
            "price": "0.35",
            "size": "12.5",
        })

        assert trade.id == "0xabc"
        assert trade.timestamp == EPOCH
        assert trade.market == "Will it rain?"
        assert trade.side == TradeSide.BUY
        assert trade.outcome == Outcome.NO
        assert trade.price == 0.35
        assert trade.size == 12.5
        assert trade.profit is None

    def test_defaults(self):
        trade = normalize_trade({"outcome": "Trump"}, index=3)

        assert trade.id == "trade-3"
        assert trade.side == TradeSide.SELL
        assert trade.outcome == Outcome.YES
        assert trade.market == "Unknown Market"
        assert trade.timestamp.tzinfo is not None

    def test_bulk_skips_non_dicts(self):
        assert len(normalize_trades([{"side": "BUY"}, None, "x", {"side": "SELL"}])) == 2


class TestActivity:

    @pytest.mark.parametrize("raw_type,kind", [
        ("DEPOSIT", ActivityKind.DEPOSIT),
        ("withdraw", ActivityKind.WITHDRAWAL),
        ("WITHDRAWAL", ActivityKind.WITHDRAWAL),
        ("REDEEM", ActivityKind.REDEEM),
        ("SPLIT", ActivityKind.OTHER),
        (None, ActivityKind.OTHER),
    ])
    def test_kinds(self, raw_type, kind):
        assert normalize_activity({"type": raw_type, "usdcSize": 1}).kind == kind

    def test_trade_side_and_amount(self):
        event = normalize_activity({"type": "TRADE", "side": "SELL", "usdcSize": "65.5", "title": "M"})

        assert event.side == TradeSide.SELL
        assert event.amount == 65.5
        assert event.market == "M"


def test_position_status_follows_size():
    open_position = normalize_position({"asset": "t1", "conditionId": "c1", "size": 10, "avgPrice": 0.4,
                                        "curPrice": 0.5, "cashPnl": 1.0, "title": "M"})
    closed_position = normalize_position({"size": 0}, index=2)

    assert open_position.status == PositionStatus.ACTIVE
    assert open_position.current_value == pytest.approx(5.0)
    assert open_position.unrealized_pnl == 1.0
    assert closed_position.status == PositionStatus.CLOSED
    assert closed_position.id == "pos-2"


def test_closed_position():
    record = normalize_closed_position({"title": "M", "outcome": "Yes", "realizedPnl": "-3.5",
                                        "asset": "tok", "endDate": "2023-11-14T22:13:20Z"})

    assert record.realized_pnl == -3.5
    assert record.end_date == EPOCH
    assert record.token_id == "tok"
    assert normalize_closed_position({}).end_date is None


def test_leaderboard_entry():
    entry = normalize_leaderboard_entry({"vol": "1000.5", "pnl": 12, "rank": "7", "userName": "alice"})

    assert entry.volume == 1000.5
    assert entry.rank == 7
    assert entry.username == "alice"
    assert normalize_leaderboard_entry(None).rank is None


def test_subgraph_realized_pnl_is_scaled():
    assert subgraph_realized_pnl({"realizedPnl": "2500000"}) == pytest.approx(2.5)
