"""
Pytest fixtures for the test suite.
"""
import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

import httpx
import pytest

from clients.functions.data import EngineContext
from clients.polymarket import UpstreamUnavailable
from pnl.models import (
    ActivityEvent,
    ActivityKind,
    ClosedPositionRecord,
    Outcome,
    Position,
    PositionStatus,
    Trade,
    TradeSide,
)

WALLET = "0x56687bf447db6ffa42ffe2204a05edaa20f55839"
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# MODEL FACTORIES
# ============================================================================

def make_trade(
    side: TradeSide,
    price: float,
    size: float,
    hours: float = 0,
    market: str = "Market A",
    outcome: Outcome = Outcome.YES,
    id: Optional[str] = None,
) -> Trade:
    """Trade `hours` after a fixed base time."""
    return Trade(
        id=id or f"{side.value}-{market}-{hours}",
        timestamp=NOW - timedelta(days=30) + timedelta(hours=hours),
        market=market,
        side=side,
        outcome=outcome,
        price=price,
        size=size,
    )


def make_event(kind: ActivityKind, amount: float, side: Optional[TradeSide] = None,
               market: Optional[str] = None, days_ago: float = 1) -> ActivityEvent:
    return ActivityEvent(
        kind=kind,
        amount=amount,
        timestamp=NOW - timedelta(days=days_ago),
        side=side,
        market=market,
    )


def make_position(unrealized: float, entry: float = 0.4, current: float = 0.6, size: float = 100.0,
                  market: str = "Market A") -> Position:
    return Position(
        id=f"pos-{market}",
        market=market,
        market_id=f"cond-{market}",
        outcome="Yes",
        entry_price=entry,
        current_price=current,
        size=size,
        unrealized_pnl=unrealized,
        status=PositionStatus.ACTIVE if size > 0 else PositionStatus.CLOSED,
        opened_at=NOW - timedelta(days=10),
    )


def make_closed(pnl: float, days_ago: Optional[float] = None, market: str = "Market A") -> ClosedPositionRecord:
    return ClosedPositionRecord(
        market=market,
        outcome="Yes",
        realized_pnl=pnl,
        end_date=NOW - timedelta(days=days_ago) if days_ago is not None else None,
    )


# ============================================================================
# FAKE PAGE SOURCES
# ============================================================================

class FakePageSource:
    """
    In-memory offset-paginated resource.

    `failures` maps an offset to a list of exceptions raised on successive
    calls for that offset (a missing or exhausted list means success).
    """

    def __init__(self, total: int, failures: Optional[Dict[int, List[Exception]]] = None):
        self.records = [{"n": i} for i in range(total)]
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.calls: List[int] = []

    async def __call__(self, subject: str, offset: int, limit: int) -> List[dict]:
        self.calls.append(offset)
        pending = self.failures.get(offset)
        if pending:
            raise pending.pop(0)
        return self.records[offset:offset + limit]


class SlowPageSource(FakePageSource):
    """FakePageSource whose pages take a moment to arrive, like a real network call."""

    def __init__(self, total: int, delay: float = 0.001, **kwargs):
        super().__init__(total, **kwargs)
        self.delay = delay

    async def __call__(self, subject: str, offset: int, limit: int) -> List[dict]:
        self.calls.append(offset)
        await asyncio.sleep(self.delay)
        return self.records[offset:offset + limit]


class AlwaysFailing:
    def __init__(self):
        self.calls: List[int] = []

    async def __call__(self, subject: str, offset: int, limit: int) -> List[dict]:
        self.calls.append(offset)
        raise UpstreamUnavailable("HTTP 503", 503)


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()


# ============================================================================
# FAKE POLYMARKET
# ============================================================================

def positions_payload() -> List[dict]:
    return [{
        "asset": "tok-a",
        "conditionId": "cond-a",
        "title": "Market A",
        "outcome": "Yes",
        "avgPrice": 0.4,
        "curPrice": 0.6,
        "size": 100,
        "cashPnl": 20,
        "currentValue": 60,
    }]


def trades_payload() -> List[dict]:
    return [
        {"transactionHash": "0xsell", "timestamp": 1700100000, "title": "Market B",
         "side": "SELL", "outcome": "Yes", "price": "0.7", "size": "100"},
        {"transactionHash": "0xbuy", "timestamp": 1700000000, "title": "Market B",
         "side": "BUY", "outcome": "Yes", "price": "0.4", "size": "100"},
    ]


def activity_payload() -> List[dict]:
    return [
        {"type": "REDEEM", "usdcSize": 10, "timestamp": 1700200000, "title": "Market C"},
        {"type": "TRADE", "side": "SELL", "usdcSize": 70, "timestamp": 1700100000, "title": "Market B"},
        {"type": "TRADE", "side": "BUY", "usdcSize": 40, "timestamp": 1700000000, "title": "Market B"},
        {"type": "DEPOSIT", "usdcSize": 100, "timestamp": 1699900000},
    ]


def closed_positions_payload() -> List[dict]:
    return [{"title": "Market B", "outcome": "Yes", "realizedPnl": 30, "endDate": "2023-11-16T00:00:00Z"}]


def subgraph_payload() -> dict:
    return {"data": {"userPositions": [
        {"id": "1", "realizedPnl": "6000000"},
        {"id": "2", "realizedPnl": "-1000000"},
        {"id": "3", "realizedPnl": "5000"},
    ]}}


class FakePolymarket:
    """
    httpx.MockTransport handler serving Data API, Gamma and subgraph routes.

    Only offset 0 carries data; later offsets return empty pages.
    Paths listed in `failing` answer with `failure_status`.
    """

    def __init__(self):
        self.profiles: List[dict] = [{"name": "alice", "proxyWallet": WALLET, "bio": "hi"}]
        self.failing: set = set()
        self.failure_status = 500
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Callable[[], Any]] = {
            "/positions": positions_payload,
            "/trades": trades_payload,
            "/activity": activity_payload,
            "/closed-positions": closed_positions_payload,
            "/v1/leaderboard": lambda: [{"vol": 1234.5, "pnl": 25, "rank": "7", "userName": "alice"}],
        }

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = urlparse(str(request.url)).netloc
        path = request.url.path

        if "goldsky" in host:
            if "subgraph" in self.failing:
                return httpx.Response(self.failure_status)
            body = json.loads(request.content)
            if body["variables"]["skip"] > 0:
                return httpx.Response(200, json={"data": {"userPositions": []}})
            return httpx.Response(200, json=subgraph_payload())

        if path in self.failing:
            return httpx.Response(self.failure_status)

        if path == "/public-search":
            return httpx.Response(200, json={"profiles": self.profiles})

        if path in self.routes:
            if int(request.url.params.get("offset", "0")) > 0:
                return httpx.Response(200, json=[])
            return httpx.Response(200, json=self.routes[path]())

        return httpx.Response(404)


@pytest.fixture
def fake_polymarket():
    return FakePolymarket()


@pytest.fixture
async def engine(fake_polymarket):
    """EngineContext wired to the fake upstream, one page per fetch batch."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_polymarket))
    context = EngineContext.create(http_client=client)
    throttle = context.throttle
    throttle.min_batch_size = throttle.max_batch_size = throttle.batch_size = 1
    throttle.backoff_initial = throttle.backoff = 0.001
    yield context
    await context.aclose()
