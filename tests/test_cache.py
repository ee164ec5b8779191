"""
Tests for the coalescing TTL cache.
"""
import asyncio

import pytest

from utils.cache import CoalescingCache, make_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CoalescingCache(max_entries=3, clock=clock)


def test_make_key_lowercases_subject():
    assert make_key("trades", "0xABCdef") == "trades:0xabcdef"


async def test_concurrent_callers_share_one_producer(cache):
    calls = 0

    async def producer():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return {"value": 42}

    results = await asyncio.gather(*[cache.get_or_fetch("pnl:0x1", 60, producer) for _ in range(5)])

    assert calls == 1
    assert all(r is results[0] for r in results)
    assert cache.stats.misses == 1
    assert cache.stats.coalesced == 4
    assert cache.in_flight() == 0


async def test_ttl_is_checked_at_read_time(cache, clock):
    calls = []

    async def producer():
        calls.append(clock.now)
        return len(calls)

    assert await cache.get_or_fetch("k", 300, producer) == 1
    clock.now += 299
    assert await cache.get_or_fetch("k", 300, producer) == 1
    # Same entry, shorter freshness window for this reader
    assert await cache.get_or_fetch("k", 100, producer) == 2
    clock.now += 300
    assert await cache.get_or_fetch("k", 300, producer) == 3
    assert cache.stats.hits == 1


async def test_errors_propagate_and_are_not_cached(cache):
    attempts = 0

    async def producer():
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise ValueError("upstream down")
        return "ok"

    with pytest.raises(ValueError):
        await cache.get_or_fetch("k", 60, producer)

    assert cache.get_size() == 0
    assert cache.in_flight() == 0
    assert await cache.get_or_fetch("k", 60, producer) == "ok"
    assert cache.stats.errors == 1


async def test_error_reaches_every_waiter(cache):
    async def producer():
        await asyncio.sleep(0.01)
        raise RuntimeError("boom")

    results = await asyncio.gather(
        cache.get_or_fetch("k", 60, producer),
        cache.get_or_fetch("k", 60, producer),
        return_exceptions=True,
    )

    assert all(isinstance(r, RuntimeError) for r in results)


async def test_cancelled_waiter_does_not_cancel_shared_work(cache):
    release = asyncio.Event()

    async def producer():
        await release.wait()
        return "done"

    first = asyncio.ensure_future(cache.get_or_fetch("k", 60, producer))
    second = asyncio.ensure_future(cache.get_or_fetch("k", 60, producer))
    await asyncio.sleep(0)
    first.cancel()
    release.set()

    assert await second == "done"
    assert cache.get("k", 60) == "done"


def test_lru_eviction(cache):
    for key in ("a", "b", "c"):
        cache.set(key, key)
    assert cache.get("a", 60) == "a"

    cache.set("d", "d")

    assert cache.get("b", 60) is None
    assert cache.get("a", 60) == "a"
    assert cache.get_size() == 3
    assert cache.stats.evictions == 1


def test_peek_serves_stale_values(cache, clock):
    cache.set("dashboard:alice", "old")
    clock.now += 400

    assert cache.get("dashboard:alice", 300) is None
    assert cache.peek("dashboard:alice", 600) == "old"
    clock.now += 300
    assert cache.peek("dashboard:alice", 600) is None
    assert cache.stats.stale_served == 1


def test_invalidate(cache):
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.invalidate("a") == 1
    assert cache.invalidate("missing") == 0
    assert cache.invalidate() == 1
    assert cache.get_size() == 0
