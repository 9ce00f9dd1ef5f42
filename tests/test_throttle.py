import asyncio

import pytest

from fleetroute.models.domain import Coordinate
from fleetroute.services.throttle import RateLimitedCache, coordinate_key, text_key


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _cache(clock: FakeClock, **kwargs) -> RateLimitedCache:
    return RateLimitedCache({"slow": 1.0}, clock=clock, sleep=clock.sleep, **kwargs)


def _value(result):
    async def operation():
        return result

    return operation


def test_coordinate_key_rounds_near_duplicates():
    a = coordinate_key([Coordinate(48.85660001, 2.35220004)], "driving")
    b = coordinate_key([Coordinate(48.85660004, 2.35219996)], "driving")
    assert a == b == "48.856600,2.352200|driving"


def test_text_key_normalizes_case_and_whitespace():
    assert text_key("  12  Rue   de la Paix ") == text_key("12 rue de la paix")


def test_cache_hit_does_not_reinvoke_failing_operation():
    clock = FakeClock()
    cache = _cache(clock)

    async def failing():
        raise AssertionError("must not be called on a cache hit")

    async def scenario():
        first = await cache.call("slow", "k", _value({"route": 1}))
        second = await cache.call("slow", "k", failing)
        return first, second

    first, second = asyncio.run(scenario())
    assert second is first
    assert clock.sleeps == []


def test_failures_are_not_cached():
    cache = _cache(FakeClock())

    async def failing():
        raise RuntimeError("down")

    async def scenario():
        with pytest.raises(RuntimeError):
            await cache.call("slow", "k", failing)
        return await cache.call("slow", "k", _value("ok"))

    assert asyncio.run(scenario()) == "ok"
    assert cache.cache_stats().size == 1


def test_same_provider_calls_are_spaced():
    clock = FakeClock()
    cache = _cache(clock)

    async def scenario():
        await cache.call("slow", "a", _value(1))
        await cache.call("slow", "b", _value(2))

    asyncio.run(scenario())
    assert clock.sleeps == [pytest.approx(1.0)]


def test_different_providers_do_not_wait_on_each_other():
    clock = FakeClock()
    cache = _cache(clock)

    async def scenario():
        await cache.call("slow", "a", _value(1))
        await cache.call("other", "a", _value(2))
        await cache.call("other", "b", _value(3))

    asyncio.run(scenario())
    assert clock.sleeps == []


def test_cancelled_call_leaves_cache_empty():
    cache = RateLimitedCache()

    async def slow():
        await asyncio.sleep(10)
        return "late"

    async def scenario():
        task = asyncio.create_task(cache.call("p", "k", slow))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
    assert cache.cache_stats().size == 0


def test_clear_cache_by_provider_and_stats():
    cache = RateLimitedCache()

    async def scenario():
        await cache.call("a", "k1", _value(1))
        await cache.call("a", "k2", _value(2))
        await cache.call("b", "k1", _value(3))

    asyncio.run(scenario())
    assert cache.cache_stats().keys == ["a:k1", "a:k2", "b:k1"]
    assert cache.clear_cache("a") == 2
    assert cache.cache_stats().keys == ["b:k1"]
    assert cache.clear_cache() == 1
    assert cache.cache_stats().size == 0


def test_ttl_expires_entries():
    clock = FakeClock()
    cache = RateLimitedCache(ttl_seconds=10, clock=clock, sleep=clock.sleep)
    calls = []

    async def counted():
        calls.append(1)
        return len(calls)

    async def scenario():
        await cache.call("p", "k", counted)
        clock.now = 5
        await cache.call("p", "k", counted)
        clock.now = 11
        return await cache.call("p", "k", counted)

    assert asyncio.run(scenario()) == 2
    assert len(calls) == 2


def test_max_entries_evicts_oldest():
    cache = RateLimitedCache(max_entries=2)

    async def scenario():
        for key in ("k1", "k2", "k3"):
            await cache.call("p", key, _value(key))

    asyncio.run(scenario())
    assert cache.cache_stats().keys == ["p:k2", "p:k3"]
