import asyncio
from typing import Optional

import httpx
import pytest

from fleetroute.errors import ProviderUnavailable
from fleetroute.services.orchestrator import ProviderChain
from fleetroute.services.throttle import RateLimitedCache


class FakeProvider:
    def __init__(self, name: str, log: list, result=None, error: Optional[Exception] = None, skip=None, delay=0.0):
        self.name = name
        self.log = log
        self.result = result
        self.error = error
        self.skip = skip
        self.delay = delay

    def is_applicable(self, request) -> Optional[str]:
        return self.skip

    def cache_key(self, request) -> str:
        return str(request)

    async def resolve(self, request):
        self.log.append(self.name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def _fallback(request, failures):
    return {"fallback": request, "failures": failures}


def _chain(providers, **kwargs) -> ProviderChain:
    return ProviderChain(providers, RateLimitedCache(), _fallback, **kwargs)


def test_first_success_wins_after_failures_in_order():
    log: list = []
    chain = _chain(
        [
            FakeProvider("p1", log, error=ProviderUnavailable("HTTP 503 from p1")),
            FakeProvider("p2", log, error=httpx.ConnectError("connection refused")),
            FakeProvider("p3", log, result="route"),
        ]
    )

    outcome = asyncio.run(chain.run("leg"))

    assert log == ["p1", "p2", "p3"]
    assert outcome.value == "route"
    assert outcome.provider == "p3"
    assert not outcome.degraded
    assert outcome.failures == ["p1: HTTP 503 from p1", "p2: ConnectError: connection refused"]
    assert [attempt.outcome for attempt in outcome.attempts] == ["failed", "failed", "success"]


def test_all_providers_failing_uses_fallback_with_reasons():
    log: list = []
    chain = _chain(
        [
            FakeProvider("p1", log, error=ValueError("payload missing coordinates")),
            FakeProvider("p2", log, error=KeyError("routes")),
        ],
        fallback_name="local_estimate",
    )

    outcome = asyncio.run(chain.run("leg"))

    assert outcome.degraded
    assert outcome.provider == "local_estimate"
    assert outcome.value["fallback"] == "leg"
    assert outcome.value["failures"] == ["p1: payload missing coordinates", "p2: 'routes'"]


def test_inapplicable_provider_is_skipped_with_reason():
    log: list = []
    chain = _chain(
        [
            FakeProvider("heavy", log, result="never", skip="light vehicle"),
            FakeProvider("open", log, result="route"),
        ]
    )

    outcome = asyncio.run(chain.run("leg"))

    assert log == ["open"]
    assert outcome.value == "route"
    assert outcome.attempts[0].outcome == "skipped"
    assert outcome.attempts[0].reason == "light vehicle"
    assert outcome.failures == []


def test_slow_provider_times_out_and_chain_advances():
    log: list = []
    chain = _chain(
        [FakeProvider("slow", log, result="late", delay=1.0), FakeProvider("fast", log, result="route")],
        attempt_timeout=0.05,
        total_timeout=5.0,
    )

    outcome = asyncio.run(chain.run("leg"))

    assert outcome.value == "route"
    assert outcome.failures == ["slow: timed out"]


def test_total_budget_exhaustion_falls_back():
    log: list = []
    chain = _chain(
        [FakeProvider("p1", log, result="late", delay=1.0), FakeProvider("p2", log, result="late", delay=1.0)],
        attempt_timeout=0.5,
        total_timeout=0.1,
    )

    outcome = asyncio.run(chain.run("leg"))

    assert outcome.degraded
    assert outcome.value["fallback"] == "leg"


def test_successful_result_is_served_from_cache():
    log: list = []
    chain = _chain([FakeProvider("p1", log, result="route")])

    async def scenario():
        await chain.run("leg")
        return await chain.run("leg")

    outcome = asyncio.run(scenario())
    assert outcome.value == "route"
    assert log == ["p1"]


def test_failed_attempt_is_retried_on_next_run():
    log: list = []
    provider = FakeProvider("p1", log, error=ProviderUnavailable("down"))
    chain = _chain([provider])

    async def scenario():
        first = await chain.run("leg")
        provider.error = None
        provider.result = "route"
        return first, await chain.run("leg")

    first, second = asyncio.run(scenario())
    assert first.degraded
    assert second.value == "route"
    assert log == ["p1", "p1"]


def test_cancellation_propagates_to_caller():
    chain = _chain([FakeProvider("slow", [], result="late", delay=5.0)], attempt_timeout=10, total_timeout=10)

    async def scenario():
        task = asyncio.create_task(chain.run("leg"))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return chain.cache.cache_stats().size

    assert asyncio.run(scenario()) == 0


def test_rate_limit_wait_is_bounded_by_attempt_timeout():
    log: list = []
    providers = [
        FakeProvider("spaced", log, error=ProviderUnavailable("HTTP 503 from spaced")),
        FakeProvider("backup", log, result="route"),
    ]
    chain = ProviderChain(
        providers,
        RateLimitedCache({"spaced": 0.3}),
        _fallback,
        attempt_timeout=0.2,
        total_timeout=1.0,
    )

    async def scenario():
        return await asyncio.gather(*(chain.run(index) for index in range(8)))

    outcomes = asyncio.run(scenario())

    assert [outcome.provider for outcome in outcomes] == ["backup"] * 8
    assert not any(outcome.degraded for outcome in outcomes)
    assert outcomes[0].failures == ["spaced: HTTP 503 from spaced"]
    assert all(outcome.failures == ["spaced: timed out"] for outcome in outcomes[1:])


def test_applicability_check_error_moves_to_next_provider():
    class BrokenCheck(FakeProvider):
        def is_applicable(self, request) -> Optional[str]:
            raise RuntimeError("bad vehicle record")

    log: list = []
    chain = _chain([BrokenCheck("p1", log, result="never"), FakeProvider("p2", log, result="route")])

    outcome = asyncio.run(chain.run("leg"))

    assert outcome.value == "route"
    assert outcome.failures == ["p1: bad vehicle record"]
    assert log == ["p2"]
