"""Ordered provider fallback with per-attempt and whole-chain time bounds."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, Sequence, TypeVar

import httpx

from .providers.base import Provider
from .throttle import RateLimitedCache

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT")
ResultT = TypeVar("ResultT")


@dataclass(slots=True)
class ProviderAttempt:
    provider: str
    outcome: str  # "success", "failed" or "skipped"
    reason: Optional[str] = None
    elapsed_ms: float = 0.0


@dataclass(slots=True)
class ChainOutcome(Generic[ResultT]):
    value: ResultT
    provider: str
    failures: list[str] = field(default_factory=list)
    attempts: list[ProviderAttempt] = field(default_factory=list)
    degraded: bool = False


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "timed out"
    if isinstance(exc, httpx.HTTPError):
        return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
    return str(exc) or type(exc).__name__


class ProviderChain(Generic[RequestT, ResultT]):
    """Try providers in order; the first success wins.

    Every attempt goes through the shared ``RateLimitedCache`` under the
    provider's name. Any exception raised by an attempt, including a
    per-attempt timeout, marks the provider unavailable and the chain moves
    on. When every provider failed or the whole-chain budget ran out,
    ``fallback(request, failures)`` produces the degraded result.
    """

    def __init__(
        self,
        providers: Sequence[Provider[RequestT, ResultT]],
        cache: RateLimitedCache,
        fallback: Callable[[RequestT, list[str]], ResultT],
        *,
        attempt_timeout: float = 8.0,
        total_timeout: float = 20.0,
        label: str = "chain",
        fallback_name: str = "fallback",
    ) -> None:
        self.providers = list(providers)
        self.cache = cache
        self.fallback = fallback
        self.attempt_timeout = attempt_timeout
        self.total_timeout = total_timeout
        self.label = label
        self.fallback_name = fallback_name

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self.providers]

    async def _attempt(self, provider: Provider[RequestT, ResultT], request: RequestT, timeout: float) -> ResultT:
        key = provider.cache_key(request)
        # The rate-limit wait counts against the attempt, not only the whole chain.
        return await asyncio.wait_for(
            self.cache.call(provider.name, key, lambda: provider.resolve(request)),
            timeout=timeout,
        )

    async def _run_providers(
        self,
        request: RequestT,
        deadline: float,
        failures: list[str],
        attempts: list[ProviderAttempt],
    ) -> Optional[ChainOutcome[ResultT]]:
        for provider in self.providers:
            started = time.perf_counter()
            try:
                skip_reason = provider.is_applicable(request)
                if skip_reason is not None:
                    logger.debug("%s: skipping %s (%s)", self.label, provider.name, skip_reason)
                    attempts.append(ProviderAttempt(provider.name, "skipped", skip_reason))
                    continue

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                value = await self._attempt(provider, request, min(self.attempt_timeout, remaining))
            except Exception as exc:
                reason = f"{provider.name}: {describe_error(exc)}"
                logger.warning("%s: provider %s unavailable (%s)", self.label, provider.name, describe_error(exc))
                failures.append(reason)
                attempts.append(
                    ProviderAttempt(
                        provider.name, "failed", reason, (time.perf_counter() - started) * 1000.0
                    )
                )
                continue

            attempts.append(
                ProviderAttempt(provider.name, "success", None, (time.perf_counter() - started) * 1000.0)
            )
            return ChainOutcome(value=value, provider=provider.name, failures=failures, attempts=attempts)
        return None

    async def run(self, request: RequestT) -> ChainOutcome[ResultT]:
        failures: list[str] = []
        attempts: list[ProviderAttempt] = []
        deadline = time.monotonic() + self.total_timeout
        try:
            async with asyncio.timeout(self.total_timeout):
                outcome = await self._run_providers(request, deadline, failures, attempts)
        except TimeoutError:
            logger.warning("%s: total budget of %.1fs exceeded", self.label, self.total_timeout)
            failures.append(f"{self.label}: total time budget of {self.total_timeout:g}s exceeded")
            outcome = None

        if outcome is not None:
            return outcome

        logger.info("%s: all providers unavailable, using local fallback", self.label)
        return ChainOutcome(
            value=self.fallback(request, list(failures)),
            provider=self.fallback_name,
            failures=failures,
            attempts=attempts,
            degraded=True,
        )
