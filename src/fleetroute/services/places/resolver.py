"""Free text to coordinate resolution.

Each query walks ``NOT_STARTED -> LOCAL_LOOKUP -> [FOUND | REMOTE_LOOKUP ->
[FOUND | DEFAULT_FALLBACK]] -> DONE``. Resolution always yields a usable
``PlaceMatch``; only a query that is too short is rejected.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from ...errors import InvalidPlaceQuery
from ...models.domain import Coordinate, PlaceMatch
from ..orchestrator import ProviderChain
from ..providers.address_search import AddressSearchProvider
from ..providers.base import Provider
from ..throttle import RateLimitedCache, text_key
from .gazetteer import Gazetteer, GazetteerHit
from .normalize import expand_abbreviations, words

logger = logging.getLogger(__name__)

REMOTE_MIN_WORDS = 2
REMOTE_MIN_CHARACTERS = 8


class ResolutionState(str, Enum):
    NOT_STARTED = "not_started"
    LOCAL_LOOKUP = "local_lookup"
    REMOTE_LOOKUP = "remote_lookup"
    FOUND = "found"
    DEFAULT_FALLBACK = "default_fallback"
    DONE = "done"


@dataclass(slots=True)
class PlaceResolution:
    query: str
    match: Optional[PlaceMatch] = None
    states: list[ResolutionState] = field(default_factory=lambda: [ResolutionState.NOT_STARTED])
    failures: list[str] = field(default_factory=list)

    def enter(self, state: ResolutionState) -> None:
        self.states.append(state)


def gazetteer_match(hit: GazetteerHit) -> PlaceMatch:
    entry = hit.entry
    return PlaceMatch(
        label=entry.name,
        coordinate=entry.coordinate,
        is_approximate=True,
        population=entry.population,
        postal_code=entry.postal_code,
        score=round(hit.score, 3),
        source=f"gazetteer:{hit.method}",
    )


def wants_remote_lookup(text: str) -> bool:
    """A single short token is more likely a typo than an address worth a network call."""

    return len(words(text)) >= REMOTE_MIN_WORDS or len(text.strip()) >= REMOTE_MIN_CHARACTERS


def position_label(coordinate: Coordinate) -> str:
    return f"Position {coordinate.latitude:.4f}, {coordinate.longitude:.4f}"


class PlaceResolver:
    def __init__(
        self,
        gazetteer: Gazetteer,
        providers: Sequence[Provider[str, PlaceMatch]],
        cache: RateLimitedCache,
        default_location: PlaceMatch,
        *,
        address_provider: Optional[AddressSearchProvider] = None,
        min_query_length: int = 3,
        request_timeout: float = 8.0,
        total_timeout: float = 20.0,
    ) -> None:
        self.gazetteer = gazetteer
        self.remote_chain: ProviderChain[str, PlaceMatch] = ProviderChain(
            providers,
            cache,
            self.default_match,
            attempt_timeout=request_timeout,
            total_timeout=total_timeout,
            label="places",
            fallback_name="default",
        )
        self.cache = cache
        self.default_location = default_location
        self.address_provider = address_provider
        self.min_query_length = max(min_query_length, 2)
        self.request_timeout = request_timeout

    def _validate(self, text: str) -> str:
        cleaned = (text or "").strip()
        if len(cleaned) < self.min_query_length:
            raise InvalidPlaceQuery(
                f"Place query must contain at least {self.min_query_length} characters, got {cleaned!r}."
            )
        return cleaned

    def default_match(self, text: str, failures: list[str]) -> PlaceMatch:
        if failures:
            logger.warning("No place found for %r (%s), using default location", text, "; ".join(failures))
        else:
            logger.info("No place found for %r, using default location", text)
        default = self.default_location
        return PlaceMatch(
            label=default.label,
            coordinate=default.coordinate,
            is_approximate=True,
            population=default.population,
            postal_code=default.postal_code,
            score=0.0,
            source="default",
        )

    async def resolve(self, text: str) -> PlaceResolution:
        query = self._validate(text)
        resolution = PlaceResolution(query=query)

        resolution.enter(ResolutionState.LOCAL_LOOKUP)
        hit = self.gazetteer.lookup(query)
        if hit is not None:
            logger.debug("Gazetteer %s match for %r: %s", hit.method, query, hit.entry.name)
            resolution.match = gazetteer_match(hit)
            resolution.enter(ResolutionState.FOUND)
            resolution.enter(ResolutionState.DONE)
            return resolution

        if wants_remote_lookup(query):
            resolution.enter(ResolutionState.REMOTE_LOOKUP)
            outcome = await self.remote_chain.run(expand_abbreviations(query))
            resolution.failures = list(outcome.failures)
            if not outcome.degraded:
                resolution.match = outcome.value
                resolution.enter(ResolutionState.FOUND)
                resolution.enter(ResolutionState.DONE)
                return resolution
            resolution.match = outcome.value
        else:
            resolution.match = self.default_match(query, [])

        resolution.enter(ResolutionState.DEFAULT_FALLBACK)
        resolution.enter(ResolutionState.DONE)
        return resolution

    async def resolve_address(self, text: str) -> PlaceMatch:
        resolution = await self.resolve(text)
        return resolution.match

    async def search(self, text: str, limit: int = 8) -> list[PlaceMatch]:
        """Autocomplete suggestions; an empty list when the provider is unavailable."""

        query = (text or "").strip()
        if self.address_provider is None or len(query) < self.min_query_length:
            return []
        provider = self.address_provider
        try:
            return await asyncio.wait_for(
                self.cache.call(provider.name, text_key(query, "suggest", limit), lambda: provider.suggest(query, limit)),
                timeout=self.request_timeout,
            )
        except Exception as exc:
            logger.warning("Address suggestions unavailable for %r: %s", query, exc)
            return []

    async def reverse(self, coordinate: Coordinate) -> PlaceMatch:
        fallback = PlaceMatch(
            label=position_label(coordinate),
            coordinate=coordinate,
            is_approximate=True,
            source="coordinates",
        )
        if self.address_provider is None:
            return fallback
        provider = self.address_provider
        try:
            return await asyncio.wait_for(
                self.cache.call(provider.name, provider.reverse_key(coordinate), lambda: provider.reverse(coordinate)),
                timeout=self.request_timeout,
            )
        except Exception as exc:
            logger.warning("Reverse geocoding unavailable for %s: %s", coordinate, exc)
            return fallback
