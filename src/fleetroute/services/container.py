"""Lifecycle owner for the HTTP client, the shared cache and the services built on them."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import Settings
from ..data.gazetteer_repository import load_gazetteer
from ..models.domain import Coordinate, LegRequest, PlaceMatch, RouteSegment
from .orchestrator import ProviderChain
from .places.gazetteer import Gazetteer
from .places.resolver import PlaceResolver
from .providers.address_search import AddressSearchProvider
from .providers.base import Provider
from .providers.commune_search import CommuneSearchProvider
from .providers.here import HereTruckProvider
from .providers.local import LocalEstimateProvider
from .providers.ors import OpenRouteServiceProvider
from .providers.osrm import OsrmProvider
from .routing.service import RouteService
from .routing.stitcher import RouteStitcher
from .throttle import RateLimitedCache

logger = logging.getLogger(__name__)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.provider_attempt_timeout_seconds, connect=settings.http_connect_timeout_seconds),
        headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
        follow_redirects=True,
    )


def build_cache(settings: Settings) -> RateLimitedCache:
    return RateLimitedCache(
        {name: settings.min_interval_seconds(name) for name in settings.provider_min_interval_ms},
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )


class ServiceContainer:
    """Creates the engine's components from settings and disposes of them in ``aclose``.

    The embedding application owns one container for the life of the process;
    nothing here is a module-level singleton.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[httpx.AsyncClient] = None,
        cache: Optional[RateLimitedCache] = None,
    ) -> None:
        self.settings = settings
        self._owns_client = client is None
        self.client = client or build_http_client(settings)
        self.cache = cache or build_cache(settings)

        self.estimator = LocalEstimateProvider(
            detour_factor=settings.local_estimate_detour_factor,
            driving_speed_kmh=settings.local_estimate_speed_kmh,
        )
        self.address_provider = AddressSearchProvider(
            self.client, settings.address_api_base_url, limit=settings.address_search_limit
        )

        self.route_chain: ProviderChain[LegRequest, RouteSegment] = ProviderChain(
            self._route_providers(),
            self.cache,
            self.estimator.estimate,
            attempt_timeout=settings.provider_attempt_timeout_seconds,
            total_timeout=settings.request_timeout_seconds,
            label="routing",
            fallback_name=self.estimator.name,
        )
        self.route_service = RouteService(
            RouteStitcher(self.route_chain, self.estimator),
            fuel_consumption_l_per_100km=settings.fuel_consumption_l_per_100km,
            fuel_price_per_litre=settings.fuel_price_per_litre,
        )
        self.place_resolver = PlaceResolver(
            Gazetteer(load_gazetteer(settings.gazetteer_file)),
            self._place_providers(),
            self.cache,
            PlaceMatch(
                label=settings.default_location_label,
                coordinate=Coordinate(settings.default_location_latitude, settings.default_location_longitude),
                is_approximate=True,
                source="default",
            ),
            address_provider=self.address_provider,
            min_query_length=settings.min_query_length,
            request_timeout=settings.provider_attempt_timeout_seconds,
            total_timeout=settings.request_timeout_seconds,
        )

    def _route_providers(self) -> list[Provider[LegRequest, RouteSegment]]:
        settings = self.settings
        available: dict[str, Provider[LegRequest, RouteSegment]] = {
            "here": HereTruckProvider(self.client, settings.here_base_url, settings.here_api_key),
            "openrouteservice": OpenRouteServiceProvider(self.client, settings.ors_base_url, settings.ors_api_key),
            "osrm": OsrmProvider(self.client, settings.osrm_base_url),
        }
        return self._ordered(available, settings.route_provider_order)

    def _place_providers(self) -> list[Provider[str, PlaceMatch]]:
        available: dict[str, Provider[str, PlaceMatch]] = {
            "address_search": self.address_provider,
            "commune_search": CommuneSearchProvider(self.client, self.settings.commune_api_base_url),
        }
        return self._ordered(available, self.settings.place_provider_order)

    @staticmethod
    def _ordered(available: dict, order: tuple[str, ...]) -> list:
        providers = []
        for name in order:
            provider = available.get(name)
            if provider is None:
                raise ValueError(f"Unknown provider '{name}'. Expected one of: {', '.join(available)}.")
            providers.append(provider)
        return providers

    async def aclose(self) -> None:
        cleared = self.cache.clear_cache()
        if self._owns_client:
            await self.client.aclose()
        logger.info("Service container closed (%d cached results dropped)", cleared)

    async def __aenter__(self) -> "ServiceContainer":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
