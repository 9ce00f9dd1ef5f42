"""Straight-line route estimate used when no remote routing provider answers."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ...models.domain import LegRequest, RouteSegment, TravelProfile
from ..geospatial import haversine_m
from ..throttle import coordinate_key

logger = logging.getLogger(__name__)

# Cycling and walking speeds do not depend on configuration.
_PROFILE_SPEEDS_KMH = {
    TravelProfile.CYCLING: 15.0,
    TravelProfile.WALKING: 5.0,
}


class LocalEstimateProvider:
    """Haversine distance times a detour factor, at a constant speed.

    Always succeeds; every segment it produces is flagged ``degraded``.
    """

    name = "local_estimate"

    def __init__(self, detour_factor: float = 1.3, driving_speed_kmh: float = 60.0) -> None:
        self.detour_factor = detour_factor
        self.driving_speed_kmh = driving_speed_kmh

    def is_applicable(self, request: LegRequest) -> Optional[str]:
        return None

    def cache_key(self, request: LegRequest) -> str:
        weight_class = "heavy" if request.is_heavy else "light"
        return coordinate_key((request.origin, request.destination), request.profile.value, weight_class)

    def speed_kmh(self, profile: TravelProfile) -> float:
        return _PROFILE_SPEEDS_KMH.get(profile, self.driving_speed_kmh)

    def estimate(self, request: LegRequest, failures: Sequence[str] = ()) -> RouteSegment:
        distance_m = haversine_m(request.origin, request.destination) * self.detour_factor
        duration_s = distance_m / (self.speed_kmh(request.profile) / 3.6)
        warnings = list(failures)
        warnings.append("estimated route: straight-line distance, no routing provider available")
        if request.is_heavy:
            warnings.append("heavy-vehicle restrictions not verified on an estimated route")
        logger.info(
            "Local estimate %s -> %s: %.0f m, %.0f s", request.origin, request.destination, distance_m, duration_s
        )
        return RouteSegment(
            distance_m=distance_m,
            duration_s=duration_s,
            geometry=[request.origin, request.destination],
            instruction_text=f"Head towards {request.destination}",
            provider=self.name,
            degraded=True,
            warnings=warnings,
        )

    async def resolve(self, request: LegRequest) -> RouteSegment:
        return self.estimate(request)
