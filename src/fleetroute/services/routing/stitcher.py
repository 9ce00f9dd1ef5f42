"""Assemble one continuous route from per-leg provider results."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Optional, Sequence

from ...errors import InvalidRouteRequest
from ...models.domain import Coordinate, LegRequest, Route, RouteSegment, TravelProfile, VehicleProfile
from ..orchestrator import ChainOutcome, ProviderChain
from ..providers.local import LocalEstimateProvider

logger = logging.getLogger(__name__)


def _unique(items: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def stitch(segments: Sequence[RouteSegment]) -> Route:
    """Totals are plain sums over ``segments`` in order; nothing is recomputed.

    The stitched geometry is ``Route.geometry``, which drops the first point of
    a leg when it repeats the previous leg's last point.
    """

    if not segments:
        raise InvalidRouteRequest("Cannot stitch a route without legs.")
    warnings = _unique([warning for segment in segments for warning in segment.warnings])
    restrictions = [restriction for segment in segments for restriction in segment.restrictions]
    return Route(
        total_distance_m=sum(segment.distance_m for segment in segments),
        total_duration_s=sum(segment.duration_s for segment in segments),
        segments=list(segments),
        warnings=warnings,
        restrictions=restrictions,
        degraded=any(segment.degraded for segment in segments),
    )


def annotate_segment(outcome: ChainOutcome[RouteSegment]) -> RouteSegment:
    """Copy of the winning segment carrying the failures of the providers tried before it."""

    segment = outcome.value
    if outcome.degraded or not outcome.failures:
        return segment
    # The value may be shared with the cache, so it is copied rather than mutated.
    return dataclasses.replace(segment, warnings=[*outcome.failures, *segment.warnings])


class RouteStitcher:
    """Runs one provider chain per leg, all legs concurrently."""

    def __init__(self, chain: ProviderChain[LegRequest, RouteSegment], estimator: LocalEstimateProvider) -> None:
        self.chain = chain
        self.estimator = estimator

    async def leg(self, request: LegRequest) -> RouteSegment:
        outcome = await self.chain.run(request)
        logger.debug(
            "Leg %s -> %s served by %s (degraded=%s)",
            request.origin,
            request.destination,
            outcome.provider,
            outcome.degraded,
        )
        return annotate_segment(outcome)

    async def build(
        self,
        waypoints: Sequence[Coordinate],
        profile: TravelProfile = TravelProfile.DRIVING,
        vehicle: Optional[VehicleProfile] = None,
    ) -> Route:
        if len(waypoints) < 2:
            raise InvalidRouteRequest(f"A route needs at least two waypoints, got {len(waypoints)}.")

        requests = [
            LegRequest(origin=origin, destination=destination, profile=profile, vehicle=vehicle)
            for origin, destination in zip(waypoints, waypoints[1:])
        ]
        results = await asyncio.gather(*(self.leg(request) for request in requests), return_exceptions=True)

        segments: list[RouteSegment] = []
        for request, result in zip(requests, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("Leg %s -> %s failed: %s", request.origin, request.destination, result)
                segments.append(self.estimator.estimate(request, [f"leg failed: {result}"]))
            else:
                segments.append(result)
        return stitch(segments)
