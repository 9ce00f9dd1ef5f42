"""HTTP adapter for the public OSRM ``route`` service."""

from __future__ import annotations

import logging
from typing import Any

from ...errors import ProviderUnavailable
from ...models.domain import Coordinate, LegRequest, RouteInstruction, RouteSegment, TravelProfile
from ..geospatial import decode_polyline
from ..throttle import coordinate_key
from .base import HttpProvider

logger = logging.getLogger(__name__)

HEAVY_VEHICLE_NOTICE = "heavy-vehicle restrictions not verified on this route (OSRM car profile)"

_PROFILES = {
    TravelProfile.DRIVING: "driving",
    TravelProfile.CYCLING: "cycling",
    TravelProfile.WALKING: "foot",
}


def _step_text(step: dict[str, Any]) -> str:
    maneuver = step.get("maneuver") or {}
    kind = maneuver.get("type", "continue")
    modifier = maneuver.get("modifier")
    road = step.get("name")
    text = kind if not modifier else f"{kind} {modifier}"
    if road:
        text = f"{text} onto {road}"
    return text[:1].upper() + text[1:]


class OsrmProvider(HttpProvider[LegRequest, RouteSegment]):
    """Free/open routing. Does not know vehicle dimensions."""

    name = "osrm"

    def cache_key(self, request: LegRequest) -> str:
        # Heavy requests get an extra warning, so they must not share entries with light ones.
        weight_class = "heavy" if request.is_heavy else "light"
        return coordinate_key((request.origin, request.destination), _PROFILES[request.profile], weight_class)

    async def resolve(self, request: LegRequest) -> RouteSegment:
        coords = ";".join(
            f"{point.longitude},{point.latitude}" for point in (request.origin, request.destination)
        )
        params = {"overview": "full", "geometries": "polyline", "steps": "true"}
        data = await self._get_json(f"/route/v1/{_PROFILES[request.profile]}/{coords}", params=params)
        segment = parse_osrm_response(data)
        if request.is_heavy:
            segment.warnings.append(HEAVY_VEHICLE_NOTICE)
        return segment


def parse_osrm_response(data: dict[str, Any]) -> RouteSegment:
    if data.get("code") != "Ok":
        raise ProviderUnavailable(f"OSRM answered {data.get('code')}: {data.get('message', 'no message')}")
    routes = data.get("routes") or []
    if not routes:
        raise ProviderUnavailable("OSRM returned no route")
    route = routes[0]
    try:
        geometry = decode_polyline(route["geometry"])
        distance = float(route["distance"])
        duration = float(route["duration"])
        instructions = []
        for leg in route.get("legs") or []:
            for step in leg.get("steps") or []:
                location = None
                maneuver_location = (step.get("maneuver") or {}).get("location")
                if maneuver_location:
                    lon, lat = maneuver_location
                    location = Coordinate(lat, lon)
                instructions.append(
                    RouteInstruction(
                        text=_step_text(step),
                        distance_m=float(step.get("distance", 0.0)),
                        duration_s=float(step.get("duration", 0.0)),
                        location=location,
                    )
                )
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderUnavailable(f"OSRM payload malformed: {exc}") from exc

    if len(geometry) < 2:
        raise ProviderUnavailable("OSRM route geometry is empty")

    return RouteSegment(
        distance_m=distance,
        duration_s=duration,
        geometry=geometry,
        instruction_text=instructions[0].text if instructions else "Follow the route",
        instructions=instructions,
        provider=OsrmProvider.name,
    )
