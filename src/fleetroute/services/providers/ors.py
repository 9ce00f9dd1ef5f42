"""OpenRouteService v2 directions adapter."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ...errors import ProviderUnavailable
from ...models.domain import Coordinate, LegRequest, RouteInstruction, RouteSegment, TravelProfile
from ..geospatial import decode_polyline
from ..throttle import coordinate_key
from .base import HttpProvider

logger = logging.getLogger(__name__)

_PROFILES = {
    TravelProfile.CYCLING: "cycling-regular",
    TravelProfile.WALKING: "foot-walking",
}


def ors_profile(request: LegRequest) -> str:
    if request.profile is TravelProfile.DRIVING:
        return "driving-hgv" if request.is_heavy else "driving-car"
    return _PROFILES[request.profile]


class OpenRouteServiceProvider(HttpProvider[LegRequest, RouteSegment]):
    name = "openrouteservice"

    def __init__(self, client: httpx.AsyncClient, base_url: str, api_key: Optional[str]) -> None:
        super().__init__(client, base_url)
        self.api_key = api_key

    def is_applicable(self, request: LegRequest) -> Optional[str]:
        if not self.api_key:
            return "API key not configured"
        return None

    def cache_key(self, request: LegRequest) -> str:
        vehicle = request.vehicle.signature() if request.vehicle else "-"
        return coordinate_key((request.origin, request.destination), ors_profile(request), vehicle)

    def build_body(self, request: LegRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "coordinates": [list(request.origin.as_lon_lat()), list(request.destination.as_lon_lat())],
            "instructions": True,
            "language": "fr",
            "units": "m",
        }
        vehicle = request.vehicle
        if vehicle is None or request.profile is not TravelProfile.DRIVING:
            return body

        options: dict[str, Any] = {}
        avoid = []
        if vehicle.avoid_tolls:
            avoid.append("tollways")
        if vehicle.avoid_ferries:
            avoid.append("ferries")
        if avoid:
            options["avoid_features"] = avoid
        if request.is_heavy:
            options["vehicle_type"] = "hgv"
            options["profile_params"] = {
                "restrictions": {
                    "weight": vehicle.mass_tonnes,
                    "axleload": vehicle.effective_axle_load_tonnes,
                    "height": vehicle.effective_height_m,
                    "width": vehicle.effective_width_m,
                    "length": vehicle.effective_length_m,
                    "hazmat": vehicle.hazmat,
                }
            }
        if options:
            body["options"] = options
        return body

    async def resolve(self, request: LegRequest) -> RouteSegment:
        data = await self._post_json(
            f"/directions/{ors_profile(request)}",
            json=self.build_body(request),
            headers={"Authorization": self.api_key or ""},
        )
        return parse_ors_response(data)


def parse_ors_response(data: dict[str, Any]) -> RouteSegment:
    routes = data.get("routes") or []
    if not routes:
        raise ProviderUnavailable("OpenRouteService returned no route")
    route = routes[0]
    try:
        summary = route["summary"]
        geometry = decode_polyline(route["geometry"])
        # ORS omits distance/duration from the summary of zero-length routes.
        distance = float(summary.get("distance", 0.0))
        duration = float(summary.get("duration", 0.0))
        instructions: list[RouteInstruction] = []
        for segment in route.get("segments") or []:
            for step in segment.get("steps") or []:
                location: Optional[Coordinate] = None
                way_points = step.get("way_points") or []
                if way_points and 0 <= way_points[0] < len(geometry):
                    location = geometry[way_points[0]]
                instructions.append(
                    RouteInstruction(
                        text=step.get("instruction", ""),
                        distance_m=float(step.get("distance", 0.0)),
                        duration_s=float(step.get("duration", 0.0)),
                        location=location,
                    )
                )
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderUnavailable(f"OpenRouteService payload malformed: {exc}") from exc

    if len(geometry) < 2:
        raise ProviderUnavailable("OpenRouteService route geometry is empty")

    warnings = [
        f"OpenRouteService: {item.get('message')}"
        for item in route.get("warnings") or []
        if item.get("message")
    ]
    return RouteSegment(
        distance_m=distance,
        duration_s=duration,
        geometry=geometry,
        instruction_text=instructions[0].text if instructions else "Follow the route",
        instructions=instructions,
        provider=OpenRouteServiceProvider.name,
        warnings=warnings,
    )
