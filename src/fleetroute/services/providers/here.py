"""HERE Routing v8 adapter, used for heavy vehicles.

HERE returns geometry as a "flexible polyline" (URL-safe base64 alphabet,
header with precision and optional third dimension), decoded here without
the elevation dimension.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ...errors import ProviderUnavailable
from ...models.domain import (
    Coordinate,
    LegRequest,
    Restriction,
    RestrictionKind,
    RouteInstruction,
    RouteSegment,
    Severity,
    TollInfo,
    TollSection,
    TravelProfile,
)
from ..throttle import coordinate_key
from .base import HttpProvider

logger = logging.getLogger(__name__)

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
_DECODING = {char: index for index, char in enumerate(_ALPHABET)}

_TRANSPORT_MODES = {
    TravelProfile.DRIVING: "truck",
    TravelProfile.CYCLING: "bicycle",
    TravelProfile.WALKING: "pedestrian",
}

_NOTICE_KINDS = (
    ("axle", RestrictionKind.AXLE_LOAD),
    ("weight", RestrictionKind.WEIGHT),
    ("height", RestrictionKind.HEIGHT),
    ("width", RestrictionKind.WIDTH),
    ("length", RestrictionKind.LENGTH),
    ("tunnel", RestrictionKind.TUNNEL),
    ("bridge", RestrictionKind.BRIDGE),
    ("hazard", RestrictionKind.HAZMAT),
    ("hazmat", RestrictionKind.HAZMAT),
)


def _unsigned_values(encoded: str):
    result = 0
    shift = 0
    for char in encoded:
        try:
            value = _DECODING[char]
        except KeyError as exc:
            raise ValueError(f"Invalid flexible polyline character {char!r}.") from exc
        result |= (value & 0x1F) << shift
        if value & 0x20:
            shift += 5
        else:
            yield result
            result = 0
            shift = 0
    if shift:
        raise ValueError("Truncated flexible polyline.")


def _to_signed(value: int) -> int:
    if value & 1:
        value = ~value
    return value >> 1


def decode_flexible_polyline(encoded: str) -> list[Coordinate]:
    values = _unsigned_values(encoded)
    try:
        version = next(values)
        header = next(values)
    except StopIteration as exc:
        raise ValueError("Flexible polyline header missing.") from exc
    if version != 1:
        raise ValueError(f"Unsupported flexible polyline version {version}.")
    factor = 10 ** (header & 15)
    has_third_dimension = (header >> 4) & 7 != 0

    points: list[Coordinate] = []
    lat = lon = 0
    for value in values:
        lat += _to_signed(value)
        try:
            lon += _to_signed(next(values))
            if has_third_dimension:
                next(values)
        except StopIteration as exc:
            raise ValueError("Flexible polyline ends mid-coordinate.") from exc
        points.append(Coordinate(lat / factor, lon / factor))
    return points


def notice_kind(code: str) -> RestrictionKind:
    lowered = code.lower()
    for token, kind in _NOTICE_KINDS:
        if token in lowered:
            return kind
    return RestrictionKind.WEIGHT


class HereTruckProvider(HttpProvider[LegRequest, RouteSegment]):
    name = "here"

    def __init__(self, client: httpx.AsyncClient, base_url: str, api_key: Optional[str]) -> None:
        super().__init__(client, base_url)
        self.api_key = api_key

    def is_applicable(self, request: LegRequest) -> Optional[str]:
        if not self.api_key:
            return "API key not configured"
        if not request.is_heavy:
            return "light vehicle, specialised heavy-vehicle routing not needed"
        return None

    def cache_key(self, request: LegRequest) -> str:
        vehicle = request.vehicle.signature() if request.vehicle else "-"
        return coordinate_key((request.origin, request.destination), request.profile.value, vehicle)

    def _params(self, request: LegRequest) -> dict[str, Any]:
        params: dict[str, Any] = {
            "apiKey": self.api_key,
            "origin": f"{request.origin.latitude},{request.origin.longitude}",
            "destination": f"{request.destination.latitude},{request.destination.longitude}",
            "transportMode": _TRANSPORT_MODES[request.profile],
            "return": "polyline,summary,actions,instructions,tolls",
            "lang": "fr-FR",
        }
        vehicle = request.vehicle
        if vehicle is not None and request.profile is TravelProfile.DRIVING:
            params.update(
                {
                    "vehicle[grossWeight]": int(vehicle.mass_tonnes * 1000),
                    "vehicle[weightPerAxle]": int(vehicle.effective_axle_load_tonnes * 1000),
                    "vehicle[height]": int(vehicle.effective_height_m * 100),
                    "vehicle[width]": int(vehicle.effective_width_m * 100),
                    "vehicle[length]": int(vehicle.effective_length_m * 100),
                    "vehicle[tunnelCategory]": "E" if vehicle.hazmat else "B",
                }
            )
            avoid = []
            if vehicle.avoid_tolls:
                avoid.append("tollRoad")
            if vehicle.avoid_ferries:
                avoid.append("ferry")
            if avoid:
                params["avoid[features]"] = ",".join(avoid)
        return params

    async def resolve(self, request: LegRequest) -> RouteSegment:
        data = await self._get_json("/routes", params=self._params(request))
        return parse_here_response(data)


def _parse_tolls(sections: list[dict[str, Any]]) -> Optional[TollInfo]:
    toll_sections: list[TollSection] = []
    currency = "EUR"
    for section in sections:
        for toll in section.get("tolls") or []:
            fares = toll.get("fares") or []
            price = (fares[0].get("price") or {}) if fares else {}
            currency = price.get("currency", currency)
            toll_sections.append(
                TollSection(name=toll.get("tollSystem") or "toll", cost=float(price.get("value") or 0.0))
            )
    if not toll_sections:
        return None
    return TollInfo(
        total_cost=sum(item.cost for item in toll_sections),
        currency=currency,
        sections=toll_sections,
    )


def parse_here_response(data: dict[str, Any]) -> RouteSegment:
    routes = data.get("routes") or []
    if not routes:
        raise ProviderUnavailable("HERE returned no route")
    sections = routes[0].get("sections") or []
    if not sections:
        raise ProviderUnavailable("HERE route has no sections")

    distance = 0.0
    duration = 0.0
    geometry: list[Coordinate] = []
    instructions: list[RouteInstruction] = []
    restrictions: list[Restriction] = []
    warnings: list[str] = []
    try:
        for section in sections:
            summary = section["summary"]
            distance += float(summary["length"])
            duration += float(summary["duration"])
            points = decode_flexible_polyline(section["polyline"])
            offset_base = len(geometry)
            if geometry and points and geometry[-1] == points[0]:
                points = points[1:]
                offset_base -= 1
            geometry.extend(points)
            for action in section.get("actions") or []:
                offset = action.get("offset")
                location = None
                if isinstance(offset, int) and 0 <= offset_base + offset < len(geometry):
                    location = geometry[offset_base + offset]
                instructions.append(
                    RouteInstruction(
                        text=action.get("instruction") or action.get("action", ""),
                        distance_m=float(action.get("length") or 0.0),
                        duration_s=float(action.get("duration") or 0.0),
                        location=location,
                    )
                )
            for notice in section.get("notices") or []:
                title = notice.get("title") or notice.get("code") or "restriction"
                severity = Severity.ERROR if notice.get("severity") == "critical" else Severity.WARNING
                restrictions.append(
                    Restriction(kind=notice_kind(notice.get("code", "")), description=title, severity=severity)
                )
                warnings.append(f"HERE notice: {title}")
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderUnavailable(f"HERE payload malformed: {exc}") from exc

    if len(geometry) < 2:
        raise ProviderUnavailable("HERE route geometry is empty")

    return RouteSegment(
        distance_m=distance,
        duration_s=duration,
        geometry=geometry,
        instruction_text=instructions[0].text if instructions else "Follow the truck route",
        instructions=instructions,
        provider=HereTruckProvider.name,
        warnings=warnings,
        restrictions=restrictions,
        toll=_parse_tolls(sections),
    )
