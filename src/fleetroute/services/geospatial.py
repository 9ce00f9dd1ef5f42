"""Geospatial helper functions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from shapely.geometry import MultiPoint

from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0
MIN_REGION_SPAN_DEG = 0.01


@dataclass(slots=True)
class Region:
    """Map viewport framing a set of points."""

    center: Coordinate
    span_lat: float
    span_lon: float


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in metres between two coordinates."""

    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude) * 1000.0


def path_length_m(points: Sequence[Coordinate]) -> float:
    return sum(haversine_m(points[i], points[i + 1]) for i in range(len(points) - 1))


def centroid(points: Sequence[Coordinate]) -> Coordinate:
    if not points:
        raise ValueError("At least one point is required to compute a centroid.")
    lat = sum(point.latitude for point in points) / len(points)
    lon = sum(point.longitude for point in points) / len(points)
    return Coordinate(lat, lon)


def bounding_region(points: Sequence[Coordinate], padding: float = 0.1) -> Region:
    """Return the viewport containing every point with a ``padding`` margin (fraction of the extent) on each side.

    Degenerate extents (a single point, aligned points) get a minimum span so the
    viewport never collapses.
    """
    if not points:
        raise ValueError("At least one point is required to compute a region.")
    if padding < 0.1:
        raise ValueError("Region padding must be at least 10%.")

    min_lon, min_lat, max_lon, max_lat = MultiPoint([p.as_lon_lat() for p in points]).bounds
    span_lat = max((max_lat - min_lat) * (1 + 2 * padding), MIN_REGION_SPAN_DEG)
    span_lon = max((max_lon - min_lon) * (1 + 2 * padding), MIN_REGION_SPAN_DEG)
    center = Coordinate((max_lat + min_lat) / 2, (max_lon + min_lon) / 2)
    return Region(center=center, span_lat=span_lat, span_lon=span_lon)


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def encode_polyline(points: Sequence[Coordinate], precision: int = 5) -> str:
    """Encode coordinates with Google's polyline algorithm (5 decimals by default)."""

    factor = 10**precision
    encoded = []
    prev_lat = 0
    prev_lon = 0
    for point in points:
        lat = round(point.latitude * factor)
        lon = round(point.longitude * factor)
        encoded.append(_encode_value(lat - prev_lat))
        encoded.append(_encode_value(lon - prev_lon))
        prev_lat, prev_lon = lat, lon
    return "".join(encoded)


def decode_polyline(polyline: str, precision: int = 5) -> list[Coordinate]:
    """Decode Google polyline string to a list of coordinates.

    OSRM and OpenRouteService both use Google's polyline encoding format for
    route geometry.

    Raises:
        ValueError: if the string is truncated.
    """
    factor = 10**precision
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    def _next_value() -> int:
        nonlocal index
        shift = 0
        result = 0
        while True:
            if index >= len(polyline):
                raise ValueError("Truncated polyline string.")
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1F) << shift
            shift += 5
            if b < 0x20:
                break
        return ~(result >> 1) if (result & 1) else (result >> 1)

    while index < len(polyline):
        lat += _next_value()
        lon += _next_value()
        coordinates.append(Coordinate(lat / factor, lon / factor))

    return coordinates
