"""Domain models for coordinates, vehicles, routes and places."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar

from ..errors import InvalidCoordinate, InvalidRouteRequest

HEAVY_VEHICLE_THRESHOLD_TONNES = 19.0

V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A WGS84 position. Immutable, compared by value."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        lat, lon = float(self.latitude), float(self.longitude)
        if math.isnan(lat) or math.isnan(lon):
            raise InvalidCoordinate("Coordinate values must be numbers.")
        if not -90.0 <= lat <= 90.0:
            raise InvalidCoordinate(f"Latitude {lat} outside [-90, 90].")
        if not -180.0 <= lon <= 180.0:
            raise InvalidCoordinate(f"Longitude {lon} outside [-180, 180].")

    def as_lon_lat(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)

    def __str__(self) -> str:
        return f"{self.latitude:.4f}, {self.longitude:.4f}"


class TravelProfile(str, Enum):
    DRIVING = "driving"
    CYCLING = "cycling"
    WALKING = "walking"


class RestrictionKind(str, Enum):
    WEIGHT = "weight"
    HEIGHT = "height"
    WIDTH = "width"
    LENGTH = "length"
    AXLE_LOAD = "axleLoad"
    HAZMAT = "hazmat"
    TUNNEL = "tunnel"
    BRIDGE = "bridge"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True)
class VehicleProfile:
    """Physical parameters of the vehicle; absent dimensions fall back to a light van."""

    mass_tonnes: float = 3.5
    height_m: Optional[float] = None
    width_m: Optional[float] = None
    length_m: Optional[float] = None
    axle_load_tonnes: Optional[float] = None
    hazmat: bool = False
    avoid_tolls: bool = False
    avoid_ferries: bool = False

    DEFAULT_HEIGHT_M = 2.0
    DEFAULT_WIDTH_M = 2.0
    DEFAULT_LENGTH_M = 5.0

    @property
    def effective_height_m(self) -> float:
        return self.height_m if self.height_m is not None else self.DEFAULT_HEIGHT_M

    @property
    def effective_width_m(self) -> float:
        return self.width_m if self.width_m is not None else self.DEFAULT_WIDTH_M

    @property
    def effective_length_m(self) -> float:
        return self.length_m if self.length_m is not None else self.DEFAULT_LENGTH_M

    @property
    def effective_axle_load_tonnes(self) -> float:
        # Two-axle approximation when the axle load is unknown.
        if self.axle_load_tonnes is not None:
            return self.axle_load_tonnes
        return self.mass_tonnes / 2

    @property
    def is_heavy(self) -> bool:
        return self.mass_tonnes > HEAVY_VEHICLE_THRESHOLD_TONNES

    def signature(self) -> str:
        """Stable text form used in cache keys."""
        return (
            f"m={self.mass_tonnes:g};h={self.effective_height_m:g};w={self.effective_width_m:g};"
            f"l={self.effective_length_m:g};a={self.effective_axle_load_tonnes:g};"
            f"hz={int(self.hazmat)};tl={int(self.avoid_tolls)};fy={int(self.avoid_ferries)}"
        )


@dataclass(slots=True)
class Restriction:
    kind: RestrictionKind
    description: str
    severity: Severity
    location: Optional[Coordinate] = None


@dataclass(slots=True)
class RouteInstruction:
    text: str
    distance_m: float = 0.0
    duration_s: float = 0.0
    location: Optional[Coordinate] = None


@dataclass(slots=True)
class TollSection:
    name: str
    cost: float


@dataclass(slots=True)
class TollInfo:
    total_cost: float
    currency: str = "EUR"
    sections: list[TollSection] = field(default_factory=list)


@dataclass(slots=True)
class RouteSegment:
    """One leg of a route between two consecutive waypoints."""

    distance_m: float
    duration_s: float
    geometry: list[Coordinate]
    instruction_text: str
    instructions: list[RouteInstruction] = field(default_factory=list)
    provider: str = ""
    degraded: bool = False
    warnings: list[str] = field(default_factory=list)
    restrictions: list[Restriction] = field(default_factory=list)
    toll: Optional[TollInfo] = None


@dataclass(slots=True)
class RouteRequest:
    waypoints: list[Coordinate]
    profile: TravelProfile = TravelProfile.DRIVING
    vehicle: Optional[VehicleProfile] = None
    optimize_order: bool = False

    def __post_init__(self) -> None:
        if len(self.waypoints) < 2:
            raise InvalidRouteRequest(
                f"A route needs at least two waypoints, got {len(self.waypoints)}."
            )


@dataclass(slots=True)
class LegRequest:
    """Request handed to routing providers for a single leg."""

    origin: Coordinate
    destination: Coordinate
    profile: TravelProfile = TravelProfile.DRIVING
    vehicle: Optional[VehicleProfile] = None

    @property
    def is_heavy(self) -> bool:
        return self.vehicle is not None and self.vehicle.is_heavy


@dataclass(slots=True)
class Route:
    total_distance_m: float
    total_duration_s: float
    segments: list[RouteSegment]
    warnings: list[str] = field(default_factory=list)
    restrictions: list[Restriction] = field(default_factory=list)
    degraded: bool = False

    @property
    def geometry(self) -> list[Coordinate]:
        points: list[Coordinate] = []
        for segment in self.segments:
            leg_points = segment.geometry
            if points and leg_points and points[-1] == leg_points[0]:
                leg_points = leg_points[1:]
            points.extend(leg_points)
        return points

    @property
    def polyline(self) -> str:
        from ..services.geospatial import encode_polyline

        return encode_polyline(self.geometry)

    @property
    def toll_total(self) -> Optional[float]:
        tolls = [segment.toll.total_cost for segment in self.segments if segment.toll is not None]
        return sum(tolls) if tolls else None


@dataclass(slots=True)
class PlaceMatch:
    label: str
    coordinate: Coordinate
    is_approximate: bool
    population: Optional[int] = None
    postal_code: Optional[str] = None
    score: Optional[float] = None
    source: str = ""


@dataclass(slots=True)
class CacheEntry(Generic[V]):
    key: tuple[str, str]
    value: V
    created_at: datetime
