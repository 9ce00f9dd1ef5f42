"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import (
    Coordinate,
    Restriction,
    Route,
    RouteSegment,
    TravelProfile,
    VehicleProfile,
)
from ..services.geospatial import Region


class CoordinateModel(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    def to_domain(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @classmethod
    def from_domain(cls, coordinate: Coordinate) -> "CoordinateModel":
        return cls(latitude=coordinate.latitude, longitude=coordinate.longitude)


class VehicleProfileModel(BaseModel):
    mass_tonnes: float = Field(3.5, gt=0, description="Gross vehicle mass in tonnes.")
    height_m: Optional[float] = Field(None, gt=0)
    width_m: Optional[float] = Field(None, gt=0)
    length_m: Optional[float] = Field(None, gt=0)
    axle_load_tonnes: Optional[float] = Field(None, gt=0)
    hazmat: bool = False
    avoid_tolls: bool = False
    avoid_ferries: bool = False

    def to_domain(self) -> VehicleProfile:
        return VehicleProfile(**self.model_dump())


class RestrictionModel(BaseModel):
    kind: str
    description: str
    severity: str
    location: Optional[CoordinateModel] = None

    @classmethod
    def from_domain(cls, restriction: Restriction) -> "RestrictionModel":
        return cls(
            kind=restriction.kind.value,
            description=restriction.description,
            severity=restriction.severity.value,
            location=CoordinateModel.from_domain(restriction.location) if restriction.location else None,
        )


class InstructionModel(BaseModel):
    text: str
    distance_m: float
    duration_s: float
    location: Optional[CoordinateModel] = None


class TollModel(BaseModel):
    total_cost: float
    currency: str
    sections: List[dict]


class RouteSegmentModel(BaseModel):
    distance_m: float
    duration_s: float
    provider: str
    degraded: bool
    instruction_text: str
    instructions: List[InstructionModel]
    geometry: List[CoordinateModel]
    warnings: List[str]
    restrictions: List[RestrictionModel]
    toll: Optional[TollModel] = None

    @classmethod
    def from_domain(cls, segment: RouteSegment) -> "RouteSegmentModel":
        toll = None
        if segment.toll is not None:
            toll = TollModel(
                total_cost=segment.toll.total_cost,
                currency=segment.toll.currency,
                sections=[{"name": item.name, "cost": item.cost} for item in segment.toll.sections],
            )
        return cls(
            distance_m=segment.distance_m,
            duration_s=segment.duration_s,
            provider=segment.provider,
            degraded=segment.degraded,
            instruction_text=segment.instruction_text,
            instructions=[
                InstructionModel(
                    text=item.text,
                    distance_m=item.distance_m,
                    duration_s=item.duration_s,
                    location=CoordinateModel.from_domain(item.location) if item.location else None,
                )
                for item in segment.instructions
            ],
            geometry=[CoordinateModel.from_domain(point) for point in segment.geometry],
            warnings=list(segment.warnings),
            restrictions=[RestrictionModel.from_domain(item) for item in segment.restrictions],
            toll=toll,
        )


class RegionModel(BaseModel):
    center: CoordinateModel
    span_lat: float
    span_lon: float

    @classmethod
    def from_domain(cls, region: Region) -> "RegionModel":
        return cls(center=CoordinateModel.from_domain(region.center), span_lat=region.span_lat, span_lon=region.span_lon)


class RouteSummaryModel(BaseModel):
    distance_km: float
    duration_text: str
    fuel_litres: float
    fuel_cost: float
    toll_cost: Optional[float] = None
    estimated: bool


class RouteComputeRequest(BaseModel):
    waypoints: List[CoordinateModel] = Field(..., description="Start, optional intermediate stops, end.")
    profile: TravelProfile = TravelProfile.DRIVING
    vehicle: Optional[VehicleProfileModel] = None
    optimize_order: bool = Field(
        default=False,
        description="Reorder intermediate stops (nearest neighbour) before routing.",
    )


class RouteResponse(BaseModel):
    total_distance_m: float
    total_duration_s: float
    degraded: bool
    polyline: str
    geometry: List[CoordinateModel]
    region: RegionModel
    segments: List[RouteSegmentModel]
    warnings: List[str]
    restrictions: List[RestrictionModel]
    summary: RouteSummaryModel

    @classmethod
    def from_domain(cls, route: Route, region: Region, summary: RouteSummaryModel) -> "RouteResponse":
        return cls(
            total_distance_m=route.total_distance_m,
            total_duration_s=route.total_duration_s,
            degraded=route.degraded,
            polyline=route.polyline,
            geometry=[CoordinateModel.from_domain(point) for point in route.geometry],
            region=RegionModel.from_domain(region),
            segments=[RouteSegmentModel.from_domain(segment) for segment in route.segments],
            warnings=list(route.warnings),
            restrictions=[RestrictionModel.from_domain(item) for item in route.restrictions],
            summary=summary,
        )


class OptimizeOrderRequest(BaseModel):
    start: CoordinateModel
    stops: List[CoordinateModel]
    end: CoordinateModel


class OptimizeOrderResponse(BaseModel):
    stops: List[CoordinateModel]
    order: List[int]
    distance_before_m: float
    distance_after_m: float
