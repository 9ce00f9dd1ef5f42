"""Route computation entry point used by the API and embedding applications."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ...models.domain import Coordinate, Route, RouteRequest
from .optimizer import optimize_order, total_path_length_m
from .restrictions import derive_restrictions
from .stitcher import RouteStitcher

logger = logging.getLogger(__name__)


def format_duration(seconds: float) -> str:
    minutes = seconds / 60.0
    hours = int(minutes // 60)
    mins = round(minutes % 60)
    if mins == 60:
        hours, mins = hours + 1, 0
    if hours > 0:
        return f"{hours}h {mins}min"
    return f"{mins}min"


@dataclass(slots=True)
class RouteSummary:
    distance_km: float
    duration_text: str
    fuel_litres: float
    fuel_cost: float
    toll_cost: Optional[float]
    estimated: bool


def summarize_route(route: Route, consumption_l_per_100km: float, price_per_litre: float) -> RouteSummary:
    distance_km = route.total_distance_m / 1000.0
    litres = distance_km * consumption_l_per_100km / 100.0
    return RouteSummary(
        distance_km=round(distance_km, 2),
        duration_text=format_duration(route.total_duration_s),
        fuel_litres=round(litres, 2),
        fuel_cost=round(litres * price_per_litre, 2),
        toll_cost=route.toll_total,
        estimated=route.degraded,
    )


def ordered_waypoints(request: RouteRequest) -> list[Coordinate]:
    """Waypoints to route, intermediate stops reordered when the request asks for it."""

    waypoints = list(request.waypoints)
    if not request.optimize_order or len(waypoints) <= 3:
        return waypoints
    start, stops, end = waypoints[0], waypoints[1:-1], waypoints[-1]
    reordered = optimize_order(start, stops, end)
    logger.info(
        "Reordered %d stops: straight-line path %.0f m -> %.0f m",
        len(stops),
        total_path_length_m(start, stops, end),
        total_path_length_m(start, reordered, end),
    )
    return [start, *reordered, end]


class RouteService:
    def __init__(
        self,
        stitcher: RouteStitcher,
        *,
        fuel_consumption_l_per_100km: float = 8.0,
        fuel_price_per_litre: float = 1.5,
    ) -> None:
        self.stitcher = stitcher
        self.fuel_consumption_l_per_100km = fuel_consumption_l_per_100km
        self.fuel_price_per_litre = fuel_price_per_litre

    async def compute_route(self, request: RouteRequest) -> Route:
        """Route through every waypoint, then attach the vehicle's restrictions.

        Provider outages never raise: the affected legs are estimated and the
        route comes back ``degraded``.
        """

        waypoints = ordered_waypoints(request)
        route = await self.stitcher.build(waypoints, request.profile, request.vehicle)
        if request.vehicle is not None:
            restrictions, warnings = derive_restrictions(request.vehicle)
            route.restrictions = [*restrictions, *route.restrictions]
            route.warnings = [*warnings, *(w for w in route.warnings if w not in warnings)]
        logger.info(
            "Route computed: %d legs, %.1f km, degraded=%s",
            len(route.segments),
            route.total_distance_m / 1000.0,
            route.degraded,
        )
        return route

    def summarize(self, route: Route) -> RouteSummary:
        return summarize_route(route, self.fuel_consumption_l_per_100km, self.fuel_price_per_litre)
