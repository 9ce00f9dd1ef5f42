"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.domain import RouteRequest
from ...schemas.routing import (
    CoordinateModel,
    OptimizeOrderRequest,
    OptimizeOrderResponse,
    RouteComputeRequest,
    RouteResponse,
    RouteSummaryModel,
)
from ...services.container import ServiceContainer
from ...services.geospatial import bounding_region
from ...services.routing.optimizer import order_indices, total_path_length_m
from ..dependencies import get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/compute", response_model=RouteResponse, status_code=status.HTTP_200_OK)
async def compute(payload: RouteComputeRequest, container: ServiceContainer = Depends(get_container)) -> RouteResponse:
    try:
        request = RouteRequest(
            waypoints=[point.to_domain() for point in payload.waypoints],
            profile=payload.profile,
            vehicle=payload.vehicle.to_domain() if payload.vehicle else None,
            optimize_order=payload.optimize_order,
        )
        service = container.route_service
        route = await service.compute_route(request)
        summary = service.summarize(route)
        return RouteResponse.from_domain(
            route,
            bounding_region(route.geometry or request.waypoints),
            RouteSummaryModel(
                distance_km=summary.distance_km,
                duration_text=summary.duration_text,
                fuel_litres=summary.fuel_litres,
                fuel_cost=summary.fuel_cost,
                toll_cost=summary.toll_cost,
                estimated=summary.estimated,
            ),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error computing route: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to compute route: {exc}",
        ) from exc


@router.post("/optimize-order", response_model=OptimizeOrderResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeOrderRequest) -> OptimizeOrderResponse:
    start, end = payload.start.to_domain(), payload.end.to_domain()
    stops = [stop.to_domain() for stop in payload.stops]
    order = order_indices(start, stops) if len(stops) > 1 else list(range(len(stops)))
    reordered = [stops[index] for index in order]
    return OptimizeOrderResponse(
        stops=[CoordinateModel.from_domain(stop) for stop in reordered],
        order=order,
        distance_before_m=total_path_length_m(start, stops, end),
        distance_after_m=total_path_length_m(start, reordered, end),
    )
