"""Place resolution endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.domain import Coordinate
from ...schemas.places import PlaceMatchModel, PlaceResolveRequest, PlaceResolveResponse, PlaceSearchResponse
from ...services.container import ServiceContainer
from ..dependencies import get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/places", tags=["places"])


@router.post("/resolve", response_model=PlaceResolveResponse, status_code=status.HTTP_200_OK)
async def resolve(payload: PlaceResolveRequest, container: ServiceContainer = Depends(get_container)) -> PlaceResolveResponse:
    try:
        resolution = await container.place_resolver.resolve(payload.text)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error resolving place %r: %s", payload.text, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to resolve place: {exc}",
        ) from exc
    return PlaceResolveResponse(
        match=PlaceMatchModel.from_domain(resolution.match),
        states=[state.value for state in resolution.states],
        failures=resolution.failures,
    )


@router.get("/search", response_model=PlaceSearchResponse, status_code=status.HTTP_200_OK)
async def search(
    q: str = Query(..., description="Partial address typed by the user."),
    limit: int = Query(default=8, ge=1, le=15),
    container: ServiceContainer = Depends(get_container),
) -> PlaceSearchResponse:
    results = await container.place_resolver.search(q, limit)
    return PlaceSearchResponse(query=q, results=[PlaceMatchModel.from_domain(item) for item in results])


@router.get("/reverse", response_model=PlaceMatchModel, status_code=status.HTTP_200_OK)
async def reverse(
    latitude: float = Query(..., ge=-90.0, le=90.0),
    longitude: float = Query(..., ge=-180.0, le=180.0),
    container: ServiceContainer = Depends(get_container),
) -> PlaceMatchModel:
    match = await container.place_resolver.reverse(Coordinate(latitude, longitude))
    return PlaceMatchModel.from_domain(match)
