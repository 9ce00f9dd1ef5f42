"""Health and cache observability endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...services.container import ServiceContainer
from ..dependencies import get_container

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root(container: ServiceContainer = Depends(get_container)) -> dict:
    """Liveness plus the configured provider chains."""
    return {
        "status": "ok",
        "route_providers": container.route_chain.provider_names,
        "place_providers": ["gazetteer", *container.place_resolver.remote_chain.provider_names],
    }


@router.get("/health/cache", status_code=status.HTTP_200_OK)
def cache_stats(container: ServiceContainer = Depends(get_container)) -> dict:
    stats = container.cache.cache_stats()
    return {"size": stats.size, "keys": stats.keys}


@router.delete("/health/cache", status_code=status.HTTP_200_OK)
def clear_cache(
    provider: Optional[str] = Query(default=None, description="Only drop this provider's entries."),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    removed = container.cache.clear_cache(provider)
    return {"removed": removed, "provider": provider}
