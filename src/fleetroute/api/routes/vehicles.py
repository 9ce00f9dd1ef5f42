"""Vehicle restriction endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, status

from ...schemas.routing import RestrictionModel, VehicleProfileModel
from ...schemas.vehicles import VehicleRestrictionsRequest, VehicleRestrictionsResponse
from ...services.routing.restrictions import build_vehicle_profile, derive_restrictions, is_heavy

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.post("/restrictions", response_model=VehicleRestrictionsResponse, status_code=status.HTTP_200_OK)
def restrictions(payload: VehicleRestrictionsRequest) -> VehicleRestrictionsResponse:
    vehicle = payload.vehicle.to_domain() if payload.vehicle else build_vehicle_profile(payload.record or {})
    found, warnings = derive_restrictions(vehicle)
    return VehicleRestrictionsResponse(
        vehicle=VehicleProfileModel(**asdict(vehicle)),
        is_heavy=is_heavy(vehicle),
        restrictions=[RestrictionModel.from_domain(item) for item in found],
        warnings=warnings,
    )
