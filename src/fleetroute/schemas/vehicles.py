"""Vehicle restriction schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .routing import RestrictionModel, VehicleProfileModel


class VehicleRestrictionsRequest(BaseModel):
    vehicle: Optional[VehicleProfileModel] = None
    record: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Loosely shaped vehicle record (weight, maxWeight, category, ...).",
    )

    @model_validator(mode="after")
    def _require_one_source(self) -> "VehicleRestrictionsRequest":
        if (self.vehicle is None) == (self.record is None):
            raise ValueError("Provide exactly one of 'vehicle' or 'record'.")
        return self


class VehicleRestrictionsResponse(BaseModel):
    vehicle: VehicleProfileModel
    is_heavy: bool
    restrictions: List[RestrictionModel]
    warnings: List[str]
