"""Place resolution schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import PlaceMatch
from .routing import CoordinateModel


class PlaceResolveRequest(BaseModel):
    text: str = Field(..., description="Free-text address or place name.")


class PlaceMatchModel(BaseModel):
    label: str
    coordinate: CoordinateModel
    is_approximate: bool
    population: Optional[int] = None
    postal_code: Optional[str] = None
    score: Optional[float] = None
    source: str

    @classmethod
    def from_domain(cls, match: PlaceMatch) -> "PlaceMatchModel":
        return cls(
            label=match.label,
            coordinate=CoordinateModel.from_domain(match.coordinate),
            is_approximate=match.is_approximate,
            population=match.population,
            postal_code=match.postal_code,
            score=match.score,
            source=match.source,
        )


class PlaceResolveResponse(BaseModel):
    match: PlaceMatchModel
    states: List[str]
    failures: List[str]


class PlaceSearchResponse(BaseModel):
    query: str
    results: List[PlaceMatchModel]
