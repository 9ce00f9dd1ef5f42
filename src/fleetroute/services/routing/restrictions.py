"""Heavy-vehicle restriction rules, independent of the routing provider.

One authoritative threshold table:

========================  ==========  ========
Condition                 Kind        Severity
========================  ==========  ========
mass > 44 t               weight      error
40 t <= mass <= 44 t      weight      warning
height > 4.5 m            height      error
4.0 m <= height <= 4.5 m  height      warning
width > 2.55 m            width       error
length > 16.5 m           length      error
axle load > 11.5 t        axleLoad    warning
hazmat                    hazmat      warning
========================  ==========  ========

Warning bands include their lower bound, error thresholds are strict.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ...models.domain import (
    HEAVY_VEHICLE_THRESHOLD_TONNES,
    Restriction,
    RestrictionKind,
    Severity,
    VehicleProfile,
)

logger = logging.getLogger(__name__)

MAX_LEGAL_MASS_TONNES = 44.0
HIGH_MASS_TONNES = 40.0
MAX_HEIGHT_M = 4.5
HIGH_HEIGHT_M = 4.0
MAX_WIDTH_M = 2.55
MAX_LENGTH_M = 16.5
MAX_AXLE_LOAD_TONNES = 11.5

LIGHT_VEHICLE_MASS_TONNES = 3.5
HEAVY_CATEGORY_MASS_TONNES = 25.0

HEAVY_VEHICLE_ADVISORY = "Heavy vehicle: check local restrictions for heavy goods vehicles before departure"

_MASS_FIELDS = ("mass_tonnes", "massTonnes", "mass", "weight")
_GROSS_WEIGHT_FIELDS = ("max_weight", "maxWeight", "gross_weight", "grossWeight", "gvw")
_HEAVY_CATEGORY_KEYWORDS = ("poids lourd", "heavy", "truck", "hgv", "lorry", "semi")


def _add(
    restrictions: list[Restriction],
    warnings: list[str],
    kind: RestrictionKind,
    severity: Severity,
    description: str,
) -> None:
    restrictions.append(Restriction(kind=kind, description=description, severity=severity))
    prefix = "Blocking restriction" if severity is Severity.ERROR else "Warning"
    warnings.append(f"{prefix}: {description}")


def derive_restrictions(vehicle: VehicleProfile) -> tuple[list[Restriction], list[str]]:
    """Map the vehicle's physical parameters to restrictions and human-readable warnings.

    Every restriction comes with exactly one warning sentence describing it.
    Dimensions absent from the profile are not checked.
    """

    restrictions: list[Restriction] = []
    warnings: list[str] = []

    mass = vehicle.mass_tonnes
    if mass > MAX_LEGAL_MASS_TONNES:
        _add(
            restrictions,
            warnings,
            RestrictionKind.WEIGHT,
            Severity.ERROR,
            f"mass {mass:g} t exceeds the {MAX_LEGAL_MASS_TONNES:g} t legal limit, special permit required",
        )
    elif mass >= HIGH_MASS_TONNES:
        _add(
            restrictions,
            warnings,
            RestrictionKind.WEIGHT,
            Severity.WARNING,
            f"high mass {mass:g} t, check local weight limits",
        )

    height = vehicle.height_m
    if height is not None:
        if height > MAX_HEIGHT_M:
            _add(
                restrictions,
                warnings,
                RestrictionKind.HEIGHT,
                Severity.ERROR,
                f"height {height:g} m exceeds {MAX_HEIGHT_M:g} m, bridges and tunnels will block the route",
            )
        elif height >= HIGH_HEIGHT_M:
            _add(
                restrictions,
                warnings,
                RestrictionKind.HEIGHT,
                Severity.WARNING,
                f"height {height:g} m at or above the {HIGH_HEIGHT_M:g} m standard, watch for low bridges",
            )

    if vehicle.width_m is not None and vehicle.width_m > MAX_WIDTH_M:
        _add(
            restrictions,
            warnings,
            RestrictionKind.WIDTH,
            Severity.ERROR,
            f"width {vehicle.width_m:g} m exceeds {MAX_WIDTH_M:g} m, exceptional convoy",
        )

    if vehicle.length_m is not None and vehicle.length_m > MAX_LENGTH_M:
        _add(
            restrictions,
            warnings,
            RestrictionKind.LENGTH,
            Severity.ERROR,
            f"length {vehicle.length_m:g} m exceeds {MAX_LENGTH_M:g} m, permit required",
        )

    if vehicle.axle_load_tonnes is not None and vehicle.axle_load_tonnes > MAX_AXLE_LOAD_TONNES:
        _add(
            restrictions,
            warnings,
            RestrictionKind.AXLE_LOAD,
            Severity.WARNING,
            f"axle load {vehicle.axle_load_tonnes:g} t exceeds {MAX_AXLE_LOAD_TONNES:g} t, check road limits",
        )

    if vehicle.hazmat:
        _add(
            restrictions,
            warnings,
            RestrictionKind.HAZMAT,
            Severity.WARNING,
            "hazardous materials, tunnel and city-centre restrictions apply",
        )

    if is_heavy(vehicle):
        warnings.append(HEAVY_VEHICLE_ADVISORY)
    return restrictions, warnings


def is_heavy(vehicle: Optional[VehicleProfile]) -> bool:
    return vehicle is not None and vehicle.mass_tonnes > HEAVY_VEHICLE_THRESHOLD_TONNES


def _parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().lower().replace(",", ".").removesuffix("t").strip()
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def _first_number(record: Mapping[str, Any], fields: tuple[str, ...]) -> Optional[float]:
    for name in fields:
        parsed = _parse_float(record.get(name))
        if parsed is not None:
            return parsed
    return None


def extract_vehicle_weight(record: Mapping[str, Any]) -> float:
    """Best-effort mass in tonnes from an arbitrary vehicle record. Never raises."""

    mass = _first_number(record, _MASS_FIELDS)
    if mass is not None:
        return mass
    gross = _first_number(record, _GROSS_WEIGHT_FIELDS)
    if gross is not None:
        return gross

    category = " ".join(
        str(record.get(name) or "") for name in ("category", "type", "vehicle_type", "vehicleType")
    ).lower()
    if any(keyword in category for keyword in _HEAVY_CATEGORY_KEYWORDS):
        return HEAVY_CATEGORY_MASS_TONNES
    return LIGHT_VEHICLE_MASS_TONNES


def build_vehicle_profile(record: Mapping[str, Any]) -> VehicleProfile:
    return VehicleProfile(
        mass_tonnes=extract_vehicle_weight(record),
        height_m=_first_number(record, ("height_m", "heightM", "height")),
        width_m=_first_number(record, ("width_m", "widthM", "width")),
        length_m=_first_number(record, ("length_m", "lengthM", "length")),
        axle_load_tonnes=_first_number(record, ("axle_load_tonnes", "axleLoadTonnes", "axleLoad", "axle_load")),
        hazmat=bool(record.get("hazmat", False)),
        avoid_tolls=bool(record.get("avoid_tolls", record.get("avoidTolls", False))),
        avoid_ferries=bool(record.get("avoid_ferries", record.get("avoidFerries", False))),
    )
