import pytest

from fleetroute.models.domain import RestrictionKind, Severity, VehicleProfile
from fleetroute.services.routing.restrictions import (
    HEAVY_VEHICLE_ADVISORY,
    build_vehicle_profile,
    derive_restrictions,
    extract_vehicle_weight,
    is_heavy,
)


def _kinds(restrictions, severity):
    return [item.kind for item in restrictions if item.severity is severity]


def test_32_tonnes_at_4_metres_warns_on_height_only():
    restrictions, warnings = derive_restrictions(VehicleProfile(mass_tonnes=32, height_m=4.0))

    assert _kinds(restrictions, Severity.ERROR) == []
    assert _kinds(restrictions, Severity.WARNING) == [RestrictionKind.HEIGHT]
    assert any("height 4 m" in warning for warning in warnings)
    assert HEAVY_VEHICLE_ADVISORY in warnings


@pytest.mark.parametrize(
    "mass, expected",
    [(39.9, None), (40.0, Severity.WARNING), (44.0, Severity.WARNING), (44.1, Severity.ERROR)],
)
def test_weight_bands(mass, expected):
    restrictions, _ = derive_restrictions(VehicleProfile(mass_tonnes=mass))
    weight = [item for item in restrictions if item.kind is RestrictionKind.WEIGHT]
    assert [item.severity for item in weight] == ([expected] if expected else [])


@pytest.mark.parametrize(
    "height, expected",
    [(3.9, None), (4.0, Severity.WARNING), (4.5, Severity.WARNING), (4.51, Severity.ERROR)],
)
def test_height_bands(height, expected):
    restrictions, _ = derive_restrictions(VehicleProfile(height_m=height))
    assert [item.severity for item in restrictions] == ([expected] if expected else [])


def test_width_length_axle_and_hazmat():
    restrictions, warnings = derive_restrictions(
        VehicleProfile(mass_tonnes=18, width_m=2.6, length_m=18.75, axle_load_tonnes=12, hazmat=True)
    )

    assert _kinds(restrictions, Severity.ERROR) == [RestrictionKind.WIDTH, RestrictionKind.LENGTH]
    assert _kinds(restrictions, Severity.WARNING) == [RestrictionKind.AXLE_LOAD, RestrictionKind.HAZMAT]
    assert len(warnings) == len(restrictions)


def test_limits_themselves_are_allowed():
    restrictions, warnings = derive_restrictions(VehicleProfile(width_m=2.55, length_m=16.5, axle_load_tonnes=11.5))
    assert restrictions == []
    assert warnings == []


def test_every_error_has_a_matching_warning():
    restrictions, warnings = derive_restrictions(
        VehicleProfile(mass_tonnes=50, height_m=5, width_m=3, length_m=20)
    )
    errors = [item for item in restrictions if item.severity is Severity.ERROR]
    assert len(errors) == 4
    for error in errors:
        assert any(error.description in warning for warning in warnings)


def test_heavy_threshold():
    assert not is_heavy(VehicleProfile(mass_tonnes=19))
    assert is_heavy(VehicleProfile(mass_tonnes=19.5))
    assert not is_heavy(None)
    _, warnings = derive_restrictions(VehicleProfile(mass_tonnes=12))
    assert HEAVY_VEHICLE_ADVISORY not in warnings


@pytest.mark.parametrize(
    "record, expected",
    [
        ({"weight": "26"}, 26.0),
        ({"weight": "7.5t"}, 7.5),
        ({"maxWeight": 12}, 12.0),
        ({"weight": "unknown", "grossWeight": "18,5"}, 18.5),
        ({"gvw": 32}, 32.0),
        ({"category": "Poids Lourd"}, 25.0),
        ({"type": "HGV articulated"}, 25.0),
        ({"category": "utilitaire"}, 3.5),
        ({}, 3.5),
    ],
)
def test_extract_vehicle_weight(record, expected):
    assert extract_vehicle_weight(record) == expected


def test_build_vehicle_profile_from_loose_record():
    vehicle = build_vehicle_profile({"category": "truck", "height": "4,2", "hazmat": True, "avoidTolls": True})

    assert vehicle.mass_tonnes == 25.0
    assert vehicle.height_m == 4.2
    assert vehicle.width_m is None
    assert vehicle.effective_width_m == VehicleProfile.DEFAULT_WIDTH_M
    assert vehicle.hazmat
    assert vehicle.avoid_tolls
