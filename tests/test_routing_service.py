import asyncio

import pytest

from fleetroute.errors import InvalidRouteRequest
from fleetroute.models.domain import (
    Coordinate,
    LegRequest,
    RestrictionKind,
    Route,
    RouteRequest,
    RouteSegment,
    TollInfo,
    VehicleProfile,
)
from fleetroute.services.orchestrator import ProviderChain
from fleetroute.services.providers.local import LocalEstimateProvider
from fleetroute.services.routing.restrictions import HEAVY_VEHICLE_ADVISORY
from fleetroute.services.routing.service import RouteService, format_duration, summarize_route
from fleetroute.services.routing.stitcher import RouteStitcher
from fleetroute.services.throttle import RateLimitedCache, coordinate_key


class StraightProvider:
    name = "straight"

    def __init__(self, warnings=()):
        self.legs: list[tuple[Coordinate, Coordinate]] = []
        self.warnings = list(warnings)

    def is_applicable(self, request: LegRequest):
        return None

    def cache_key(self, request: LegRequest) -> str:
        return coordinate_key((request.origin, request.destination))

    async def resolve(self, request: LegRequest) -> RouteSegment:
        self.legs.append((request.origin, request.destination))
        return RouteSegment(
            distance_m=50000.0,
            duration_s=2700.0,
            geometry=[request.origin, request.destination],
            instruction_text="Drive",
            provider=self.name,
            warnings=list(self.warnings),
        )


def make_service(*providers) -> RouteService:
    estimator = LocalEstimateProvider()
    chain = ProviderChain(list(providers), RateLimitedCache(), estimator.estimate, label="routing")
    return RouteService(RouteStitcher(chain, estimator), fuel_consumption_l_per_100km=8.0, fuel_price_per_litre=1.5)


def test_truck_restrictions_come_before_provider_warnings():
    provider = StraightProvider(warnings=["road works"])
    service = make_service(provider)
    truck = VehicleProfile(mass_tonnes=32.0, height_m=4.0)
    request = RouteRequest([Coordinate(48.85, 2.35), Coordinate(48.0, 3.0)], vehicle=truck)

    route = asyncio.run(service.compute_route(request))

    assert [item.kind for item in route.restrictions] == [RestrictionKind.HEIGHT]
    assert route.warnings[-1] == "road works"
    assert HEAVY_VEHICLE_ADVISORY in route.warnings
    assert route.warnings.index(HEAVY_VEHICLE_ADVISORY) < route.warnings.index("road works")
    assert not route.degraded


def test_optimize_order_reorders_intermediate_stops():
    provider = StraightProvider()
    service = make_service(provider)
    start, end = Coordinate(45.0, 0.0), Coordinate(45.0, 4.0)
    stops = [Coordinate(45.0, 3.0), Coordinate(45.0, 1.0), Coordinate(45.0, 2.0)]

    route = asyncio.run(service.compute_route(RouteRequest([start, *stops, end], optimize_order=True)))

    visited = sorted(provider.legs, key=lambda leg: leg[0].longitude)
    assert [leg[0].longitude for leg in visited] == [0.0, 1.0, 2.0, 3.0]
    assert [point.longitude for point in route.geometry] == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert route.total_distance_m == 200000.0


def test_order_is_kept_without_optimize_flag():
    provider = StraightProvider()
    service = make_service(provider)
    start, end = Coordinate(45.0, 0.0), Coordinate(45.0, 4.0)
    stops = [Coordinate(45.0, 3.0), Coordinate(45.0, 1.0)]

    route = asyncio.run(service.compute_route(RouteRequest([start, *stops, end])))

    assert [point.longitude for point in route.geometry] == [0.0, 3.0, 1.0, 4.0]


def test_no_provider_gives_degraded_estimate():
    service = make_service()
    route = asyncio.run(
        service.compute_route(RouteRequest([Coordinate(48.8566, 2.3522), Coordinate(45.764, 4.8357)]))
    )

    assert route.degraded
    assert route.segments[0].provider == "local_estimate"
    assert route.total_distance_m > 391000 * 1.3 * 0.99
    assert service.summarize(route).estimated


def test_single_waypoint_is_rejected():
    with pytest.raises(InvalidRouteRequest):
        RouteRequest([Coordinate(48.0, 2.0)])


@pytest.mark.parametrize(
    "seconds, expected",
    [(300, "5min"), (5400, "1h 30min"), (3590, "1h 0min"), (7260, "2h 1min"), (0, "0min")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_summary_fuel_and_tolls():
    segment = RouteSegment(
        distance_m=100000.0,
        duration_s=4500.0,
        geometry=[Coordinate(48.0, 2.0), Coordinate(48.5, 3.0)],
        instruction_text="Drive",
        toll=TollInfo(total_cost=12.3),
    )
    route = Route(total_distance_m=100000.0, total_duration_s=4500.0, segments=[segment])

    summary = summarize_route(route, consumption_l_per_100km=30.0, price_per_litre=1.8)

    assert summary.distance_km == 100.0
    assert summary.duration_text == "1h 15min"
    assert summary.fuel_litres == 30.0
    assert summary.fuel_cost == 54.0
    assert summary.toll_cost == pytest.approx(12.3)
    assert not summary.estimated
