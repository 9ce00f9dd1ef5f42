"""End-to-end API checks with every remote provider served by an in-process transport."""

from contextlib import contextmanager

import httpx
from fastapi.testclient import TestClient

from fleetroute.config import Settings
from fleetroute.main import create_app
from fleetroute.models.domain import Coordinate
from fleetroute.services.container import ServiceContainer
from fleetroute.services.geospatial import encode_polyline

PARIS = {"latitude": 48.8566, "longitude": 2.3522}
LYON = {"latitude": 45.764, "longitude": 4.8357}


def _settings() -> Settings:
    return Settings(
        route_provider_order=("osrm",),
        provider_min_interval_ms={},
        here_api_key=None,
        ors_api_key=None,
        osrm_base_url="https://osrm.test",
        address_api_base_url="https://address.test",
        commune_api_base_url="https://communes.test",
    )


def osrm_ok(request: httpx.Request) -> httpx.Response:
    lonlat = request.url.path.rsplit("/", 1)[-1].split(";")
    points = []
    for pair in lonlat:
        lon, lat = (float(value) for value in pair.split(","))
        points.append(Coordinate(lat, lon))
    return httpx.Response(
        200,
        json={
            "code": "Ok",
            "routes": [
                {
                    "distance": 465000.0,
                    "duration": 16200.0,
                    "geometry": encode_polyline(points),
                    "legs": [{"steps": [{"name": "A6", "maneuver": {"type": "depart"}}]}],
                }
            ],
        },
    )


def address_ok(request: httpx.Request) -> httpx.Response:
    feature = {
        "geometry": {"type": "Point", "coordinates": [2.29, 49.89]},
        "properties": {"label": "8 Boulevard du Port 80000 Amiens", "postcode": "80000", "score": 0.9},
    }
    return httpx.Response(200, json={"features": [feature]})


class Remote:
    """Routes outgoing requests by host and records them."""

    def __init__(self, **handlers):
        self.handlers = {
            "osrm.test": osrm_ok,
            "address.test": address_ok,
            "communes.test": lambda request: httpx.Response(200, json=[]),
        }
        self.handlers.update({host.replace("_", "."): handler for host, handler in handlers.items()})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handlers[request.url.host](request)


@contextmanager
def api(remote: Remote | None = None):
    remote = remote or Remote()
    settings = _settings()
    container = ServiceContainer(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(remote)))
    app = create_app(settings=settings, container=container)
    with TestClient(app) as client:
        yield client, remote


def test_root_and_health():
    with api() as (client, _):
        root = client.get("/")
        health = client.get("/api/health")

    assert root.status_code == 200
    assert root.json()["health"] == "/api/health"
    assert health.json() == {
        "status": "ok",
        "route_providers": ["osrm"],
        "place_providers": ["gazetteer", "address_search", "commune_search"],
    }


def test_compute_route_through_osrm_and_cache_endpoints():
    payload = {"waypoints": [PARIS, LYON]}
    with api() as (client, remote):
        first = client.post("/api/routes/compute", json=payload)
        second = client.post("/api/routes/compute", json=payload)
        stats = client.get("/api/health/cache").json()
        cleared = client.delete("/api/health/cache", params={"provider": "osrm"}).json()
        after = client.get("/api/health/cache").json()

    assert first.status_code == 200
    body = first.json()
    assert body["degraded"] is False
    assert body["total_distance_m"] == 465000.0
    assert body["segments"][0]["provider"] == "osrm"
    assert body["geometry"][0] == PARIS
    assert body["polyline"]
    assert body["summary"]["distance_km"] == 465.0
    assert body["summary"]["duration_text"] == "4h 30min"
    assert body["summary"]["estimated"] is False
    assert second.json()["total_distance_m"] == 465000.0
    assert len(remote.requests) == 1

    assert stats["size"] == 1
    assert stats["keys"][0].startswith("osrm:48.856600,2.352200;45.764000,4.835700")
    assert cleared == {"removed": 1, "provider": "osrm"}
    assert after["size"] == 0


def test_truck_route_carries_restrictions_and_osrm_notice():
    payload = {"waypoints": [PARIS, LYON], "vehicle": {"mass_tonnes": 42, "height_m": 4.6}}
    with api() as (client, _):
        response = client.post("/api/routes/compute", json=payload)

    body = response.json()
    assert response.status_code == 200
    kinds = {(item["kind"], item["severity"]) for item in body["restrictions"]}
    assert ("weight", "warning") in kinds
    assert ("height", "error") in kinds
    assert any("OSRM car profile" in warning for warning in body["warnings"])


def test_routing_outage_returns_degraded_estimate():
    remote = Remote(osrm_test=lambda request: httpx.Response(500, text="down"))
    with api(remote) as (client, _):
        response = client.post("/api/routes/compute", json={"waypoints": [PARIS, LYON]})

    body = response.json()
    assert response.status_code == 200
    assert body["degraded"] is True
    assert body["segments"][0]["provider"] == "local_estimate"
    assert "osrm: HTTP 500 from osrm" in body["warnings"]
    assert body["summary"]["estimated"] is True


def test_compute_rejects_bad_waypoints():
    with api() as (client, _):
        single = client.post("/api/routes/compute", json={"waypoints": [PARIS]})
        out_of_range = client.post(
            "/api/routes/compute", json={"waypoints": [PARIS, {"latitude": 95.0, "longitude": 2.0}]}
        )

    assert single.status_code == 400
    assert "at least two waypoints" in single.json()["detail"]
    assert out_of_range.status_code == 422


def test_optimize_order_endpoint():
    payload = {
        "start": {"latitude": 45.0, "longitude": 0.0},
        "stops": [
            {"latitude": 45.0, "longitude": 3.0},
            {"latitude": 45.0, "longitude": 1.0},
            {"latitude": 45.0, "longitude": 2.0},
        ],
        "end": {"latitude": 45.0, "longitude": 4.0},
    }
    with api() as (client, _):
        body = client.post("/api/routes/optimize-order", json=payload).json()

    assert body["order"] == [1, 2, 0]
    assert [stop["longitude"] for stop in body["stops"]] == [1.0, 2.0, 3.0]
    assert body["distance_after_m"] < body["distance_before_m"]


def test_resolve_place_locally_and_remotely():
    with api() as (client, remote):
        local = client.post("/api/places/resolve", json={"text": "École primaire Mondoubleau"}).json()
        remote_hit = client.post("/api/places/resolve", json={"text": "8 bd du Port"}).json()
        too_short = client.post("/api/places/resolve", json={"text": "ab"})

    assert local["match"]["label"] == "Mondoubleau"
    assert local["match"]["is_approximate"] is True
    assert local["match"]["source"] == "gazetteer:contains"
    assert local["states"] == ["not_started", "local_lookup", "found", "done"]

    assert remote_hit["match"]["label"] == "8 Boulevard du Port 80000 Amiens"
    assert remote_hit["match"]["is_approximate"] is False
    assert "remote_lookup" in remote_hit["states"]
    assert remote.requests[0].url.params["q"] == "8 boulevard du Port"

    assert too_short.status_code == 400


def test_resolve_falls_back_to_default_location():
    remote = Remote(address_test=lambda request: httpx.Response(503))
    with api(remote) as (client, _):
        body = client.post("/api/places/resolve", json={"text": "Lieu-dit Qwrtzpx Vbnm"}).json()

    assert body["match"]["label"] == "Paris"
    assert body["match"]["is_approximate"] is True
    assert body["match"]["source"] == "default"
    assert "default_fallback" in body["states"]
    assert "address_search: HTTP 503 from address_search" in body["failures"]


def test_search_and_reverse():
    with api() as (client, _):
        search = client.get("/api/places/search", params={"q": "8 bd du port", "limit": 3}).json()
        short = client.get("/api/places/search", params={"q": "ab"}).json()
        reverse = client.get("/api/places/reverse", params={"latitude": 49.89, "longitude": 2.29}).json()

    assert search["query"] == "8 bd du port"
    assert search["results"][0]["postal_code"] == "80000"
    assert short["results"] == []
    assert reverse["label"] == "8 Boulevard du Port 80000 Amiens"


def test_vehicle_restrictions_endpoint():
    with api() as (client, _):
        from_record = client.post("/api/vehicles/restrictions", json={"record": {"maxWeight": "26"}}).json()
        from_profile = client.post(
            "/api/vehicles/restrictions", json={"vehicle": {"mass_tonnes": 3.5, "width_m": 2.6}}
        ).json()
        both = client.post(
            "/api/vehicles/restrictions", json={"vehicle": {"mass_tonnes": 3.5}, "record": {"weight": 3}}
        )

    assert from_record["vehicle"]["mass_tonnes"] == 26.0
    assert from_record["is_heavy"] is True
    assert from_profile["is_heavy"] is False
    assert from_profile["restrictions"][0]["kind"] == "width"
    assert from_profile["restrictions"][0]["severity"] == "error"
    assert both.status_code == 422
