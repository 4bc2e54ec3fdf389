"""Geocoding Client — httpx.MockTransport stands in for Nominatim and OSRM.

Tests cover:
    - geocode hit, miss, cache and network failure
    - both caches are bounded and evict their oldest entry first
    - route distance from the routing service, cached per key
    - air-distance fallback on error (never cached, never raised)
    - travel_estimate picks the profile and speed from the vehicle
"""

from datetime import timedelta

import httpx
import pytest

from courier_dispatch.core.domain_types import DeliveryType
from courier_dispatch.core.entities import Location
from courier_dispatch.core.geo import estimate_road_distance
from courier_dispatch.core.system_config import SystemConfig
from courier_dispatch.infrastructure.geocoding import GeocodingClient

from tests.support import CUSTOMER_LOCATION, NEARBY_LOCATION


class FakeServices:
    """Records requests and answers like Nominatim /search and OSRM /route."""

    def __init__(self, route_meters: float | None = 4200.0, places=None):
        self.requests: list[httpx.Request] = []
        self.route_meters = route_meters
        self.places = places or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/search":
            place = self.places.get(request.url.params["q"])
            body = [] if place is None else [{"lat": str(place[0]), "lon": str(place[1])}]
            return httpx.Response(200, json=body)
        if request.url.path.startswith("/route/v1/"):
            if self.route_meters is None:
                return httpx.Response(503, json={"code": "Unavailable"})
            return httpx.Response(
                200, json={"code": "Ok", "routes": [{"distance": self.route_meters}]},
            )
        return httpx.Response(404)


def _client(services: FakeServices) -> GeocodingClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(services))
    return GeocodingClient(
        "http://geo.test", "http://route.test", timeout_seconds=1.0, client=http,
    )


@pytest.fixture
def services():
    return FakeServices(places={"Herzl 45, Tel Aviv": (32.0853, 34.7818)})


@pytest.fixture
async def client(services):
    geocoder = _client(services)
    yield geocoder
    await geocoder._http().aclose()


async def test_geocode_hit(client, services):
    location = await client.geocode("Herzl 45, Tel Aviv")
    assert location == Location(32.0853, 34.7818)
    assert services.requests[0].url.params["format"] == "json"


async def test_geocode_miss_returns_none(client):
    assert await client.geocode("Nowhere 1, Atlantis") is None


async def test_geocode_blank_address_skips_network(client, services):
    assert await client.geocode("   ") is None
    assert services.requests == []


async def test_geocode_is_cached_case_insensitively(client, services):
    await client.geocode("Herzl 45, Tel Aviv")
    await client.geocode("herzl 45, tel aviv ")
    assert len(services.requests) == 1


async def test_geocode_network_error_returns_none():
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    geocoder = GeocodingClient(
        "http://geo.test", "http://route.test",
        client=httpx.AsyncClient(transport=httpx.MockTransport(refuse)),
    )
    assert await geocoder.geocode("Herzl 45, Tel Aviv") is None


async def test_route_distance_from_service(client, services):
    route = await client.route_distance(NEARBY_LOCATION, CUSTOMER_LOCATION)
    assert route.is_actual_route
    assert route.distance_km == pytest.approx(4.2)
    assert "/route/v1/driving/" in services.requests[0].url.path

    await client.route_distance(NEARBY_LOCATION, CUSTOMER_LOCATION)
    assert len(services.requests) == 1


async def test_route_distance_falls_back_without_caching():
    services = FakeServices(route_meters=None)
    geocoder = _client(services)

    route = await geocoder.route_distance(NEARBY_LOCATION, CUSTOMER_LOCATION)
    assert not route.is_actual_route
    assert route.distance_km == pytest.approx(
        estimate_road_distance(NEARBY_LOCATION, CUSTOMER_LOCATION),
    )

    await geocoder.route_distance(NEARBY_LOCATION, CUSTOMER_LOCATION)
    assert len(services.requests) == 2
    await geocoder._http().aclose()


async def test_travel_estimate_for_bicycle_uses_foot_profile(client, services):
    config = SystemConfig(bicycle_speed=15.0)
    estimate = await client.travel_estimate(
        NEARBY_LOCATION, CUSTOMER_LOCATION, DeliveryType.BICYCLE, config,
    )
    assert "/route/v1/foot/" in services.requests[0].url.path
    assert estimate.distance_km == pytest.approx(4.2)
    assert estimate.duration == timedelta(hours=4.2 / 15.0)
    assert estimate.is_actual_route


async def test_aclose_leaves_injected_client_open(services):
    http = httpx.AsyncClient(transport=httpx.MockTransport(services))
    geocoder = GeocodingClient(client=http)
    await geocoder.aclose()
    assert not http.is_closed
    await http.aclose()


async def test_geocode_cache_evicts_oldest_address(services):
    geocoder = GeocodingClient(
        "http://geo.test", "http://route.test",
        client=httpx.AsyncClient(transport=httpx.MockTransport(services)),
        cache_size=2,
    )
    for address in ("A 1", "B 2", "C 3"):
        await geocoder.geocode(address)
    assert len(services.requests) == 3

    await geocoder.geocode("C 3")
    assert len(services.requests) == 3
    await geocoder.geocode("A 1")
    assert len(services.requests) == 4
    await geocoder._http().aclose()


async def test_route_cache_is_bounded(services):
    geocoder = GeocodingClient(
        "http://geo.test", "http://route.test",
        client=httpx.AsyncClient(transport=httpx.MockTransport(services)),
        cache_size=1,
    )
    await geocoder.route_distance(NEARBY_LOCATION, CUSTOMER_LOCATION)
    await geocoder.route_distance(CUSTOMER_LOCATION, NEARBY_LOCATION)
    await geocoder.route_distance(NEARBY_LOCATION, CUSTOMER_LOCATION)
    assert len(services.requests) == 3
    assert len(geocoder._route_cache) == 1
    await geocoder._http().aclose()
