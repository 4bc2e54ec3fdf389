"""Geocoding & Routing Client — async address lookup and road distance with fallback.

Invariants:
    - Every request is bounded by timeout_seconds
    - Results are cached per address / per (from, to, mode) key; each cache
      holds at most cache_size entries and evicts its oldest entry first
    - route_distance() NEVER raises on network failure: it falls back to the
      Haversine x 1.4 estimate with is_actual_route=False (fallbacks not cached)
    - geocode() returns None when the address cannot be resolved

Design Decisions:
    - httpx.AsyncClient injected (or created lazily): tests pass an
      httpx.MockTransport, production talks to Nominatim/OSRM-compatible services
    - Failures logged at WARNING with the key, not raised: distance is advisory
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

import httpx

from courier_dispatch.core.domain_types import DeliveryType
from courier_dispatch.core.entities import Location
from courier_dispatch.core.geo import estimate_road_distance, speed_for, travel_time
from courier_dispatch.core.system_config import SystemConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteDistance:
    distance_km: float
    is_actual_route: bool


@dataclass(frozen=True)
class TravelEstimate:
    distance_km: float
    duration: timedelta
    is_actual_route: bool


class GeocodingClient:
    """Nominatim-style geocoding plus OSRM-style routing over httpx."""

    USER_AGENT = "courier-dispatch/1.0"

    def __init__(
        self,
        geocoding_base_url: str = "https://nominatim.openstreetmap.org",
        routing_base_url: str = "https://router.project-osrm.org",
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
        cache_size: int = 1024,
    ):
        self.geocoding_base_url = geocoding_base_url.rstrip("/")
        self.routing_base_url = routing_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None
        self._geocode_cache: dict[str, Location | None] = {}
        self._route_cache: dict[tuple, float] = {}
        self.cache_size = cache_size

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers={"User-Agent": self.USER_AGENT},
            )
        return self._client

    def _remember(self, cache: dict, key, value) -> None:
        # dicts keep insertion order, so the first key is the oldest
        if key not in cache and len(cache) >= self.cache_size:
            del cache[next(iter(cache))]
        cache[key] = value

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def geocode(self, address: str) -> Location | None:
        key = address.strip().lower()
        if not key:
            return None
        if key in self._geocode_cache:
            return self._geocode_cache[key]
        try:
            response = await self._http().get(
                f"{self.geocoding_base_url}/search",
                params={"q": address, "format": "json", "limit": 1},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            results = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Geocoding failed for '{address}': {e}")
            return None
        location = None
        if results:
            location = Location(
                float(results[0]["lat"]), float(results[0]["lon"]),
            )
        self._remember(self._geocode_cache, key, location)
        return location

    async def route_distance(
        self, origin: Location, destination: Location, driving: bool = True,
    ) -> RouteDistance:
        profile = "driving" if driving else "foot"
        key = (
            round(origin.latitude, 6), round(origin.longitude, 6),
            round(destination.latitude, 6), round(destination.longitude, 6),
            profile,
        )
        if key in self._route_cache:
            return RouteDistance(self._route_cache[key], True)
        coords = (
            f"{origin.longitude},{origin.latitude};"
            f"{destination.longitude},{destination.latitude}"
        )
        try:
            response = await self._http().get(
                f"{self.routing_base_url}/route/v1/{profile}/{coords}",
                params={"overview": "false"},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
            meters = float(payload["routes"][0]["distance"])
        except (httpx.HTTPError, ValueError, KeyError, IndexError) as e:
            logger.warning(f"Routing failed, using air-distance estimate: {e}")
            return RouteDistance(estimate_road_distance(origin, destination), False)
        km = meters / 1000.0
        self._remember(self._route_cache, key, km)
        return RouteDistance(km, True)

    async def travel_estimate(
        self,
        origin: Location,
        destination: Location,
        delivery_type: DeliveryType,
        config: SystemConfig,
    ) -> TravelEstimate:
        """Road distance and duration for a vehicle at its configured speed."""
        driving = delivery_type in (DeliveryType.CAR, DeliveryType.MOTORCYCLE)
        route = await self.route_distance(origin, destination, driving=driving)
        speed = speed_for(config, delivery_type)
        return TravelEstimate(
            distance_km=route.distance_km,
            duration=travel_time(route.distance_km, speed),
            is_actual_route=route.is_actual_route,
        )
