"""Geo Calculator — pure great-circle distance and travel-time estimation.

Invariants:
    - haversine_km(a, a) == 0 and haversine_km(a, b) == haversine_km(b, a)
    - speed_for() never returns a value <= 0 (falls back to the car speed)
    - No IO — network-backed routing lives in infrastructure/geocoding.py

Design Decisions:
    - Road distance approximated as air distance x 1.4 when no routing service answers
"""

import math
from datetime import timedelta

from courier_dispatch.core.domain_types import DeliveryType
from courier_dispatch.core.entities import Location
from courier_dispatch.core.system_config import SystemConfig


EARTH_RADIUS_KM = 6371.0
ROAD_DISTANCE_FACTOR = 1.4
FALLBACK_SPEED_KMH = 30.0


def haversine_km(a: Location, b: Location) -> float:
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))


def estimate_road_distance(a: Location, b: Location) -> float:
    return haversine_km(a, b) * ROAD_DISTANCE_FACTOR


def speed_for(config: SystemConfig, delivery_type: DeliveryType) -> float:
    """Configured speed (km/h) for a vehicle, car speed when unusable."""
    speed = {
        DeliveryType.CAR: config.car_speed,
        DeliveryType.MOTORCYCLE: config.motorcycle_speed,
        DeliveryType.BICYCLE: config.bicycle_speed,
        DeliveryType.ON_FOOT: config.on_foot_speed,
    }.get(delivery_type, config.car_speed)
    if speed <= 0:
        speed = config.car_speed
    # car speed itself may be misconfigured
    return speed if speed > 0 else FALLBACK_SPEED_KMH


def travel_time(distance_km: float, speed_kmh: float) -> timedelta:
    return timedelta(hours=distance_km / speed_kmh)


def estimate_travel_time(
    config: SystemConfig, a: Location, b: Location, delivery_type: DeliveryType,
) -> timedelta:
    return travel_time(haversine_km(a, b), speed_for(config, delivery_type))


def company_location(config: SystemConfig) -> Location | None:
    if not config.has_company_location:
        return None
    return Location(config.company_latitude, config.company_longitude)


def is_valid_location(location: Location) -> bool:
    return (
        -90 <= location.latitude <= 90
        and -180 <= location.longitude <= 180
    )
