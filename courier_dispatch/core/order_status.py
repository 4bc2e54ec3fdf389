"""Order Status Derivation — the single pure source of OrderStatus and ScheduleStatus.

Invariants:
    - Status is a pure function of (courier_id, courier_associated_date, pickup_date,
      delivery_date, last delivery completion) — recomputing is idempotent
    - Schedule thresholds are inclusive ("<=") in both retrospective and prospective modes
    - Nothing here reads storage or the wall clock; `now` is always passed in

Design Decisions:
    - OrderSnapshot bundles the order with everything derived from it, so every
      read path (service, API, simulation) sees the same computed view
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from courier_dispatch.core.domain_types import (
    DeliveryStatus, OrderStatus, ScheduleStatus,
)
from courier_dispatch.core.entities import Courier, Delivery, Location, Order
from courier_dispatch.core.geo import estimate_travel_time, haversine_km
from courier_dispatch.core.system_config import SystemConfig


def derive_order_status(
    order: Order, last_delivery: Delivery | None = None,
) -> OrderStatus:
    if order.delivery_date is not None:
        completion = last_delivery.completion_status if last_delivery else None
        if completion is DeliveryStatus.CUSTOMER_REFUSED:
            return OrderStatus.ORDER_REFUSED
        if completion is DeliveryStatus.CANCELLED:
            return OrderStatus.CANCELED
        return OrderStatus.DELIVERED
    if (
        order.courier_id is not None
        or order.courier_associated_date is not None
        or order.pickup_date is not None
    ):
        return OrderStatus.IN_PROGRESS
    return OrderStatus.OPEN


def derive_schedule_status(
    order: Order,
    now: datetime,
    max_delivery_time: timedelta,
    risk_range: timedelta,
) -> ScheduleStatus:
    if order.delivery_date is not None:
        elapsed = order.delivery_date - order.created_at
        if elapsed <= max_delivery_time - risk_range:
            return ScheduleStatus.ON_TIME
        if elapsed <= max_delivery_time:
            return ScheduleStatus.IN_RISK
        return ScheduleStatus.LATE

    remaining = order.created_at + max_delivery_time - now
    if remaining <= timedelta(0):
        return ScheduleStatus.LATE
    if remaining <= risk_range:
        return ScheduleStatus.IN_RISK
    return ScheduleStatus.ON_TIME


@dataclass(frozen=True)
class OrderSnapshot:
    """An order plus its derived state, computed at read time."""
    order: Order
    status: OrderStatus
    schedule_status: ScheduleStatus
    max_delivery_at: datetime
    expected_delivery_at: datetime | None
    air_distance: float | None
    delivery_count: int
    time_left: timedelta


def build_order_snapshot(
    order: Order,
    deliveries: list[Delivery],
    courier: Courier | None,
    config: SystemConfig,
    now: datetime,
    company: Location | None = None,
) -> OrderSnapshot:
    """Derive every computed field of an order. `deliveries` in any order."""
    ordered = sorted(deliveries, key=lambda d: (d.start_time, d.id))
    last = ordered[-1] if ordered else None
    status = derive_order_status(order, last)
    max_delivery_at = order.created_at + config.max_delivery_time

    expected = None
    if order.delivery_date is not None:
        expected = order.delivery_date
    elif courier is not None:
        start = order.pickup_date or order.courier_associated_date or now
        expected = start + estimate_travel_time(
            config, courier.location, order.location, courier.delivery_type,
        )

    air_distance = None
    if company is not None:
        air_distance = haversine_km(company, order.location)

    return OrderSnapshot(
        order=order,
        status=status,
        schedule_status=derive_schedule_status(
            order, now, config.max_delivery_time, config.risk_range,
        ),
        max_delivery_at=max_delivery_at,
        expected_delivery_at=expected,
        air_distance=air_distance,
        delivery_count=len(ordered),
        time_left=max_delivery_at - now,
    )
