"""Order Transition Enforcement — validates every order operation before it writes.

Invariants:
    - All functions are PURE: no IO, no DB, no side effects
    - Return a DispatchError on violation, None on success
    - Illegal transitions are InvalidValueError; reassociation and
      busy/inactive couriers are ConflictError
    - The service raises the first error BEFORE any repository write

Design Decisions:
    - One check per transition, named after the operation it guards, so the
      lifecycle service reads as "check, then write"
"""

import re

from courier_dispatch.core.domain_types import DeliveryStatus, OrderStatus
from courier_dispatch.core.entities import Courier, Delivery, Order
from courier_dispatch.core.errors import (
    ConflictError, DispatchError, ErrorContext, InvalidValueError,
)
from courier_dispatch.core.geo import company_location, haversine_km, is_valid_location
from courier_dispatch.core.system_config import SystemConfig


PHONE_PATTERN = re.compile(r"^0\d{9}$")


def _ctx(order: Order, operation: str, courier_id: int | None = None) -> ErrorContext:
    return ErrorContext(
        order_id=order.id,
        courier_id=courier_id if courier_id is not None else order.courier_id,
        operation=operation,
    )


def check_order_fields(order: Order, config: SystemConfig) -> DispatchError | None:
    """Required fields, value ranges, and distance from the company."""
    ctx = _ctx(order, "validate_order")
    if not order.address or not order.address.strip():
        return InvalidValueError("Order address is required", "address", ctx)
    if not order.customer_name or not order.customer_name.strip():
        return InvalidValueError("Customer name is required", "customer_name", ctx)
    if order.customer_phone and not PHONE_PATTERN.match(order.customer_phone):
        return InvalidValueError(
            "Customer phone must be 10 digits starting with 0",
            "customer_phone", ctx,
        )
    if order.weight <= 0:
        return InvalidValueError("Weight must be positive", "weight", ctx)
    if order.volume < 0:
        return InvalidValueError("Volume must not be negative", "volume", ctx)
    if not is_valid_location(order.location):
        return InvalidValueError(
            "Coordinates must be within [-90,90] x [-180,180]", "location", ctx,
        )
    company = company_location(config)
    if company is not None and config.max_delivery_distance is not None:
        distance = haversine_km(company, order.location)
        if distance > config.max_delivery_distance:
            return InvalidValueError(
                f"Address is {distance:.1f} km from the company, "
                f"beyond the {config.max_delivery_distance:g} km limit",
                "address", ctx,
            )
    return None


def check_editable(order: Order, status: OrderStatus) -> DispatchError | None:
    if status is not OrderStatus.OPEN:
        return InvalidValueError(
            f"Order {order.id} is {status.value}; only open orders can be edited",
            None, _ctx(order, "update_order"),
        )
    return None


def check_deletable(
    order: Order, status: OrderStatus, delivery_count: int,
) -> DispatchError | None:
    ctx = _ctx(order, "delete_order")
    if status is not OrderStatus.OPEN:
        return InvalidValueError(
            f"Order {order.id} is {status.value}; only open orders can be deleted",
            None, ctx,
        )
    if delivery_count > 0:
        return ConflictError(
            f"Order {order.id} has delivery history and cannot be deleted", ctx,
        )
    return None


def check_association(
    order: Order,
    courier: Courier,
    courier_busy: bool,
    courier_distance_km: float,
) -> DispatchError | None:
    """Courier may take the order: free order, active idle courier, in range."""
    ctx = _ctx(order, "associate_courier", courier.id)
    if order.is_closed:
        return InvalidValueError(
            f"Order {order.id} is already closed", None, ctx,
        )
    if order.courier_id is not None:
        return ConflictError(
            f"Order {order.id} is already handled by courier {order.courier_id}",
            ctx,
        )
    if not courier.is_active:
        return ConflictError(f"Courier {courier.id} is inactive", ctx)
    if courier_busy:
        return ConflictError(
            f"Courier {courier.id} already holds an unfinished order", ctx,
        )
    if (
        courier.max_delivery_distance is not None
        and courier_distance_km > courier.max_delivery_distance
    ):
        return InvalidValueError(
            f"Order {order.id} is {courier_distance_km:.1f} km away, beyond "
            f"courier {courier.id}'s {courier.max_delivery_distance:g} km range",
            "max_delivery_distance", ctx,
        )
    return None


def check_pickup(order: Order) -> DispatchError | None:
    ctx = _ctx(order, "pick_up_order")
    if order.is_closed:
        return InvalidValueError(f"Order {order.id} is already closed", None, ctx)
    if order.courier_id is None:
        return InvalidValueError(
            f"Order {order.id} has no courier to pick it up", None, ctx,
        )
    if order.pickup_date is not None:
        return InvalidValueError(
            f"Order {order.id} was already picked up", None, ctx,
        )
    return None


def check_completion(
    order: Order, open_delivery: Delivery | None, operation: str,
) -> DispatchError | None:
    """Deliver and refuse both need a picked-up order with an open delivery."""
    ctx = _ctx(order, operation)
    if order.is_closed:
        return InvalidValueError(f"Order {order.id} is already closed", None, ctx)
    if open_delivery is None:
        return InvalidValueError(
            f"Order {order.id} has no open delivery", None, ctx,
        )
    if order.pickup_date is None:
        return InvalidValueError(
            f"Order {order.id} has not been picked up yet", None, ctx,
        )
    return None


def check_failed_attempt(
    order: Order, open_delivery: Delivery | None, status: DeliveryStatus,
) -> DispatchError | None:
    """CustomerNotFound needs a picked-up order; Failed closes any open attempt."""
    if status is DeliveryStatus.CUSTOMER_NOT_FOUND:
        return check_completion(order, open_delivery, "report_failed_attempt")
    ctx = _ctx(order, "report_failed_attempt")
    if order.is_closed:
        return InvalidValueError(f"Order {order.id} is already closed", None, ctx)
    if open_delivery is None:
        return InvalidValueError(
            f"Order {order.id} has no open delivery", None, ctx,
        )
    return None


def check_cancellable(order: Order) -> DispatchError | None:
    if order.is_closed:
        return InvalidValueError(
            f"Order {order.id} is already closed and cannot be cancelled",
            None, _ctx(order, "cancel_order"),
        )
    return None
