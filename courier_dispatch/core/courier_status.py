"""Courier Status — derivation and pure validation of courier state changes.

Invariants:
    - All functions are PURE: no IO, no DB, no side effects
    - Status derives from is_active plus the courier's open delivery (if any)
    - ON_ROUTE_* statuses are never accepted as a requested status
    - Check functions return a DispatchError on violation, None on success;
      the service layer raises it

Design Decisions:
    - Return errors (not raise): lets callers chain checks and keeps every rule
      testable without constructing repositories
"""

import re
from datetime import datetime, timedelta

from courier_dispatch.core.domain_types import (
    ON_ROUTE_STATUSES, CourierStatus,
)
from courier_dispatch.core.enforce_order import PHONE_PATTERN
from courier_dispatch.core.entities import Courier, Delivery, Order
from courier_dispatch.core.errors import (
    ConflictError, DispatchError, ErrorContext, InvalidValueError,
)
from courier_dispatch.core.geo import is_valid_location


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def derive_courier_status(
    courier: Courier,
    open_delivery: Delivery | None = None,
    current_order: Order | None = None,
) -> CourierStatus:
    if not courier.is_active:
        return CourierStatus.INACTIVE
    if open_delivery is None:
        return CourierStatus.AVAILABLE
    if current_order is not None and current_order.pickup_date is not None:
        return CourierStatus.ON_ROUTE_FOR_DELIVERY
    return CourierStatus.ON_ROUTE_FOR_PICKUP


def check_courier_fields(courier: Courier) -> DispatchError | None:
    """Validate identity, contact and location fields on create/update."""
    ctx = ErrorContext(courier_id=courier.id)
    if courier.id <= 0:
        return InvalidValueError("Courier id must be a positive number", "id", ctx)
    if not courier.name or not courier.name.strip():
        return InvalidValueError("Courier name is required", "name", ctx)
    if courier.phone and not PHONE_PATTERN.match(courier.phone):
        return InvalidValueError(
            "Phone must be 10 digits starting with 0", "phone", ctx,
        )
    if courier.email and not EMAIL_PATTERN.match(courier.email):
        return InvalidValueError("Email address is malformed", "email", ctx)
    if courier.max_delivery_distance is not None and courier.max_delivery_distance < 0:
        return InvalidValueError(
            "Max delivery distance must not be negative",
            "max_delivery_distance", ctx,
        )
    if not is_valid_location(courier.location):
        return InvalidValueError(
            "Location must be within [-90,90] x [-180,180]", "location", ctx,
        )
    return None


def check_status_change(
    courier: Courier,
    requested: CourierStatus,
    has_unfinished_order: bool,
) -> DispatchError | None:
    """Only Available/Inactive may be requested; Inactive needs an idle courier."""
    ctx = ErrorContext(courier_id=courier.id, operation="set_courier_status")
    if requested in ON_ROUTE_STATUSES:
        return ConflictError(
            f"Status {requested.value} is derived and cannot be set directly", ctx,
        )
    if requested is CourierStatus.INACTIVE and has_unfinished_order:
        return ConflictError(
            f"Courier {courier.id} has an unfinished order and cannot be deactivated",
            ctx,
        )
    return None


def check_deletable(
    courier: Courier, has_unfinished_order: bool,
) -> DispatchError | None:
    """Deletion is a two-phase gate: deactivate first, then delete."""
    ctx = ErrorContext(courier_id=courier.id, operation="delete_courier")
    if courier.is_active:
        return ConflictError(
            f"Courier {courier.id} is active; deactivate before deleting", ctx,
        )
    if has_unfinished_order:
        return ConflictError(
            f"Courier {courier.id} still has an unfinished order", ctx,
        )
    return None


def is_inactivity_expired(
    courier: Courier, now: datetime, inactivity_range: timedelta,
) -> bool:
    """Active courier whose working period exceeded the inactivity range."""
    return courier.is_active and now - courier.start_working_date > inactivity_range
