"""Domain Types — identity types and enums shared by every layer.

Invariants:
    - OrderId, CourierId, DeliveryId wrap int — courier ids are natural keys (> 0)
    - All valid states encoded as Enums — no raw string matching
    - OrderStatus, CourierStatus, ScheduleStatus are derived values, never persisted

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

OrderId = NewType("OrderId", int)
CourierId = NewType("CourierId", int)
DeliveryId = NewType("DeliveryId", int)


# ─── Enums ───────────────────────────────────────────────────────

class OrderType(str, Enum):
    """What is being delivered — RestaurantFood cannot be redelivered after refusal."""
    RESTAURANT_FOOD = "RestaurantFood"
    GROCERIES = "Groceries"
    RETAIL = "Retail"


class DeliveryType(str, Enum):
    """Courier vehicle. Snapshotted onto each Delivery at creation."""
    CAR = "Car"
    MOTORCYCLE = "Motorcycle"
    BICYCLE = "Bicycle"
    ON_FOOT = "OnFoot"


class OrderStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    DELIVERED = "Delivered"
    ORDER_REFUSED = "OrderRefused"
    CANCELED = "Canceled"


class ScheduleStatus(str, Enum):
    ON_TIME = "OnTime"
    IN_RISK = "InRisk"
    LATE = "Late"


class CourierStatus(str, Enum):
    """Derived courier state — the two on-route values are never directly settable."""
    AVAILABLE = "Available"
    ON_ROUTE_FOR_PICKUP = "OnRouteForPickup"
    ON_ROUTE_FOR_DELIVERY = "OnRouteForDelivery"
    INACTIVE = "Inactive"


class DeliveryStatus(str, Enum):
    """Completion status of one courier attempt."""
    COMPLETED = "Completed"
    CUSTOMER_REFUSED = "CustomerRefused"
    CANCELLED = "Cancelled"
    CUSTOMER_NOT_FOUND = "CustomerNotFound"
    FAILED = "Failed"


class TimeUnit(str, Enum):
    """Units accepted by the clock-forwarding operation."""
    MINUTE = "Minute"
    HOUR = "Hour"
    DAY = "Day"
    MONTH = "Month"
    YEAR = "Year"


ON_ROUTE_STATUSES = frozenset({
    CourierStatus.ON_ROUTE_FOR_PICKUP, CourierStatus.ON_ROUTE_FOR_DELIVERY,
})
