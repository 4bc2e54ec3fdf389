"""Domain Entities — immutable value records for orders, couriers and deliveries.

Invariants:
    - Entities are frozen — every change produces a new value via dataclasses.replace
    - Repositories replace a stored record by id, never mutate it in place
    - Delivery.completion_status and Delivery.end_time are set together or not at all
    - Derived statuses are NOT fields here (see order_status.py, courier_status.py)

Design Decisions:
    - frozen dataclass over ORM objects in core: core stays IO-free, ORM rows are
      translated at the repository boundary (models/)
"""

from dataclasses import dataclass, replace
from datetime import datetime

from courier_dispatch.core.domain_types import (
    CourierId, DeliveryId, DeliveryStatus, DeliveryType, OrderId, OrderType,
)


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Order:
    """A customer order. Status is derived from the date/association fields."""
    id: OrderId
    order_type: OrderType
    address: str
    latitude: float
    longitude: float
    customer_name: str
    customer_phone: str
    weight: float
    created_at: datetime
    volume: float = 0.0
    is_fragile: bool = False
    description: str | None = None
    courier_id: CourierId | None = None
    courier_associated_date: datetime | None = None
    pickup_date: datetime | None = None
    delivery_date: datetime | None = None

    @property
    def location(self) -> Location:
        return Location(self.latitude, self.longitude)

    @property
    def is_closed(self) -> bool:
        return self.delivery_date is not None

    def released(self) -> "Order":
        """Copy with courier association and progress dates cleared."""
        return replace(
            self, courier_id=None, courier_associated_date=None,
            pickup_date=None, delivery_date=None,
        )


@dataclass(frozen=True)
class Courier:
    id: CourierId
    name: str
    phone: str
    email: str
    delivery_type: DeliveryType
    start_working_date: datetime
    location: Location
    is_active: bool = True
    max_delivery_distance: float | None = None


@dataclass(frozen=True)
class Delivery:
    """One courier attempt at an order. Open while end_time is None."""
    id: DeliveryId
    order_id: OrderId
    courier_id: CourierId
    delivery_type: DeliveryType
    start_time: datetime
    completion_status: DeliveryStatus | None = None
    end_time: datetime | None = None
    actual_distance: float | None = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def closed(
        self,
        status: DeliveryStatus,
        end_time: datetime,
        actual_distance: float | None = None,
    ) -> "Delivery":
        return replace(
            self, completion_status=status, end_time=end_time,
            actual_distance=actual_distance,
        )
