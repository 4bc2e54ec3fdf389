"""Order Schemas — order requests and snapshot-based responses.

Invariants:
    - OrderCreate/OrderUpdate: text fields stripped, non-empty; weight > 0
    - OrderResponse always carries freshly derived status and schedule_status
    - Coordinates optional on create: the route geocodes the address when absent

Design Decisions:
    - field_validator for side-effect-free transforms (strip)
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from courier_dispatch.core.domain_types import (
    DeliveryStatus, DeliveryType, OrderStatus, OrderType, ScheduleStatus,
)
from courier_dispatch.core.order_status import OrderSnapshot
from courier_dispatch.services.delivery_ledger import DeliveryHistoryEntry


class OrderBase(BaseModel):
    order_type: OrderType
    description: str | None = Field(None, max_length=1000)
    address: str = Field(min_length=1, max_length=300)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    customer_name: str = Field(min_length=1, max_length=120)
    customer_phone: str = Field("", pattern=r"^(0\d{9})?$")
    weight: float = Field(gt=0)
    volume: float = Field(0.0, ge=0)
    is_fragile: bool = False

    @field_validator("address", "customer_name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v


class OrderCreate(OrderBase):
    """New order. Coordinates resolved by geocoding when omitted."""


class OrderUpdate(OrderBase):
    """Editable fields of an open order."""


class OrderResponse(BaseModel):
    id: int
    order_type: OrderType
    description: str | None
    address: str
    latitude: float
    longitude: float
    customer_name: str
    customer_phone: str
    weight: float
    volume: float
    is_fragile: bool
    created_at: datetime
    courier_id: int | None
    courier_associated_date: datetime | None
    pickup_date: datetime | None
    delivery_date: datetime | None
    status: OrderStatus
    schedule_status: ScheduleStatus
    max_delivery_at: datetime
    expected_delivery_at: datetime | None
    time_left_minutes: float
    air_distance_km: float | None
    delivery_count: int

    @classmethod
    def from_snapshot(cls, snapshot: OrderSnapshot) -> "OrderResponse":
        o = snapshot.order
        return cls(
            id=o.id,
            order_type=o.order_type,
            description=o.description,
            address=o.address,
            latitude=o.latitude,
            longitude=o.longitude,
            customer_name=o.customer_name,
            customer_phone=o.customer_phone,
            weight=o.weight,
            volume=o.volume,
            is_fragile=o.is_fragile,
            created_at=o.created_at,
            courier_id=o.courier_id,
            courier_associated_date=o.courier_associated_date,
            pickup_date=o.pickup_date,
            delivery_date=o.delivery_date,
            status=snapshot.status,
            schedule_status=snapshot.schedule_status,
            max_delivery_at=snapshot.max_delivery_at,
            expected_delivery_at=snapshot.expected_delivery_at,
            time_left_minutes=round(snapshot.time_left.total_seconds() / 60, 2),
            air_distance_km=(
                round(snapshot.air_distance, 3)
                if snapshot.air_distance is not None else None
            ),
            delivery_count=snapshot.delivery_count,
        )


class AssociateRequest(BaseModel):
    courier_id: int = Field(gt=0)


class FailedAttemptRequest(BaseModel):
    status: DeliveryStatus = DeliveryStatus.CUSTOMER_NOT_FOUND


class DeliveryHistoryResponse(BaseModel):
    delivery_id: int
    courier_id: int
    courier_name: str
    delivery_type: DeliveryType
    start_time: datetime
    end_time: datetime | None
    completion_status: DeliveryStatus | None
    actual_distance_km: float | None

    @classmethod
    def from_entry(cls, entry: DeliveryHistoryEntry) -> "DeliveryHistoryResponse":
        return cls(
            delivery_id=entry.delivery_id,
            courier_id=entry.courier_id,
            courier_name=entry.courier_name,
            delivery_type=entry.delivery_type,
            start_time=entry.start_time,
            end_time=entry.end_time,
            completion_status=entry.completion_status,
            actual_distance_km=entry.actual_distance,
        )


class RouteEstimateResponse(BaseModel):
    order_id: int
    courier_id: int
    distance_km: float
    duration_minutes: float
    is_actual_route: bool
