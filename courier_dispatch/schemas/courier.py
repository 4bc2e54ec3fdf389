"""Courier Schemas — courier requests and snapshot-based responses."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from courier_dispatch.core.domain_types import CourierStatus, DeliveryType
from courier_dispatch.core.statistics import CourierSalary
from courier_dispatch.services.courier_registry import CourierSnapshot


class LocationBody(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class CourierBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    phone: str = Field("", pattern=r"^(0\d{9})?$")
    email: str = Field("", max_length=200)
    delivery_type: DeliveryType
    is_active: bool = True
    max_delivery_distance: float | None = Field(None, ge=0)
    location: LocationBody

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class CourierCreate(CourierBase):
    id: int = Field(gt=0)


class CourierUpdate(CourierBase):
    """Full replacement of editable fields; start_working_date is kept."""


class CourierStatusRequest(BaseModel):
    status: CourierStatus


class CourierResponse(BaseModel):
    id: int
    name: str
    phone: str
    email: str
    delivery_type: DeliveryType
    is_active: bool
    max_delivery_distance: float | None
    start_working_date: datetime
    location: LocationBody
    status: CourierStatus
    current_order_id: int | None
    delivered_on_time: int
    delivered_late: int
    total_deliveries: int
    average_delivery_minutes: float | None

    @classmethod
    def from_snapshot(cls, snapshot: CourierSnapshot) -> "CourierResponse":
        c, stats = snapshot.courier, snapshot.stats
        average = stats.average_delivery_time
        return cls(
            id=c.id,
            name=c.name,
            phone=c.phone,
            email=c.email,
            delivery_type=c.delivery_type,
            is_active=c.is_active,
            max_delivery_distance=c.max_delivery_distance,
            start_working_date=c.start_working_date,
            location=LocationBody(
                latitude=c.location.latitude, longitude=c.location.longitude,
            ),
            status=snapshot.status,
            current_order_id=snapshot.current_order_id,
            delivered_on_time=stats.delivered_on_time,
            delivered_late=stats.delivered_late,
            total_deliveries=stats.total_deliveries,
            average_delivery_minutes=(
                round(average.total_seconds() / 60, 2) if average is not None else None
            ),
        )


class CourierSalaryResponse(BaseModel):
    courier_id: int
    period_start: datetime
    period_end: datetime
    hours_worked: float
    total_deliveries: int
    on_time_deliveries: int
    late_deliveries: int
    total_distance_km: float
    base_salary: float
    delivery_bonus: float
    on_time_bonus: float
    distance_bonus: float
    late_penalty: float
    gross_salary: float
    tax_rate: float
    tax_amount: float
    net_salary: float

    @classmethod
    def from_salary(cls, salary: CourierSalary) -> "CourierSalaryResponse":
        return cls(
            courier_id=salary.courier_id,
            period_start=salary.period_start,
            period_end=salary.period_end,
            hours_worked=round(salary.hours_worked, 2),
            total_deliveries=salary.total_deliveries,
            on_time_deliveries=salary.on_time_deliveries,
            late_deliveries=salary.late_deliveries,
            total_distance_km=round(salary.total_distance_km, 3),
            base_salary=round(salary.base_salary, 2),
            delivery_bonus=round(salary.delivery_bonus, 2),
            on_time_bonus=round(salary.on_time_bonus, 2),
            distance_bonus=round(salary.distance_bonus, 2),
            late_penalty=round(salary.late_penalty, 2),
            gross_salary=round(salary.gross_salary, 2),
            tax_rate=salary.rates.tax_rate,
            tax_amount=round(salary.tax_amount, 2),
            net_salary=round(salary.net_salary, 2),
        )
