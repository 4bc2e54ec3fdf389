"""Dispatch Statistics — pure summaries over derived order and delivery state.

Invariants:
    - All inputs are already-derived snapshots or plain records (no IO)
    - Every enum member appears in a summary, with 0 when absent
    - Never raises on empty input
    - courier_stats and courier_salary share one on-time rule

Design Decisions:
    - Salary rates are a frozen dataclass with defaults, passed in explicitly;
      they are not part of SystemConfig
    - Tax applies to a positive gross only; a penalty-heavy period nets to the
      negative gross untaxed
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta

from courier_dispatch.core.domain_types import (
    CourierId, DeliveryStatus, OrderId, OrderStatus, ScheduleStatus,
)
from courier_dispatch.core.entities import Delivery, Location, Order
from courier_dispatch.core.geo import estimate_road_distance
from courier_dispatch.core.order_status import OrderSnapshot


def summarize_orders(snapshots: list[OrderSnapshot]) -> dict:
    """Counts per OrderStatus and per ScheduleStatus."""
    by_status = Counter(s.status for s in snapshots)
    by_schedule = Counter(s.schedule_status for s in snapshots)
    return {
        "total": len(snapshots),
        "by_status": {st.value: by_status.get(st, 0) for st in OrderStatus},
        "by_schedule": {sc.value: by_schedule.get(sc, 0) for sc in ScheduleStatus},
    }


def _is_on_time(delivery: Delivery, order: Order, max_delivery_time: timedelta) -> bool:
    return delivery.end_time - order.created_at <= max_delivery_time


@dataclass(frozen=True)
class CourierStats:
    delivered_on_time: int = 0
    delivered_late: int = 0
    total_deliveries: int = 0
    average_delivery_time: timedelta | None = None


def courier_stats(
    deliveries: list[Delivery],
    orders: dict[OrderId, Order],
    max_delivery_time: timedelta,
) -> CourierStats:
    """On-time/late counts over completed deliveries of one courier.

    A completed delivery is on time when it ended within max_delivery_time of
    its order's creation. Deliveries whose order no longer exists count toward
    the total and the average but not toward on-time/late.
    """
    completed = [
        d for d in deliveries
        if d.completion_status is DeliveryStatus.COMPLETED and d.end_time
    ]
    on_time = late = 0
    for d in completed:
        order = orders.get(d.order_id)
        if order is None:
            continue
        if _is_on_time(d, order, max_delivery_time):
            on_time += 1
        else:
            late += 1
    average = None
    if completed:
        total = sum((d.end_time - d.start_time for d in completed), timedelta(0))
        average = total / len(completed)
    return CourierStats(
        delivered_on_time=on_time,
        delivered_late=late,
        total_deliveries=len(deliveries),
        average_delivery_time=average,
    )


# ─── Salary ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class SalaryRates:
    base_hourly_rate: float = 40.0
    per_delivery_bonus: float = 5.0
    on_time_bonus: float = 3.0
    per_km_rate: float = 1.5
    late_penalty: float = 10.0
    tax_rate: float = 0.25


DEFAULT_SALARY_RATES = SalaryRates()


@dataclass(frozen=True)
class CourierSalary:
    courier_id: CourierId
    period_start: datetime
    period_end: datetime
    rates: SalaryRates
    hours_worked: float
    total_deliveries: int
    on_time_deliveries: int
    late_deliveries: int
    total_distance_km: float

    @property
    def base_salary(self) -> float:
        return self.rates.base_hourly_rate * self.hours_worked

    @property
    def delivery_bonus(self) -> float:
        return self.rates.per_delivery_bonus * self.total_deliveries

    @property
    def on_time_bonus(self) -> float:
        return self.rates.on_time_bonus * self.on_time_deliveries

    @property
    def distance_bonus(self) -> float:
        return self.rates.per_km_rate * self.total_distance_km

    @property
    def late_penalty(self) -> float:
        return self.rates.late_penalty * self.late_deliveries

    @property
    def gross_salary(self) -> float:
        return (
            self.base_salary + self.delivery_bonus + self.on_time_bonus
            + self.distance_bonus - self.late_penalty
        )

    @property
    def tax_amount(self) -> float:
        return max(self.gross_salary, 0.0) * self.rates.tax_rate

    @property
    def net_salary(self) -> float:
        return self.gross_salary - self.tax_amount


def _delivery_distance(
    delivery: Delivery, order: Order | None, origin: Location | None,
) -> float:
    if delivery.actual_distance is not None:
        return delivery.actual_distance
    if order is None or origin is None:
        return 0.0
    return estimate_road_distance(origin, order.location)


def courier_salary(
    courier_id: CourierId,
    deliveries: list[Delivery],
    orders: dict[OrderId, Order],
    period_start: datetime,
    period_end: datetime,
    max_delivery_time: timedelta,
    origin: Location | None = None,
    rates: SalaryRates = DEFAULT_SALARY_RATES,
) -> CourierSalary:
    """Pay for one courier over deliveries closed within [period_start, period_end].

    Hours worked is the time spent on every closed attempt in the period,
    whatever its outcome. Bonuses and distance count completed deliveries
    only; distance is the recorded one, else the road estimate from origin
    (the company) to the customer, else 0.
    """
    closed = [
        d for d in deliveries
        if d.end_time is not None and period_start <= d.end_time <= period_end
    ]
    worked = sum((d.end_time - d.start_time for d in closed), timedelta(0))
    completed = [d for d in closed if d.completion_status is DeliveryStatus.COMPLETED]
    on_time = late = 0
    distance = 0.0
    for d in completed:
        order = orders.get(d.order_id)
        distance += _delivery_distance(d, order, origin)
        if order is None:
            continue
        if _is_on_time(d, order, max_delivery_time):
            on_time += 1
        else:
            late += 1
    return CourierSalary(
        courier_id=courier_id,
        period_start=period_start,
        period_end=period_end,
        rates=rates,
        hours_worked=worked.total_seconds() / 3600,
        total_deliveries=len(completed),
        on_time_deliveries=on_time,
        late_deliveries=late,
        total_distance_km=distance,
    )
