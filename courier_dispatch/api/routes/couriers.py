"""Courier Routes — courier CRUD, location, status and available orders.

Invariants:
    - start_working_date is stamped from the virtual clock on create and never
      changed by updates
    - On-route statuses cannot be requested (409 from the registry)
    - Manual courier changes while the simulator runs return 423
    - Salary periods default to the courier's start date through the current
      virtual clock
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status

from courier_dispatch.api.dependencies import get_dispatch
from courier_dispatch.core.domain_types import CourierId, CourierStatus
from courier_dispatch.core.entities import Courier, Location
from courier_dispatch.schemas.courier import (
    CourierBase, CourierCreate, CourierResponse, CourierSalaryResponse,
    CourierStatusRequest, CourierUpdate, LocationBody,
)
from courier_dispatch.schemas.order import OrderResponse
from courier_dispatch.services.dispatch_system import DispatchSystem

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/couriers", tags=["couriers"])


def _to_courier(body: CourierBase, courier_id: int, system: DispatchSystem) -> Courier:
    return Courier(
        id=CourierId(courier_id),
        name=body.name,
        phone=body.phone,
        email=body.email,
        delivery_type=body.delivery_type,
        start_working_date=system.ctx.now,
        location=Location(body.location.latitude, body.location.longitude),
        is_active=body.is_active,
        max_delivery_distance=body.max_delivery_distance,
    )


@router.get("", response_model=list[CourierResponse])
def list_couriers(
    status_filter: CourierStatus | None = Query(None, alias="status"),
    system: DispatchSystem = Depends(get_dispatch),
):
    return [
        CourierResponse.from_snapshot(s) for s in system.couriers.read_all()
        if status_filter is None or s.status is status_filter
    ]


@router.post("", response_model=CourierResponse, status_code=status.HTTP_201_CREATED)
def create_courier(
    body: CourierCreate, system: DispatchSystem = Depends(get_dispatch),
):
    system.couriers.create(_to_courier(body, body.id, system))
    return CourierResponse.from_snapshot(system.couriers.read(body.id))


@router.get("/{courier_id}", response_model=CourierResponse)
def get_courier(courier_id: int, system: DispatchSystem = Depends(get_dispatch)):
    return CourierResponse.from_snapshot(system.couriers.read(courier_id))


@router.put("/{courier_id}", response_model=CourierResponse)
def update_courier(
    courier_id: int, body: CourierUpdate,
    system: DispatchSystem = Depends(get_dispatch),
):
    system.couriers.update(_to_courier(body, courier_id, system))
    return CourierResponse.from_snapshot(system.couriers.read(courier_id))


@router.delete("/{courier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_courier(courier_id: int, system: DispatchSystem = Depends(get_dispatch)):
    system.couriers.delete(courier_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{courier_id}/location", response_model=CourierResponse)
def move_courier(
    courier_id: int, body: LocationBody,
    system: DispatchSystem = Depends(get_dispatch),
):
    system.couriers.update_location(
        courier_id, Location(body.latitude, body.longitude),
    )
    return CourierResponse.from_snapshot(system.couriers.read(courier_id))


@router.put("/{courier_id}/status", response_model=CourierResponse)
def set_courier_status(
    courier_id: int, body: CourierStatusRequest,
    system: DispatchSystem = Depends(get_dispatch),
):
    system.couriers.set_courier_status(courier_id, body.status)
    return CourierResponse.from_snapshot(system.couriers.read(courier_id))


@router.get("/{courier_id}/available-orders", response_model=list[OrderResponse])
def available_orders(
    courier_id: int, system: DispatchSystem = Depends(get_dispatch),
):
    """Open orders within the courier's range, nearest first."""
    return [
        OrderResponse.from_snapshot(s)
        for s in system.orders.available_orders_for_courier(courier_id)
    ]


@router.get("/{courier_id}/salary", response_model=CourierSalaryResponse)
def courier_salary(
    courier_id: int,
    period_start: datetime | None = None,
    period_end: datetime | None = None,
    system: DispatchSystem = Depends(get_dispatch),
):
    if period_start is None:
        period_start = system.couriers.get(courier_id).start_working_date
    if period_end is None:
        period_end = system.admin.get_clock()
    salary = system.couriers.calculate_salary(courier_id, period_start, period_end)
    return CourierSalaryResponse.from_salary(salary)
