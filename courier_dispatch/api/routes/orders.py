"""Order Routes — CRUD, lifecycle transitions, history and route estimates.

Invariants:
    - Handlers only translate HTTP <-> service calls; every rule lives in
      OrderLifecycle and core/
    - Every response carries freshly derived status (OrderResponse.from_snapshot)
    - Missing coordinates are resolved by geocoding the address; an address
      that cannot be resolved is a 400 INVALID_VALUE

Design Decisions:
    - Transitions are POST sub-resources (/orders/{id}/pickup, ...) so each
      one maps to exactly one lifecycle operation
    - Handlers are plain def: services block on the dispatch lock and on sync
      SQLAlchemy, so FastAPI runs them in its threadpool. The three handlers
      that await the geocoder stay async and push service calls through
      run_in_threadpool
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool

from courier_dispatch.api.dependencies import get_dispatch
from courier_dispatch.core.domain_types import (
    OrderId, OrderStatus, ScheduleStatus,
)
from courier_dispatch.core.entities import Location, Order
from courier_dispatch.core.errors import ErrorContext, InvalidValueError
from courier_dispatch.core.geo import estimate_road_distance, speed_for, travel_time
from courier_dispatch.schemas.order import (
    AssociateRequest, DeliveryHistoryResponse, FailedAttemptRequest,
    OrderBase, OrderCreate, OrderResponse, OrderUpdate, RouteEstimateResponse,
)
from courier_dispatch.services.dispatch_system import DispatchSystem

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


async def _resolve_location(
    system: DispatchSystem, body: OrderBase, fallback: Location | None = None,
) -> Location:
    if body.latitude is not None and body.longitude is not None:
        return Location(body.latitude, body.longitude)
    if fallback is not None:
        return fallback
    location = None
    if system.geocoder is not None:
        location = await system.geocoder.geocode(body.address)
    if location is None:
        raise InvalidValueError(
            f"Could not resolve coordinates for address '{body.address}'", "address",
        )
    return location


def _to_order(body: OrderBase, order_id: int, location: Location, system: DispatchSystem) -> Order:
    return Order(
        id=OrderId(order_id),
        order_type=body.order_type,
        description=body.description,
        address=body.address,
        latitude=location.latitude,
        longitude=location.longitude,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        weight=body.weight,
        volume=body.volume,
        is_fragile=body.is_fragile,
        created_at=system.ctx.now,
    )


def _respond(system: DispatchSystem, order_id: int) -> OrderResponse:
    return OrderResponse.from_snapshot(system.orders.read(order_id))


# ─── CRUD ───────────────────────────────────────────────────────

@router.get("", response_model=list[OrderResponse])
def list_orders(
    status_filter: OrderStatus | None = Query(None, alias="status"),
    schedule_status: ScheduleStatus | None = None,
    courier_id: int | None = None,
    system: DispatchSystem = Depends(get_dispatch),
):
    snapshots = system.orders.read_all(
        None if courier_id is None else (lambda o: o.courier_id == courier_id),
    )
    return [
        OrderResponse.from_snapshot(s) for s in snapshots
        if (status_filter is None or s.status is status_filter)
        and (schedule_status is None or s.schedule_status is schedule_status)
    ]


@router.get("/summary")
def order_summary(system: DispatchSystem = Depends(get_dispatch)):
    """Order counts by status and schedule status."""
    return system.orders.status_summary()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate, system: DispatchSystem = Depends(get_dispatch),
):
    location = await _resolve_location(system, body)
    order = await run_in_threadpool(_to_order, body, 0, location, system)
    created = await run_in_threadpool(system.orders.create, order)
    return await run_in_threadpool(_respond, system, created.id)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, system: DispatchSystem = Depends(get_dispatch)):
    return _respond(system, order_id)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int, body: OrderUpdate, system: DispatchSystem = Depends(get_dispatch),
):
    stored = await run_in_threadpool(system.orders.get, order_id)
    # keep stored coordinates when the address did not change
    fallback = stored.location if body.address == stored.address else None
    location = await _resolve_location(system, body, fallback)
    order = await run_in_threadpool(_to_order, body, order_id, location, system)
    await run_in_threadpool(system.orders.update, order)
    return await run_in_threadpool(_respond, system, order_id)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(order_id: int, system: DispatchSystem = Depends(get_dispatch)):
    system.orders.delete(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─── Transitions ────────────────────────────────────────────────

@router.post("/{order_id}/associate", response_model=OrderResponse)
def associate_courier(
    order_id: int, body: AssociateRequest,
    system: DispatchSystem = Depends(get_dispatch),
):
    system.orders.associate_courier_to_order(order_id, body.courier_id)
    return _respond(system, order_id)


@router.post("/{order_id}/pickup", response_model=OrderResponse)
def pick_up_order(order_id: int, system: DispatchSystem = Depends(get_dispatch)):
    system.orders.pick_up_order(order_id)
    return _respond(system, order_id)


@router.post("/{order_id}/deliver", response_model=OrderResponse)
def deliver_order(order_id: int, system: DispatchSystem = Depends(get_dispatch)):
    system.orders.deliver_order(order_id)
    return _respond(system, order_id)


@router.post("/{order_id}/refuse", response_model=OrderResponse)
def refuse_order(order_id: int, system: DispatchSystem = Depends(get_dispatch)):
    system.orders.refuse_order(order_id)
    return _respond(system, order_id)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(order_id: int, system: DispatchSystem = Depends(get_dispatch)):
    system.orders.cancel_order(order_id)
    return _respond(system, order_id)


@router.post("/{order_id}/failed-attempt", response_model=OrderResponse)
def report_failed_attempt(
    order_id: int, body: FailedAttemptRequest,
    system: DispatchSystem = Depends(get_dispatch),
):
    system.orders.report_failed_attempt(order_id, body.status)
    return _respond(system, order_id)


# ─── Queries ────────────────────────────────────────────────────

@router.get("/{order_id}/history", response_model=list[DeliveryHistoryResponse])
def order_history(order_id: int, system: DispatchSystem = Depends(get_dispatch)):
    return [DeliveryHistoryResponse.from_entry(e) for e in system.orders.history(order_id)]


@router.get("/{order_id}/route-estimate", response_model=RouteEstimateResponse)
async def route_estimate(order_id: int, system: DispatchSystem = Depends(get_dispatch)):
    """Road distance and travel time from the assigned courier to the customer."""
    order = await run_in_threadpool(system.orders.get, order_id)
    if order.courier_id is None:
        raise InvalidValueError(
            "Order has no courier assigned", "courier_id",
            ErrorContext(order_id=order.id, operation="route_estimate"),
        )
    courier = await run_in_threadpool(system.couriers.get, order.courier_id)
    config = await run_in_threadpool(system.admin.get_config)
    if system.geocoder is not None:
        estimate = await system.geocoder.travel_estimate(
            courier.location, order.location, courier.delivery_type, config,
        )
        distance, duration, actual = (
            estimate.distance_km, estimate.duration, estimate.is_actual_route,
        )
    else:
        distance = estimate_road_distance(courier.location, order.location)
        duration = travel_time(distance, speed_for(config, courier.delivery_type))
        actual = False
    return RouteEstimateResponse(
        order_id=order.id,
        courier_id=courier.id,
        distance_km=round(distance, 3),
        duration_minutes=round(duration.total_seconds() / 60, 2),
        is_actual_route=actual,
    )
