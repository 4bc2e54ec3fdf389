"""Order Lifecycle — every transition end-to-end over the in-memory context.

Invariants:
    - Status read back after each operation is freshly derived
    - A rejected transition leaves orders and deliveries untouched
    - Observers fire after the write and never break the operation

Tests cover:
    - create/update/delete rules
    - associate -> pick up -> deliver happy path, with courier status at each step
    - refuse (food terminal, others reopen), cancel, failed attempt
    - a delivered order cannot be refused afterwards
    - overdue open deliveries expire as Failed when the clock moves
    - queries: history, available orders, status summary
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from courier_dispatch.core.domain_types import (
    CourierStatus, DeliveryStatus, OrderStatus, OrderType, TimeUnit,
)
from courier_dispatch.core.errors import (
    ConflictError, InvalidValueError, NotFoundError,
)

from tests.support import CLOCK, FAR_LOCATION


@pytest.fixture
def courier(system, make_courier):
    return system.couriers.create(make_courier())


@pytest.fixture
def order(system, make_order):
    return system.orders.create(make_order())


@pytest.fixture
def picked_up(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    system.admin.forward_clock(10)
    system.orders.pick_up_order(order.id)
    system.admin.forward_clock(20)
    return order


# ─── CRUD ───────────────────────────────────────────────────────

def test_create_assigns_id_and_stamps_clock(system, make_order):
    created = system.orders.create(make_order(id=99, created_at=CLOCK - timedelta(days=1)))
    assert created.id == 1
    assert created.created_at == CLOCK
    assert system.orders.read(created.id).status is OrderStatus.OPEN


def test_create_drops_progress_fields(system, make_order):
    created = system.orders.create(make_order(courier_id=5, pickup_date=CLOCK))
    assert created.courier_id is None
    assert created.pickup_date is None


def test_create_rejects_invalid_order(system, make_order):
    with pytest.raises(InvalidValueError):
        system.orders.create(make_order(weight=0))
    assert system.orders.read_all() == []


def test_read_missing_order_is_not_found(system):
    with pytest.raises(NotFoundError) as exc:
        system.orders.read(42)
    assert exc.value.http_status == 404


def test_update_open_order_keeps_created_at(system, order):
    system.admin.forward_clock(5)
    updated = system.orders.update(replace(order, customer_name="Maya Katz"))
    assert updated.customer_name == "Maya Katz"
    assert updated.created_at == CLOCK


def test_update_in_progress_order_is_rejected(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    with pytest.raises(InvalidValueError):
        system.orders.update(order)


def test_delete_open_order(system, order):
    system.orders.delete(order.id)
    with pytest.raises(NotFoundError):
        system.orders.get(order.id)


def test_delete_order_with_history_is_a_conflict(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    system.orders.cancel_order(order.id)
    with pytest.raises(ConflictError):
        system.orders.delete(order.id)


# ─── Happy path ─────────────────────────────────────────────────

def test_associate_opens_delivery_and_moves_courier(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)

    snapshot = system.orders.read(order.id)
    assert snapshot.status is OrderStatus.IN_PROGRESS
    assert snapshot.order.courier_associated_date == CLOCK
    assert snapshot.delivery_count == 1
    assert system.couriers.status_of(courier.id) is CourierStatus.ON_ROUTE_FOR_PICKUP
    delivery = system.deliveries.open_delivery_for_order(order.id)
    assert delivery.courier_id == courier.id
    assert delivery.delivery_type is courier.delivery_type


def test_pickup_moves_courier_to_delivery_leg(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    system.admin.forward_clock(10)
    picked = system.orders.pick_up_order(order.id)
    assert picked.pickup_date == CLOCK + timedelta(minutes=10)
    assert system.couriers.status_of(courier.id) is CourierStatus.ON_ROUTE_FOR_DELIVERY


def test_deliver_closes_everything(system, picked_up, courier):
    delivered = system.orders.deliver_order(picked_up.id)

    assert delivered.delivery_date == CLOCK + timedelta(minutes=30)
    snapshot = system.orders.read(picked_up.id)
    assert snapshot.status is OrderStatus.DELIVERED
    [delivery] = system.deliveries.deliveries_for_order(picked_up.id)
    assert delivery.completion_status is DeliveryStatus.COMPLETED
    assert delivery.end_time == delivered.delivery_date
    assert delivery.actual_distance > 0
    courier_view = system.couriers.read(courier.id)
    assert courier_view.status is CourierStatus.AVAILABLE
    assert courier_view.current_order_id is None
    assert courier_view.stats.delivered_on_time == 1


def test_deliver_before_pickup_changes_nothing(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    with pytest.raises(InvalidValueError):
        system.orders.deliver_order(order.id)
    assert system.orders.get(order.id).delivery_date is None
    assert system.deliveries.open_delivery_for_order(order.id) is not None


def test_delivered_order_cannot_be_reassociated(system, picked_up, courier):
    system.orders.deliver_order(picked_up.id)
    with pytest.raises(InvalidValueError):
        system.orders.associate_courier_to_order(picked_up.id, courier.id)


def test_delivered_order_cannot_be_refused(system, picked_up):
    system.orders.deliver_order(picked_up.id)
    before = system.deliveries.deliveries_for_order(picked_up.id)

    with pytest.raises(InvalidValueError):
        system.orders.refuse_order(picked_up.id)

    assert system.deliveries.deliveries_for_order(picked_up.id) == before
    assert before[0].completion_status is DeliveryStatus.COMPLETED
    assert system.orders.read(picked_up.id).status is OrderStatus.DELIVERED


# ─── Association rules ──────────────────────────────────────────

def test_second_courier_cannot_take_handled_order(system, order, courier, make_courier):
    other = system.couriers.create(make_courier(id=987654321, name="Ori Peretz"))
    system.orders.associate_courier_to_order(order.id, courier.id)
    with pytest.raises(ConflictError):
        system.orders.associate_courier_to_order(order.id, other.id)
    assert system.orders.get(order.id).courier_id == courier.id


def test_busy_courier_cannot_take_second_order(system, order, courier, make_order):
    second = system.orders.create(make_order())
    system.orders.associate_courier_to_order(order.id, courier.id)
    with pytest.raises(ConflictError):
        system.orders.associate_courier_to_order(second.id, courier.id)
    assert system.orders.read(second.id).status is OrderStatus.OPEN


def test_inactive_courier_cannot_take_order(system, order, make_courier):
    idle = system.couriers.create(make_courier(is_active=False))
    with pytest.raises(ConflictError):
        system.orders.associate_courier_to_order(order.id, idle.id)


def test_out_of_range_courier_is_rejected(system, order, make_courier):
    far = system.couriers.create(make_courier(location=FAR_LOCATION, max_delivery_distance=5.0))
    with pytest.raises(InvalidValueError):
        system.orders.associate_courier_to_order(order.id, far.id)


def test_unknown_courier_is_not_found(system, order):
    with pytest.raises(NotFoundError):
        system.orders.associate_courier_to_order(order.id, 111)


# ─── Refuse / cancel / failed attempt ───────────────────────────

def test_refused_food_order_is_terminal(system, make_order, courier):
    food = system.orders.create(make_order(order_type=OrderType.RESTAURANT_FOOD))
    system.orders.associate_courier_to_order(food.id, courier.id)
    system.orders.pick_up_order(food.id)

    result = system.orders.refuse_order(food.id)

    assert result.delivery_date == CLOCK
    assert system.orders.read(food.id).status is OrderStatus.ORDER_REFUSED
    with pytest.raises(InvalidValueError):
        system.orders.cancel_order(food.id)


def test_refused_grocery_order_returns_to_open(system, picked_up, courier):
    result = system.orders.refuse_order(picked_up.id)

    assert result.courier_id is None
    assert result.pickup_date is None
    assert system.orders.read(picked_up.id).status is OrderStatus.OPEN
    [delivery] = system.deliveries.deliveries_for_order(picked_up.id)
    assert delivery.completion_status is DeliveryStatus.CUSTOMER_REFUSED
    assert system.couriers.status_of(courier.id) is CourierStatus.AVAILABLE


def test_cancel_in_progress_order_reopens_it(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    system.admin.forward_clock(5)

    result = system.orders.cancel_order(order.id)

    assert result.courier_id is None
    assert system.orders.read(order.id).status is OrderStatus.OPEN
    [delivery] = system.deliveries.deliveries_for_order(order.id)
    assert delivery.completion_status is DeliveryStatus.CANCELLED
    assert delivery.end_time == CLOCK + timedelta(minutes=5)


def test_cancel_open_order_writes_no_delivery(system, order):
    system.orders.cancel_order(order.id)
    assert system.deliveries.deliveries_for_order(order.id) == []


def test_failed_attempt_reopens_order(system, picked_up):
    system.orders.report_failed_attempt(picked_up.id, DeliveryStatus.FAILED)
    assert system.orders.read(picked_up.id).status is OrderStatus.OPEN
    [delivery] = system.deliveries.deliveries_for_order(picked_up.id)
    assert delivery.completion_status is DeliveryStatus.FAILED


def test_failed_attempt_rejects_non_failure_status(system, picked_up):
    with pytest.raises(InvalidValueError):
        system.orders.report_failed_attempt(picked_up.id, DeliveryStatus.COMPLETED)


def test_reopened_order_can_be_delivered_by_next_courier(system, picked_up, make_courier):
    system.orders.report_failed_attempt(picked_up.id)
    second = system.couriers.create(make_courier(id=987654321, name="Ori Peretz"))
    system.orders.associate_courier_to_order(picked_up.id, second.id)
    system.orders.pick_up_order(picked_up.id)
    system.orders.deliver_order(picked_up.id)

    history = system.orders.history(picked_up.id)
    assert [e.completion_status for e in history] == [
        DeliveryStatus.CUSTOMER_NOT_FOUND, DeliveryStatus.COMPLETED,
    ]
    assert history[1].courier_name == "Ori Peretz"
    assert system.orders.read(picked_up.id).status is OrderStatus.DELIVERED


# ─── Overdue deliveries ─────────────────────────────────────────

def test_overdue_delivery_expires_as_failed(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    system.orders.pick_up_order(order.id)
    system.admin.forward_clock(121)

    [delivery] = system.deliveries.deliveries_for_order(order.id)
    assert delivery.completion_status is DeliveryStatus.FAILED
    assert delivery.end_time == CLOCK + timedelta(minutes=121)
    assert system.orders.read(order.id).status is OrderStatus.OPEN
    assert system.couriers.status_of(courier.id) is CourierStatus.AVAILABLE


def test_delivery_at_exactly_max_time_is_kept(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    system.admin.forward_clock(2, TimeUnit.HOUR)

    assert system.orders.expire_overdue_deliveries() == []
    assert system.deliveries.open_delivery_for_order(order.id) is not None


def test_unpicked_overdue_delivery_also_expires(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    system.admin.forward_clock(3, TimeUnit.HOUR)

    assert system.deliveries.open_delivery_for_order(order.id) is None
    assert system.orders.get(order.id).courier_id is None


def test_customer_not_found_still_needs_pickup(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    with pytest.raises(InvalidValueError):
        system.orders.report_failed_attempt(order.id, DeliveryStatus.CUSTOMER_NOT_FOUND)


def test_expiry_sweep_with_nothing_open_is_silent(system, ctx, order):
    calls = []
    ctx.bus.orders.add_list_observer(lambda: calls.append(1))
    system.admin.forward_clock(1, TimeUnit.DAY)
    assert system.orders.expire_overdue_deliveries() == []
    assert calls == []


# ─── Queries ────────────────────────────────────────────────────

def test_history_keeps_entries_of_deleted_courier(system, order, courier):
    system.orders.associate_courier_to_order(order.id, courier.id)
    system.orders.cancel_order(order.id)
    system.couriers.set_courier_status(courier.id, CourierStatus.INACTIVE)
    system.couriers.delete(courier.id)

    [entry] = system.orders.history(order.id)
    assert entry.courier_name == "Unknown"


def test_available_orders_nearest_first_within_range(system, make_order, make_courier):
    courier = system.couriers.create(make_courier(max_delivery_distance=20.0))
    near = system.orders.create(make_order(latitude=32.0801, longitude=34.8129))
    mid = system.orders.create(make_order())
    system.orders.create(make_order(latitude=FAR_LOCATION.latitude, longitude=FAR_LOCATION.longitude))

    available = system.orders.available_orders_for_courier(courier.id)

    assert [s.order.id for s in available] == [near.id, mid.id]


def test_status_summary_counts_orders(system, order, courier, make_order):
    system.orders.create(make_order())
    system.orders.associate_courier_to_order(order.id, courier.id)
    summary = system.orders.status_summary()
    assert summary["total"] == 2
    assert summary["by_status"]["Open"] == 1
    assert summary["by_status"]["InProgress"] == 1


# ─── Notifications ──────────────────────────────────────────────

def test_observers_notified_after_association(system, ctx, order, courier):
    seen = []

    def on_order(order_id):
        # the write is visible when the observer runs
        seen.append(system.orders.read(order_id).status)

    ctx.bus.orders.add_item_observer(order.id, on_order)
    system.orders.associate_courier_to_order(order.id, courier.id)
    assert seen == [OrderStatus.IN_PROGRESS]


def test_failing_observer_does_not_break_operation(system, ctx, order, courier):
    calls = []

    def broken():
        raise RuntimeError("observer bug")

    ctx.bus.orders.add_list_observer(broken)
    ctx.bus.orders.add_list_observer(lambda: calls.append("ok"))
    system.orders.associate_courier_to_order(order.id, courier.id)
    assert calls == ["ok"]
    assert system.orders.read(order.id).status is OrderStatus.IN_PROGRESS


def test_rejected_operation_sends_no_notification(system, ctx, order):
    calls = []
    ctx.bus.orders.add_list_observer(lambda: calls.append(1))
    with pytest.raises(InvalidValueError):
        system.orders.pick_up_order(order.id)
    assert calls == []
