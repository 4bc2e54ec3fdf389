"""Delivery Ledger — open/close bookkeeping and per-order history."""

from datetime import timedelta

import pytest

from courier_dispatch.core.domain_types import DeliveryStatus, DeliveryType, TimeUnit
from courier_dispatch.core.errors import ConflictError, InvalidValueError, NotFoundError
from courier_dispatch.services.delivery_ledger import UNKNOWN_COURIER

from tests.support import CLOCK


@pytest.fixture
def courier(system, make_courier):
    return system.couriers.create(make_courier(delivery_type=DeliveryType.BICYCLE))


@pytest.fixture
def order(system, make_order):
    return system.orders.create(make_order())


def test_open_copies_courier_vehicle(system, order, courier):
    delivery = system.deliveries.open_delivery(order, courier)
    assert delivery.delivery_type is DeliveryType.BICYCLE
    assert delivery.start_time == CLOCK
    assert delivery.is_open
    assert system.deliveries.open_delivery_for_order(order.id) == delivery
    assert system.deliveries.open_delivery_for_courier(courier.id) == delivery


def test_second_open_delivery_is_a_conflict(system, order, courier):
    system.deliveries.open_delivery(order, courier)
    with pytest.raises(ConflictError):
        system.deliveries.open_delivery(order, courier)
    assert len(system.deliveries.deliveries_for_order(order.id)) == 1


def test_close_without_open_delivery_is_invalid(system, order):
    with pytest.raises(InvalidValueError):
        system.deliveries.close_delivery(order.id, DeliveryStatus.COMPLETED)


def test_close_writes_status_and_end_time_together(system, order, courier):
    system.deliveries.open_delivery(order, courier)
    system.admin.forward_clock(25)
    closed = system.deliveries.close_delivery(order.id, DeliveryStatus.FAILED, 4.2)
    assert closed.completion_status is DeliveryStatus.FAILED
    assert closed.end_time == CLOCK + timedelta(minutes=25)
    assert closed.actual_distance == 4.2
    assert system.deliveries.open_delivery_for_order(order.id) is None


def test_missing_delivery_is_not_found(system):
    with pytest.raises(NotFoundError):
        system.deliveries.read(404)


def test_last_closed_for_courier_picks_latest_end(system, courier, make_order):
    first = system.orders.create(make_order())
    second = system.orders.create(make_order())
    assert system.deliveries.last_closed_for_courier(courier.id) is None

    system.deliveries.open_delivery(first, courier)
    system.deliveries.close_delivery(first.id, DeliveryStatus.COMPLETED)
    system.admin.forward_clock(1, TimeUnit.HOUR)
    system.deliveries.open_delivery(second, courier)
    assert system.deliveries.last_closed_for_courier(courier.id).order_id == first.id

    system.deliveries.close_delivery(second.id, DeliveryStatus.CANCELLED)
    assert system.deliveries.last_closed_for_courier(courier.id).order_id == second.id

    latest_completed = system.deliveries.last_closed_for_courier(
        courier.id, DeliveryStatus.COMPLETED,
    )
    assert latest_completed.order_id == first.id


def test_history_is_chronological_with_courier_names(system, order, courier):
    system.deliveries.open_delivery(order, courier)
    system.deliveries.close_delivery(order.id, DeliveryStatus.CUSTOMER_NOT_FOUND)
    system.admin.forward_clock(30)
    system.deliveries.open_delivery(order, courier)

    history = system.deliveries.history_for_order(order.id)

    assert [h.completion_status for h in history] == [
        DeliveryStatus.CUSTOMER_NOT_FOUND, None,
    ]
    assert history[0].start_time < history[1].start_time
    assert {h.courier_name for h in history} == {"Sarah Levi"}


def test_history_survives_deleted_courier(system, ctx, order, courier):
    system.deliveries.open_delivery(order, courier)
    system.deliveries.close_delivery(order.id, DeliveryStatus.COMPLETED)
    ctx.couriers.delete(courier.id)

    [entry] = system.deliveries.history_for_order(order.id)
    assert entry.courier_name == UNKNOWN_COURIER
    assert entry.courier_id == courier.id


def test_open_and_close_notify_delivery_observers(system, ctx, order, courier):
    seen = []
    ctx.bus.deliveries.add_list_observer(lambda: seen.append("list"))
    delivery = system.deliveries.open_delivery(order, courier)
    ctx.bus.deliveries.add_item_observer(delivery.id, lambda item_id: seen.append(item_id))
    system.deliveries.close_delivery(order.id, DeliveryStatus.COMPLETED)
    assert seen == ["list", delivery.id, "list"]
