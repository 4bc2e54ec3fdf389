"""Simulation Engine — scripted ticks over the in-memory context.

Invariants:
    - rng is a ScriptedRandom: random() answers come from rng.rolls,
      randint() from rng.ints, choice() picks the first candidate

Tests cover:
    - idle courier assignment gated by the success and assign rolls
    - pick up on the next tick, completion only after travel + buffer
    - outcome split (deliver / refuse / cancel) and manager cancellation
    - cool-down after a completed delivery only
    - non-reentrant tick, per-courier error isolation, run_cycle clock step
    - run_cycle sweeps: inactivity and overdue deliveries
"""

from datetime import timedelta

import pytest

from courier_dispatch.core.domain_types import (
    CourierStatus, DeliveryStatus, OrderStatus, TimeUnit,
)

from tests.support import CLOCK


@pytest.fixture
def courier(system, make_courier):
    return system.couriers.create(make_courier())


@pytest.fixture
def order(system, make_order):
    return system.orders.create(make_order())


@pytest.fixture
def assigned(system, rng, courier, order):
    rng.rolls = [0.1, 0.2]
    system.engine.tick()
    return order


@pytest.fixture
def picked_up(system, assigned):
    system.engine.tick()
    return assigned


# ─── Assignment ─────────────────────────────────────────────────

def test_empty_system_ticks_quietly(system):
    report = system.engine.tick()
    assert not report.skipped
    assert report.mutations == 0


def test_idle_courier_takes_order_when_both_rolls_pass(system, rng, courier, order):
    rng.rolls = [0.1, 0.2]
    report = system.engine.tick()
    assert report.assigned == [(order.id, courier.id)]
    assert system.orders.read(order.id).status is OrderStatus.IN_PROGRESS
    assert system.couriers.status_of(courier.id) is CourierStatus.ON_ROUTE_FOR_PICKUP


@pytest.mark.parametrize("rolls", [[0.7, 0.0], [0.1, 0.6]])
def test_failed_roll_leaves_courier_idle(system, rng, courier, order, rolls):
    rng.rolls = rolls
    report = system.engine.tick()
    assert report.assigned == []
    assert system.orders.read(order.id).status is OrderStatus.OPEN


def test_out_of_range_order_is_not_assigned(system, rng, make_courier, make_order):
    system.couriers.create(make_courier(max_delivery_distance=1.0))
    system.orders.create(make_order())
    rng.rolls = [0.0, 0.0]
    assert system.engine.tick().assigned == []


def test_inactive_courier_is_not_simulated(system, rng, make_courier, order):
    system.couriers.create(make_courier(is_active=False))
    rng.rolls = [0.0, 0.0]
    assert system.engine.tick().assigned == []


# ─── Pick up and completion ─────────────────────────────────────

def test_assigned_order_is_picked_up_next_tick(system, assigned, courier):
    report = system.engine.tick()
    assert report.picked_up == [assigned.id]
    assert system.couriers.status_of(courier.id) is CourierStatus.ON_ROUTE_FOR_DELIVERY


def test_no_completion_before_travel_time(system, rng, picked_up):
    # ~6 minutes of driving plus a 5 minute buffer
    system.admin.forward_clock(10)
    rng.ints = [5]
    rng.rolls = [0.5]
    report = system.engine.tick()
    assert report.delivered == []
    assert report.cancelled == []
    assert system.orders.read(picked_up.id).status is OrderStatus.IN_PROGRESS


def test_delivery_after_travel_time(system, rng, picked_up):
    system.admin.forward_clock(20)
    rng.ints = [5]
    rng.rolls = [0.0]
    report = system.engine.tick()
    assert report.delivered == [picked_up.id]
    snapshot = system.orders.read(picked_up.id)
    assert snapshot.status is OrderStatus.DELIVERED
    assert snapshot.order.delivery_date == CLOCK + timedelta(minutes=20)


def test_refusal_outcome(system, rng, picked_up):
    system.admin.forward_clock(20)
    rng.ints = [5]
    rng.rolls = [0.92]
    report = system.engine.tick()
    assert report.refused == [picked_up.id]
    [delivery] = system.deliveries.deliveries_for_order(picked_up.id)
    assert delivery.completion_status is DeliveryStatus.CUSTOMER_REFUSED


def test_cancel_outcome(system, rng, picked_up):
    system.admin.forward_clock(20)
    rng.ints = [5]
    rng.rolls = [0.99]
    report = system.engine.tick()
    assert report.cancelled == [picked_up.id]
    assert system.orders.read(picked_up.id).status is OrderStatus.OPEN


def test_manager_cancellation_before_threshold(system, rng, picked_up):
    system.admin.forward_clock(2)
    rng.ints = [5]
    rng.rolls = [0.001]
    report = system.engine.tick()
    assert report.cancelled == [picked_up.id]


# ─── Cool-down ──────────────────────────────────────────────────

def test_courier_rests_as_long_as_last_delivery(system, rng, picked_up, courier, make_order):
    system.admin.forward_clock(20)
    rng.ints = [5]
    rng.rolls = [0.0]
    system.engine.tick()
    system.orders.create(make_order())

    system.admin.forward_clock(10)
    rng.rolls = [0.0, 0.0]
    report = system.engine.tick()
    assert report.cooling_down == [courier.id]
    assert report.assigned == []

    system.admin.forward_clock(10)
    rng.rolls = [0.0, 0.0]
    report = system.engine.tick()
    assert report.cooling_down == []
    assert len(report.assigned) == 1


def test_cancelled_attempt_earns_no_rest(system, rng, picked_up, courier):
    system.admin.forward_clock(20)
    rng.ints = [5]
    rng.rolls = [0.99]
    system.engine.tick()

    rng.rolls = [0.0, 0.0]
    report = system.engine.tick()
    assert report.cooling_down == []
    assert report.assigned == [(picked_up.id, courier.id)]


# ─── Concurrency and failures ───────────────────────────────────

def test_overlapping_tick_is_skipped(system, ctx, rng, courier, order):
    nested = []
    ctx.bus.orders.add_list_observer(lambda: nested.append(system.engine.tick()))
    rng.rolls = [0.1, 0.2]

    report = system.engine.tick()

    assert report.assigned == [(order.id, courier.id)]
    assert [r.skipped for r in nested] == [True]
    assert not system.engine.busy


def test_failure_is_isolated_per_courier(system, make_courier, make_order, monkeypatch):
    first = system.couriers.create(make_courier())
    second = system.couriers.create(make_courier(id=987654321, name="Ori Peretz"))
    order_a = system.orders.create(make_order())
    order_b = system.orders.create(make_order())
    system.orders.associate_courier_to_order(order_a.id, first.id)
    system.orders.associate_courier_to_order(order_b.id, second.id)

    original = system.orders.pick_up_order

    def flaky(order_id):
        if order_id == order_a.id:
            raise RuntimeError("store hiccup")
        return original(order_id)

    monkeypatch.setattr(system.orders, "pick_up_order", flaky)
    report = system.engine.tick()

    assert report.errors == 1
    assert report.picked_up == [order_b.id]


def test_run_cycle_advances_clock_by_interval(system, ctx):
    ctx.config.set("simulator_interval_minutes", 5)
    report = system.engine.run_cycle()
    assert report.clock == CLOCK + timedelta(minutes=5)
    assert ctx.now == CLOCK + timedelta(minutes=5)


def test_run_cycle_reports_swept_couriers(system, ctx, courier):
    ctx.config.set("inactivity_range", timedelta(minutes=1))
    report = system.engine.run_cycle()
    assert report.deactivated == []
    report = system.engine.run_cycle()
    assert report.deactivated == [courier.id]


def test_run_cycle_fails_overdue_deliveries(system, ctx, assigned):
    ctx.config.forward_clock(2, TimeUnit.HOUR)
    report = system.engine.run_cycle()

    assert report.expired == [assigned.id]
    first = system.deliveries.deliveries_for_order(assigned.id)[0]
    assert first.completion_status is DeliveryStatus.FAILED
    assert first.end_time == CLOCK + timedelta(hours=2, minutes=1)
