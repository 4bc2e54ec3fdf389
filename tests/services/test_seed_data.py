"""Seed Data — demo company, couriers, orders and delivery history.

Tests cover:
    - initialize_db summary and company config
    - generated courier ids carry a valid check digit; phones are well formed
    - delivery history exists and the clock moved forward to produce it
    - same seed, same data; reset clears everything
"""

import random
import re
from datetime import timedelta

import pytest

from courier_dispatch.core.domain_types import OrderStatus
from courier_dispatch.services.seed_data import (
    COMPANY_ADDRESS, courier_id, phone_number,
)

from tests.support import CLOCK


def _check_digit_ok(number: int) -> bool:
    total = 0
    for index, char in enumerate(str(number)):
        value = int(char) * (1 if index % 2 == 0 else 2)
        total += value - 9 if value > 9 else value
    return total % 10 == 0


@pytest.fixture
def seeded(system):
    return system.admin.initialize_db()


def test_summary_counts(seeded):
    assert seeded["couriers"] == 16
    assert seeded["orders"] == 22
    assert 0 < seeded["active_couriers"] <= 16


def test_company_location_is_configured(system, seeded):
    config = system.admin.get_config()
    assert config.company_address == COMPANY_ADDRESS
    assert config.company_latitude is not None
    assert config.max_delivery_distance == 50.0


def test_clock_moves_forward_to_build_history(system, seeded):
    assert system.admin.get_clock() == CLOCK + timedelta(hours=1)


def test_some_orders_have_history(system, seeded):
    by_status = {}
    for snapshot in system.orders.read_all():
        by_status.setdefault(snapshot.status, []).append(snapshot)
    assert OrderStatus.DELIVERED in by_status
    assert OrderStatus.OPEN in by_status
    for snapshot in by_status[OrderStatus.DELIVERED]:
        assert system.orders.history(snapshot.order.id)[-1].end_time is not None


def test_seeded_couriers_are_valid(system, seeded):
    couriers = system.couriers.read_all()
    assert len(couriers) == 16
    for snapshot in couriers:
        assert _check_digit_ok(snapshot.courier.id)
        assert snapshot.courier.start_working_date < CLOCK


def test_seed_is_deterministic(system):
    system.admin.initialize_db()
    first = sorted(s.courier.id for s in system.couriers.read_all())
    system.admin.initialize_db()
    second = sorted(s.courier.id for s in system.couriers.read_all())
    assert first == second


def test_reset_clears_everything(system, seeded):
    system.admin.reset_db()
    assert system.orders.read_all() == []
    assert system.couriers.read_all() == []
    assert system.deliveries.read_all() == []
    assert system.admin.get_config().company_address is None


def test_reset_sends_one_list_notification(system, ctx, seeded):
    calls = []
    ctx.bus.orders.add_list_observer(lambda: calls.append(1))
    system.admin.reset_db()
    assert calls == [1]


def test_courier_id_generator():
    taken = set()
    rng = random.Random(3)
    ids = [courier_id(rng, taken) for _ in range(50)]
    assert len(set(ids)) == 50
    assert all(100_000_000 <= i <= 999_999_999 for i in ids)
    assert all(_check_digit_ok(i) for i in ids)


def test_phone_number_format():
    rng = random.Random(5)
    for _ in range(20):
        assert re.fullmatch(r"05\d{8}", phone_number(rng))
