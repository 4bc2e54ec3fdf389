"""Root conftest — shared fixtures for core, service and API tests.

Invariants:
    - Every test gets a fresh in-memory DispatchContext at CLOCK
    - make_order / make_courier return plain entities (not persisted)
    - rng is a ScriptedRandom: tests queue exact rolls for simulation steps

Design Decisions:
    - Factories as fixtures returning callables: tests override only the
      fields they care about
"""

import os
from dataclasses import replace

import pytest

# Keep a developer's .env from switching tests onto a real database
os.environ.setdefault("DISPATCH_STORE_BACKEND", "memory")
os.environ.setdefault("DISPATCH_SEED_ON_STARTUP", "false")

from courier_dispatch.core.domain_types import (  # noqa: E402
    CourierId, DeliveryType, OrderId, OrderType,
)
from courier_dispatch.core.entities import Courier, Order  # noqa: E402
from courier_dispatch.core.system_config import SystemConfig  # noqa: E402
from courier_dispatch.services.dispatch_context import build_memory_context  # noqa: E402
from courier_dispatch.services.dispatch_system import assemble  # noqa: E402
from tests.support import (  # noqa: E402
    CLOCK, CUSTOMER_LOCATION, NEARBY_LOCATION, ScriptedRandom,
)


@pytest.fixture
def config() -> SystemConfig:
    return SystemConfig(clock=CLOCK)


@pytest.fixture
def make_order():
    def _make(**overrides) -> Order:
        order = Order(
            id=OrderId(1),
            order_type=OrderType.GROCERIES,
            address="Herzl 45, Tel Aviv, Israel",
            latitude=CUSTOMER_LOCATION.latitude,
            longitude=CUSTOMER_LOCATION.longitude,
            customer_name="Dan Israeli",
            customer_phone="0501234567",
            weight=2.5,
            created_at=CLOCK,
        )
        return replace(order, **overrides)
    return _make


@pytest.fixture
def make_courier():
    def _make(**overrides) -> Courier:
        courier = Courier(
            id=CourierId(123456782),
            name="Sarah Levi",
            phone="0529876543",
            email="sarah@delivery.com",
            delivery_type=DeliveryType.CAR,
            start_working_date=CLOCK,
            location=NEARBY_LOCATION,
        )
        return replace(courier, **overrides)
    return _make


@pytest.fixture
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def ctx(config, rng):
    return build_memory_context(config, rng=rng)


@pytest.fixture
def system(ctx):
    """Fully wired in-memory DispatchSystem (no geocoder)."""
    dispatch = assemble(ctx, tick_period_seconds=0.01, seed=11)
    yield dispatch
    dispatch.shutdown()
