"""Dispatch System — wires one DispatchContext to every service.

Invariants:
    - All services of one system share the same context, ledger and registry
    - build_dispatch_system() is the only place Settings are turned into objects
"""

import random
from dataclasses import dataclass

from courier_dispatch.config import Settings
from courier_dispatch.infrastructure.geocoding import GeocodingClient
from courier_dispatch.services.admin_service import AdminService
from courier_dispatch.services.courier_registry import CourierRegistry
from courier_dispatch.services.delivery_ledger import DeliveryLedger
from courier_dispatch.services.dispatch_context import (
    DispatchContext, build_memory_context, build_sql_context,
)
from courier_dispatch.services.order_lifecycle import OrderLifecycle
from courier_dispatch.services.simulation_engine import SimulationEngine


@dataclass
class DispatchSystem:
    ctx: DispatchContext
    deliveries: DeliveryLedger
    couriers: CourierRegistry
    orders: OrderLifecycle
    engine: SimulationEngine
    admin: AdminService
    geocoder: GeocodingClient | None = None

    def shutdown(self) -> None:
        self.admin.stop_simulator()
        self.ctx.dispose()


def assemble(
    ctx: DispatchContext,
    tick_period_seconds: float = 1.0,
    seed: int | None = None,
    geocoder: GeocodingClient | None = None,
) -> DispatchSystem:
    ledger = DeliveryLedger(ctx)
    couriers = CourierRegistry(ctx, ledger)
    orders = OrderLifecycle(ctx, ledger, couriers)
    engine = SimulationEngine(ctx, orders, couriers, ledger)
    admin = AdminService(ctx, orders, couriers, engine, tick_period_seconds, seed)
    return DispatchSystem(ctx, ledger, couriers, orders, engine, admin, geocoder)


def build_dispatch_system(settings: Settings) -> DispatchSystem:
    rng = random.Random(settings.simulation_seed)
    tuning = settings.simulation_tuning()
    if settings.store_backend == "sql":
        ctx = build_sql_context(settings.database_url, rng=rng, tuning=tuning)
    else:
        ctx = build_memory_context(rng=rng, tuning=tuning)
    geocoder = GeocodingClient(
        settings.geocoding_base_url,
        settings.routing_base_url,
        settings.geocoding_timeout_seconds,
        cache_size=settings.geocoding_cache_size,
    )
    return assemble(
        ctx, settings.simulator_tick_seconds, settings.simulation_seed, geocoder,
    )
