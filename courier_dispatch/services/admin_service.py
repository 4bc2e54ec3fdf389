"""Admin Service — clock, config, database reset/seed and simulator control.

Invariants:
    - Reset and initialize are refused while the simulator is running
    - start_simulator() optionally updates simulator_interval_minutes BEFORE the
      runner thread starts
    - Observer add/remove for clock and config goes through the NotificationBus
    - forward_clock() runs the same sweeps as a simulator cycle
"""

import logging
import random
from datetime import datetime

from courier_dispatch.core.domain_types import TimeUnit
from courier_dispatch.core.errors import InvalidValueError, SimulatorRunningError
from courier_dispatch.core.system_config import SystemConfig
from courier_dispatch.services.courier_registry import CourierRegistry
from courier_dispatch.services.dispatch_context import DispatchContext
from courier_dispatch.services.notification_bus import ListObserver
from courier_dispatch.services.order_lifecycle import OrderLifecycle
from courier_dispatch.services.seed_data import initialize_db, reset_db
from courier_dispatch.services.simulation_engine import (
    SimulationEngine, SimulatorRunner, TickReport,
)

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        ctx: DispatchContext,
        orders: OrderLifecycle,
        couriers: CourierRegistry,
        engine: SimulationEngine,
        tick_period_seconds: float = 1.0,
        seed: int | None = None,
    ):
        self._ctx = ctx
        self._orders = orders
        self._couriers = couriers
        self._engine = engine
        self._runner = SimulatorRunner(ctx, engine, tick_period_seconds)
        self._seed = seed

    # ─── Clock & config ─────────────────────────────────────────

    def get_clock(self) -> datetime:
        return self._ctx.config.clock

    def forward_clock(self, amount: int, unit: TimeUnit = TimeUnit.MINUTE) -> datetime:
        """Advance the clock, then run the inactivity and overdue-delivery sweeps."""
        new_clock = self._ctx.config.forward_clock(amount, unit)
        self._couriers.sweep_inactive(new_clock)
        self._orders.expire_overdue_deliveries(new_clock)
        return new_clock

    def get_config(self) -> SystemConfig:
        return self._ctx.config.get_config()

    def set_config(self, config: SystemConfig) -> list[str]:
        return self._ctx.config.set_config(config)

    # ─── Database ───────────────────────────────────────────────

    def _guard_simulator(self, operation: str) -> None:
        if self.simulator_running:
            raise SimulatorRunningError(operation)

    def reset_db(self) -> None:
        self._guard_simulator("reset the database")
        with self._ctx.bus.suppressed():
            reset_db(self._ctx)

    def initialize_db(self) -> dict:
        self._guard_simulator("initialize the database")
        rng = random.Random(self._seed) if self._seed is not None else random.Random()
        return initialize_db(self._ctx, self._orders, self._couriers, rng)

    # ─── Simulator ──────────────────────────────────────────────

    @property
    def simulator_running(self) -> bool:
        return self._runner.running

    def start_simulator(self, interval_minutes: int | None = None) -> None:
        if interval_minutes is not None:
            if interval_minutes < 1:
                raise InvalidValueError(
                    "Simulator interval must be at least 1 minute", "interval_minutes",
                )
            self._ctx.config.set("simulator_interval_minutes", interval_minutes)
        self._runner.start()

    def stop_simulator(self) -> None:
        self._runner.stop()

    def run_simulation_tick(self) -> TickReport:
        """One on-demand cycle (clock forward + sweep + tick)."""
        return self._engine.run_cycle()

    # ─── Observers ──────────────────────────────────────────────

    def add_clock_observer(self, observer: ListObserver) -> None:
        self._ctx.bus.clock.add_list_observer(observer)

    def remove_clock_observer(self, observer: ListObserver) -> None:
        self._ctx.bus.clock.remove_list_observer(observer)

    def add_config_observer(self, observer: ListObserver) -> None:
        self._ctx.bus.config.add_list_observer(observer)

    def remove_config_observer(self, observer: ListObserver) -> None:
        self._ctx.bus.config.remove_list_observer(observer)
