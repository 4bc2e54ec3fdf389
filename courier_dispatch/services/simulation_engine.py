"""Simulation Engine — the periodic tick that drives couriers and orders on its own.

Invariants:
    - tick() is non-reentrant: an overlapping call returns a skipped report
      immediately (BusyFlag), it never waits
    - The tick snapshots under the lock, rolls dice outside it, and performs each
      mutation through one short OrderLifecycle call; it never holds the lock
      for the whole tick
    - Every mutation goes through OrderLifecycle: no second mutation path
    - Failures are per courier: logged and counted, never raised
    - An order is never completed before its physical travel time has elapsed

Design Decisions:
    - Pure rules in core/simulation_rules.py; this module only sequences them
    - SimulatorRunner owns one daemon thread and a stop Event checked every cycle;
      ctx.simulator_running is set for exactly the runner's lifetime. A stop()
      whose join times out leaves the flag set; the thread clears it on exit
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime

from courier_dispatch.core.domain_types import CourierId, DeliveryStatus, OrderId
from courier_dispatch.core.entities import Courier, Order
from courier_dispatch.core.errors import ConflictError, DispatchError
from courier_dispatch.core.geo import estimate_travel_time, haversine_km
from courier_dispatch.core.simulation_rules import (
    SimulatedOutcome, assignment_success_probability, completion_threshold,
    is_cooling_down, pick_outcome,
)
from courier_dispatch.core.system_config import SystemConfig
from courier_dispatch.infrastructure.concurrency import BusyFlag
from courier_dispatch.services.courier_registry import CourierRegistry
from courier_dispatch.services.delivery_ledger import DeliveryLedger
from courier_dispatch.services.dispatch_context import DispatchContext, store_errors
from courier_dispatch.services.order_lifecycle import OrderLifecycle

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    skipped: bool = False
    clock: datetime | None = None
    assigned: list[tuple[OrderId, CourierId]] = field(default_factory=list)
    picked_up: list[OrderId] = field(default_factory=list)
    delivered: list[OrderId] = field(default_factory=list)
    refused: list[OrderId] = field(default_factory=list)
    cancelled: list[OrderId] = field(default_factory=list)
    cooling_down: list[CourierId] = field(default_factory=list)
    deactivated: list[CourierId] = field(default_factory=list)
    expired: list[OrderId] = field(default_factory=list)
    errors: int = 0

    @property
    def mutations(self) -> int:
        return (
            len(self.assigned) + len(self.picked_up) + len(self.delivered)
            + len(self.refused) + len(self.cancelled)
        )


class SimulationEngine:
    def __init__(
        self,
        ctx: DispatchContext,
        orders: OrderLifecycle | None = None,
        couriers: CourierRegistry | None = None,
        ledger: DeliveryLedger | None = None,
    ):
        self._ctx = ctx
        self._ledger = ledger or DeliveryLedger(ctx)
        self._couriers = couriers or CourierRegistry(ctx, self._ledger)
        self._orders = orders or OrderLifecycle(ctx, self._ledger, self._couriers)
        self._busy = BusyFlag()
        self._tick_count = 0

    @property
    def busy(self) -> bool:
        return self._busy.busy

    def run_cycle(self) -> TickReport:
        """Forward the clock by one simulator interval, run both sweeps, then tick."""
        interval = self._ctx.config.get_config().simulator_interval_minutes
        self._ctx.config.forward_clock(interval)
        deactivated = self._couriers.sweep_inactive()
        expired = self._orders.expire_overdue_deliveries()
        report = self.tick()
        report.deactivated.extend(deactivated)
        report.expired.extend(expired)
        return report

    def tick(self) -> TickReport:
        with self._busy.hold_if_free() as acquired:
            if not acquired:
                logger.debug("Simulation tick skipped: previous tick still running")
                return TickReport(skipped=True)
            self._tick_count += 1
            return self._run_tick()

    # ─── One tick ───────────────────────────────────────────────

    def _run_tick(self) -> TickReport:
        with self._ctx.lock, store_errors("simulation_snapshot"):
            config = self._ctx.config.get_config()
            couriers = self._ctx.couriers.read_all(lambda c: c.is_active)
            orders = self._ctx.orders.read_all(lambda o: not o.is_closed)

        report = TickReport(clock=config.clock)
        if not couriers or not orders:
            return report

        current = {o.courier_id: o for o in orders if o.courier_id is not None}
        unassigned = [o for o in orders if o.courier_id is None]
        for courier in couriers:
            try:
                order = current.get(courier.id)
                if order is None:
                    self._idle_step(courier, unassigned, config, report)
                else:
                    self._busy_step(courier, order, config, report)
            except DispatchError as e:
                report.errors += 1
                logger.warning(
                    f"Simulation step failed for courier {courier.id}: {e.message}",
                    extra={"courier_id": courier.id, "error_code": e.code,
                           "tick": self._tick_count},
                )
            except Exception:
                report.errors += 1
                logger.warning(
                    f"Simulation step crashed for courier {courier.id}",
                    extra={"courier_id": courier.id, "tick": self._tick_count},
                    exc_info=True,
                )
        if report.mutations:
            logger.info(
                f"Tick {self._tick_count}: {report.mutations} changes",
                extra={"tick": self._tick_count},
            )
        return report

    def _idle_step(
        self,
        courier: Courier,
        unassigned: list[Order],
        config: SystemConfig,
        report: TickReport,
    ) -> None:
        last_completed = self._ledger.last_closed_for_courier(
            courier.id, DeliveryStatus.COMPLETED,
        )
        if is_cooling_down(last_completed, config.clock):
            report.cooling_down.append(courier.id)
            return
        rng, tuning = self._ctx.rng, self._ctx.tuning
        success = assignment_success_probability(
            tuning.failure_rate_per_minute, config.simulator_interval_minutes,
        )
        if rng.random() >= success or rng.random() >= tuning.assign_probability:
            return
        candidates = [o for o in unassigned if _in_range(courier, o)]
        if not candidates:
            return
        order = rng.choice(candidates)
        self._orders.associate_courier_to_order(order.id, courier.id)
        unassigned.remove(order)
        report.assigned.append((order.id, courier.id))

    def _busy_step(
        self,
        courier: Courier,
        order: Order,
        config: SystemConfig,
        report: TickReport,
    ) -> None:
        if order.pickup_date is None:
            self._orders.pick_up_order(order.id)
            report.picked_up.append(order.id)
            return
        rng, tuning = self._ctx.rng, self._ctx.tuning
        travel = estimate_travel_time(
            config, courier.location, order.location, courier.delivery_type,
        )
        threshold = completion_threshold(
            travel, rng.randint(tuning.min_buffer_minutes, tuning.max_buffer_minutes),
        )
        started = order.pickup_date or order.courier_associated_date
        if config.clock - started > threshold:
            outcome = pick_outcome(tuning, rng.random())
            if outcome is SimulatedOutcome.DELIVER:
                self._orders.deliver_order(order.id)
                report.delivered.append(order.id)
            elif outcome is SimulatedOutcome.REFUSE:
                self._orders.refuse_order(order.id)
                report.refused.append(order.id)
            else:
                self._orders.cancel_order(order.id)
                report.cancelled.append(order.id)
        elif rng.random() < tuning.manager_cancel_probability:
            self._orders.cancel_order(order.id)
            report.cancelled.append(order.id)


def _in_range(courier: Courier, order: Order) -> bool:
    if courier.max_delivery_distance is None:
        return True
    return haversine_km(courier.location, order.location) <= courier.max_delivery_distance


class SimulatorRunner:
    """Runs SimulationEngine.run_cycle() on a daemon thread until stopped."""

    def __init__(
        self,
        ctx: DispatchContext,
        engine: SimulationEngine,
        tick_period_seconds: float = 1.0,
    ):
        self._ctx = ctx
        self._engine = engine
        self.tick_period_seconds = tick_period_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._state_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._state_lock:
            if self.running:
                raise ConflictError("Simulator is already running")
            self._stop.clear()
            self._ctx.simulator_running.set()
            self._thread = threading.Thread(
                target=self._loop, name="dispatch-simulator", daemon=True,
            )
            self._thread.start()
        logger.info(
            f"Simulator started (every {self.tick_period_seconds}s)",
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._state_lock:
            thread = self._thread
            self._stop.set()
            if thread is not None:
                thread.join(timeout)
                if thread.is_alive():
                    logger.warning(
                        f"Simulator thread still running after {timeout}s; "
                        "manual changes stay locked until its cycle ends",
                    )
                    return
            self._thread = None
            self._ctx.simulator_running.clear()
        if thread is not None:
            logger.info("Simulator stopped")

    def _loop(self) -> None:
        while not self._stop.wait(self.tick_period_seconds):
            try:
                self._engine.run_cycle()
            except Exception:
                logger.error("Simulator cycle failed", exc_info=True)
        self._ctx.simulator_running.clear()
