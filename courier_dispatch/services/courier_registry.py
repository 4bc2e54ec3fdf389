"""Courier Registry — courier CRUD, derived status, and the inactivity sweep.

Invariants:
    - Every mutation validates BEFORE writing and runs in one ctx.mutation()
    - On-route statuses are derived from the open delivery, never settable
    - A courier with an unfinished order (courier_id set, delivery_date None)
      cannot be deactivated or deleted; an active courier cannot be deleted
    - sweep_inactive() notifies only for couriers it actually changed
    - Manual mutations are refused while the simulator thread is running
    - calculate_salary() reads under the dispatch lock and prices outside it

Design Decisions:
    - Unfinished orders read straight from the order repository, not through
      OrderLifecycle, so the registry has no dependency on the lifecycle service
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable

from courier_dispatch.core.courier_status import (
    check_courier_fields, check_deletable, check_status_change,
    derive_courier_status, is_inactivity_expired,
)
from courier_dispatch.core.domain_types import CourierId, CourierStatus, OrderId
from courier_dispatch.core.entities import Courier, Location
from courier_dispatch.core.errors import (
    AlreadyExistsError, ErrorContext, InvalidValueError, NotFoundError,
    SimulatorRunningError,
)
from courier_dispatch.core.geo import company_location, is_valid_location
from courier_dispatch.core.statistics import (
    DEFAULT_SALARY_RATES, CourierSalary, CourierStats, SalaryRates,
    courier_salary, courier_stats,
)
from courier_dispatch.services.delivery_ledger import DeliveryLedger
from courier_dispatch.services.dispatch_context import DispatchContext, store_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CourierSnapshot:
    courier: Courier
    status: CourierStatus
    current_order_id: OrderId | None
    stats: CourierStats


class CourierRegistry:
    def __init__(self, ctx: DispatchContext, ledger: DeliveryLedger | None = None):
        self._ctx = ctx
        self._ledger = ledger or DeliveryLedger(ctx)

    # ─── Guards & lookups ───────────────────────────────────────

    def _guard_simulator(self, operation: str) -> None:
        if self._ctx.simulator_running.is_set():
            raise SimulatorRunningError(operation)

    def get(self, courier_id: int) -> Courier:
        with self._ctx.lock, store_errors("read_courier"):
            courier = self._ctx.couriers.read(courier_id)
        if courier is None:
            raise NotFoundError("Courier", courier_id)
        return courier

    def current_order_id(self, courier_id: int) -> OrderId | None:
        with self._ctx.lock, store_errors("read_orders"):
            order = self._ctx.orders.read_where(
                lambda o: o.courier_id == courier_id and o.delivery_date is None,
            )
        return order.id if order else None

    def has_unfinished_order(self, courier_id: int) -> bool:
        return self.current_order_id(courier_id) is not None

    # ─── Reads ──────────────────────────────────────────────────

    def _snapshot(self, courier: Courier) -> CourierSnapshot:
        open_delivery = self._ledger.open_delivery_for_courier(courier.id)
        current = None
        if open_delivery is not None:
            with store_errors("read_order"):
                current = self._ctx.orders.read(open_delivery.order_id)
        deliveries = self._ledger.deliveries_for_courier(courier.id)
        with store_errors("read_orders"):
            order_ids = {d.order_id for d in deliveries}
            orders = {
                o.id: o for o in self._ctx.orders.read_all(lambda o: o.id in order_ids)
            }
        config = self._ctx.config.get_config()
        return CourierSnapshot(
            courier=courier,
            status=derive_courier_status(courier, open_delivery, current),
            current_order_id=self.current_order_id(courier.id),
            stats=courier_stats(deliveries, orders, config.max_delivery_time),
        )

    def read(self, courier_id: int) -> CourierSnapshot:
        with self._ctx.lock:
            return self._snapshot(self.get(courier_id))

    def read_all(
        self, predicate: Callable[[Courier], bool] | None = None,
    ) -> list[CourierSnapshot]:
        with self._ctx.lock:
            with store_errors("read_couriers"):
                couriers = self._ctx.couriers.read_all(predicate)
            return [self._snapshot(c) for c in couriers]

    def status_of(self, courier_id: int) -> CourierStatus:
        return self.read(courier_id).status

    def calculate_salary(
        self,
        courier_id: int,
        period_start: datetime,
        period_end: datetime,
        rates: SalaryRates = DEFAULT_SALARY_RATES,
    ) -> CourierSalary:
        if period_end < period_start:
            raise InvalidValueError(
                "Salary period ends before it starts", "period_end",
                ErrorContext(courier_id=courier_id, operation="calculate_salary"),
            )
        with self._ctx.lock:
            courier = self.get(courier_id)
            deliveries = self._ledger.deliveries_for_courier(courier.id)
            order_ids = {d.order_id for d in deliveries}
            with store_errors("read_orders"):
                orders = {
                    o.id: o
                    for o in self._ctx.orders.read_all(lambda o: o.id in order_ids)
                }
            config = self._ctx.config.get_config()
        return courier_salary(
            courier.id, deliveries, orders, period_start, period_end,
            config.max_delivery_time, company_location(config), rates,
        )

    # ─── Mutations ──────────────────────────────────────────────

    def create(self, courier: Courier) -> Courier:
        self._guard_simulator("add a courier")
        error = check_courier_fields(courier)
        if error:
            raise error
        with self._ctx.mutation() as pending:
            with store_errors("create_courier", ErrorContext(courier_id=courier.id)):
                if self._ctx.couriers.read(courier.id) is not None:
                    raise AlreadyExistsError("Courier", courier.id)
                created = self._ctx.couriers.create(courier)
            pending.changed(self._ctx.bus.couriers, created.id)
        logger.info(f"Courier {created.id} created", extra={"courier_id": created.id})
        return created

    def update(self, courier: Courier) -> Courier:
        """Merge editable fields over the stored courier."""
        self._guard_simulator("update a courier")
        error = check_courier_fields(courier)
        if error:
            raise error
        with self._ctx.mutation() as pending:
            stored = self.get(courier.id)
            merged = replace(courier, start_working_date=stored.start_working_date)
            if stored.is_active and not merged.is_active:
                error = check_status_change(
                    stored, CourierStatus.INACTIVE,
                    self.has_unfinished_order(stored.id),
                )
                if error:
                    raise error
            with store_errors("update_courier", ErrorContext(courier_id=courier.id)):
                self._ctx.couriers.update(merged)
            pending.changed(self._ctx.bus.couriers, merged.id)
        logger.info(f"Courier {merged.id} updated", extra={"courier_id": merged.id})
        return merged

    def update_location(self, courier_id: int, location: Location) -> Courier:
        self._guard_simulator("move a courier")
        if not is_valid_location(location):
            raise InvalidValueError(
                "Location must be within [-90,90] x [-180,180]", "location",
                ErrorContext(courier_id=courier_id),
            )
        with self._ctx.mutation() as pending:
            moved = replace(self.get(courier_id), location=location)
            with store_errors("update_courier", ErrorContext(courier_id=courier_id)):
                self._ctx.couriers.update(moved)
            pending.changed(self._ctx.bus.couriers, courier_id)
        return moved

    def set_courier_status(self, courier_id: int, status: CourierStatus) -> Courier:
        self._guard_simulator("change courier status")
        with self._ctx.mutation() as pending:
            courier = self.get(courier_id)
            error = check_status_change(
                courier, status, self.has_unfinished_order(courier_id),
            )
            if error:
                raise error
            is_active = status is not CourierStatus.INACTIVE
            if courier.is_active == is_active:
                return courier
            updated = replace(courier, is_active=is_active)
            with store_errors("update_courier", ErrorContext(courier_id=courier_id)):
                self._ctx.couriers.update(updated)
            pending.changed(self._ctx.bus.couriers, courier_id)
        logger.info(
            f"Courier {courier_id} set to {status.value}",
            extra={"courier_id": courier_id},
        )
        return updated

    def delete(self, courier_id: int) -> None:
        self._guard_simulator("delete a courier")
        with self._ctx.mutation() as pending:
            courier = self.get(courier_id)
            error = check_deletable(courier, self.has_unfinished_order(courier_id))
            if error:
                raise error
            with store_errors("delete_courier", ErrorContext(courier_id=courier_id)):
                self._ctx.couriers.delete(courier_id)
            pending.changed(self._ctx.bus.couriers, courier_id)
        logger.info(f"Courier {courier_id} deleted", extra={"courier_id": courier_id})

    def sweep_inactive(self, now: datetime | None = None) -> list[CourierId]:
        """Deactivate idle couriers past the inactivity range. Returns their ids."""
        changed: list[CourierId] = []
        with self._ctx.mutation() as pending:
            config = self._ctx.config.get_config()
            now = now or config.clock
            with store_errors("read_couriers"):
                candidates = self._ctx.couriers.read_all(
                    lambda c: is_inactivity_expired(c, now, config.inactivity_range),
                )
            for courier in candidates:
                if self.has_unfinished_order(courier.id):
                    continue
                with store_errors("update_courier", ErrorContext(courier_id=courier.id)):
                    self._ctx.couriers.update(replace(courier, is_active=False))
                pending.item(self._ctx.bus.couriers, courier.id)
                changed.append(courier.id)
            if changed:
                pending.list_changed(self._ctx.bus.couriers)
        if changed:
            logger.info(f"Inactivity sweep deactivated couriers {changed}")
        return changed
