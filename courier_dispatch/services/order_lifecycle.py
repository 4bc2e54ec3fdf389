"""Order Lifecycle — order CRUD and the transition operations that move orders.

Invariants:
    - Status is NEVER stored: every read rebuilds an OrderSnapshot from source
      fields and delivery history (core/order_status.py)
    - Each operation is one ctx.mutation(): read -> derive -> check -> write,
      notifications flushed after the lock is released
    - Checks (core/enforce_order.py) run before the first write, so a rejected
      transition leaves nothing behind
    - Orders are only changed through these operations; update() cannot touch
      the courier association or progress dates

Design Decisions:
    - The DeliveryLedger writes inside the same mutation (open_in/close_in), so
      an order and its delivery change together under one lock
    - refuse_order() is terminal only for RestaurantFood; other order types
      are released back to Open for another courier
    - An attempt open longer than max_delivery_time is closed as Failed by
      expire_overdue_deliveries(), which the clock-forwarding paths run
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable

from courier_dispatch.core.domain_types import (
    DeliveryStatus, OrderId, OrderStatus, OrderType,
)
from courier_dispatch.core.enforce_order import (
    check_association, check_cancellable, check_completion, check_deletable,
    check_editable, check_failed_attempt, check_order_fields, check_pickup,
)
from courier_dispatch.core.entities import Courier, Order
from courier_dispatch.core.errors import (
    DispatchError, ErrorContext, InvalidValueError, NotFoundError,
)
from courier_dispatch.core.geo import company_location, haversine_km
from courier_dispatch.core.order_status import (
    OrderSnapshot, build_order_snapshot, derive_order_status,
)
from courier_dispatch.core.statistics import summarize_orders
from courier_dispatch.services.courier_registry import CourierRegistry
from courier_dispatch.services.delivery_ledger import (
    DeliveryHistoryEntry, DeliveryLedger,
)
from courier_dispatch.services.dispatch_context import DispatchContext, store_errors
from courier_dispatch.services.notification_bus import PendingNotifications

logger = logging.getLogger(__name__)

FAILED_ATTEMPT_STATUSES = frozenset({
    DeliveryStatus.CUSTOMER_NOT_FOUND, DeliveryStatus.FAILED,
})


class OrderLifecycle:
    def __init__(
        self,
        ctx: DispatchContext,
        ledger: DeliveryLedger | None = None,
        couriers: CourierRegistry | None = None,
    ):
        self._ctx = ctx
        self._ledger = ledger or DeliveryLedger(ctx)
        self._couriers = couriers or CourierRegistry(ctx, self._ledger)

    # ─── Lookups ────────────────────────────────────────────────

    def get(self, order_id: int) -> Order:
        with self._ctx.lock, store_errors("read_order"):
            order = self._ctx.orders.read(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _status(self, order: Order) -> OrderStatus:
        return derive_order_status(order, self._ledger.last_delivery(order.id))

    def _snapshot(self, order: Order) -> OrderSnapshot:
        config = self._ctx.config.get_config()
        courier = None
        if order.courier_id is not None:
            with store_errors("read_courier"):
                courier = self._ctx.couriers.read(order.courier_id)
        return build_order_snapshot(
            order,
            self._ledger.deliveries_for_order(order.id),
            courier,
            config,
            config.clock,
            company_location(config),
        )

    def _save(
        self, pending: PendingNotifications, order: Order, operation: str,
    ) -> Order:
        with store_errors(operation, ErrorContext(order_id=order.id)):
            self._ctx.orders.update(order)
        pending.changed(self._ctx.bus.orders, order.id)
        return order

    # ─── CRUD ───────────────────────────────────────────────────

    def create(self, order: Order, created_at: datetime | None = None) -> Order:
        """Persist a new Open order; created_at defaults to the virtual clock."""
        config = self._ctx.config.get_config()
        draft = replace(
            order.released(), id=OrderId(0),
            created_at=created_at or config.clock,
        )
        error = check_order_fields(draft, config)
        if error:
            raise error
        with self._ctx.mutation() as pending:
            with store_errors("create_order"):
                created = self._ctx.orders.create(draft)
            pending.changed(self._ctx.bus.orders, created.id)
        logger.info(f"Order {created.id} created", extra={"order_id": created.id})
        return created

    def read(self, order_id: int) -> OrderSnapshot:
        with self._ctx.lock:
            return self._snapshot(self.get(order_id))

    def read_all(
        self, predicate: Callable[[Order], bool] | None = None,
    ) -> list[OrderSnapshot]:
        with self._ctx.lock:
            with store_errors("read_orders"):
                orders = self._ctx.orders.read_all(predicate)
            return [self._snapshot(o) for o in orders]

    def update(self, order: Order) -> Order:
        """Edit descriptive fields of an Open order."""
        with self._ctx.mutation() as pending:
            stored = self.get(order.id)
            error = check_editable(stored, self._status(stored))
            if error:
                raise error
            merged = replace(
                order,
                created_at=stored.created_at,
                courier_id=stored.courier_id,
                courier_associated_date=stored.courier_associated_date,
                pickup_date=stored.pickup_date,
                delivery_date=stored.delivery_date,
            )
            error = check_order_fields(merged, self._ctx.config.get_config())
            if error:
                raise error
            self._save(pending, merged, "update_order")
        logger.info(f"Order {order.id} updated", extra={"order_id": order.id})
        return merged

    def delete(self, order_id: int) -> None:
        with self._ctx.mutation() as pending:
            order = self.get(order_id)
            error = check_deletable(
                order, self._status(order),
                len(self._ledger.deliveries_for_order(order.id)),
            )
            if error:
                raise error
            with store_errors("delete_order", ErrorContext(order_id=order_id)):
                self._ctx.orders.delete(order_id)
            pending.changed(self._ctx.bus.orders, order_id)
        logger.info(f"Order {order_id} deleted", extra={"order_id": order_id})

    # ─── Transitions ────────────────────────────────────────────

    def associate_courier_to_order(self, order_id: int, courier_id: int) -> Order:
        with self._ctx.mutation() as pending:
            order = self.get(order_id)
            courier = self._couriers.get(courier_id)
            error = check_association(
                order, courier,
                self._couriers.has_unfinished_order(courier_id),
                haversine_km(courier.location, order.location),
            )
            if error:
                raise error
            now = self._ctx.now
            associated = replace(
                order, courier_id=courier.id, courier_associated_date=now,
            )
            self._ledger.open_in(pending, associated, courier, now)
            self._save(pending, associated, "associate_courier")
            pending.changed(self._ctx.bus.couriers, courier.id)
        logger.info(
            f"Order {order_id} associated with courier {courier_id}",
            extra={"order_id": order_id, "courier_id": courier_id},
        )
        return associated

    def pick_up_order(self, order_id: int) -> Order:
        with self._ctx.mutation() as pending:
            order = self.get(order_id)
            error = check_pickup(order)
            if error:
                raise error
            picked = replace(order, pickup_date=self._ctx.now)
            self._save(pending, picked, "pick_up_order")
            pending.changed(self._ctx.bus.couriers, order.courier_id)
        logger.info(
            f"Order {order_id} picked up",
            extra={"order_id": order_id, "courier_id": order.courier_id},
        )
        return picked

    def deliver_order(self, order_id: int) -> Order:
        with self._ctx.mutation() as pending:
            order = self.get(order_id)
            error = check_completion(
                order, self._ledger.open_delivery_for_order(order.id), "deliver_order",
            )
            if error:
                raise error
            now = self._ctx.now
            self._ledger.close_in(
                pending, order.id, DeliveryStatus.COMPLETED, now,
                self._courier_distance(order),
            )
            delivered = self._save(
                pending, replace(order, delivery_date=now), "deliver_order",
            )
            pending.changed(self._ctx.bus.couriers, order.courier_id)
        logger.info(
            f"Order {order_id} delivered",
            extra={"order_id": order_id, "courier_id": order.courier_id},
        )
        return delivered

    def refuse_order(self, order_id: int) -> Order:
        """Customer refused. Food closes as OrderRefused; other types reopen."""
        with self._ctx.mutation() as pending:
            order = self.get(order_id)
            error = check_completion(
                order, self._ledger.open_delivery_for_order(order.id), "refuse_order",
            )
            if error:
                raise error
            now = self._ctx.now
            self._ledger.close_in(
                pending, order.id, DeliveryStatus.CUSTOMER_REFUSED, now,
                self._courier_distance(order),
            )
            if order.order_type is OrderType.RESTAURANT_FOOD:
                result = replace(order, delivery_date=now)
            else:
                result = order.released()
            self._save(pending, result, "refuse_order")
            pending.changed(self._ctx.bus.couriers, order.courier_id)
        logger.info(
            f"Order {order_id} refused by customer",
            extra={"order_id": order_id, "courier_id": order.courier_id},
        )
        return result

    def cancel_order(self, order_id: int) -> Order:
        """Close any open delivery as Cancelled and return the order to Open."""
        with self._ctx.mutation() as pending:
            order = self.get(order_id)
            error = check_cancellable(order)
            if error:
                raise error
            if self._ledger.open_delivery_for_order(order.id) is not None:
                self._ledger.close_in(
                    pending, order.id, DeliveryStatus.CANCELLED, self._ctx.now,
                )
            result = self._save(pending, order.released(), "cancel_order")
            if order.courier_id is not None:
                pending.changed(self._ctx.bus.couriers, order.courier_id)
        logger.info(
            f"Order {order_id} cancelled",
            extra={"order_id": order_id, "courier_id": order.courier_id},
        )
        return result

    def report_failed_attempt(
        self, order_id: int, status: DeliveryStatus = DeliveryStatus.CUSTOMER_NOT_FOUND,
    ) -> Order:
        """Close the open delivery as CustomerNotFound/Failed and reopen the order."""
        if status not in FAILED_ATTEMPT_STATUSES:
            raise InvalidValueError(
                f"{status.value} is not a failed-attempt status", "status",
            )
        with self._ctx.mutation() as pending:
            order = self.get(order_id)
            error = check_failed_attempt(
                order, self._ledger.open_delivery_for_order(order.id), status,
            )
            if error:
                raise error
            self._ledger.close_in(
                pending, order.id, status, self._ctx.now,
                self._courier_distance(order),
            )
            result = self._save(pending, order.released(), "report_failed_attempt")
            pending.changed(self._ctx.bus.couriers, order.courier_id)
        logger.info(
            f"Order {order_id} attempt closed as {status.value}",
            extra={"order_id": order_id, "courier_id": order.courier_id},
        )
        return result

    def expire_overdue_deliveries(self, now: datetime | None = None) -> list[OrderId]:
        """Close open deliveries older than max_delivery_time as Failed.

        Candidates are read under the lock; each one is then failed through
        report_failed_attempt in its own mutation. A delivery that closed in
        the meantime is skipped.
        """
        with self._ctx.lock:
            config = self._ctx.config.get_config()
            now = now or config.clock
            with store_errors("read_deliveries"):
                overdue = self._ctx.deliveries.read_all(
                    lambda d: d.is_open and now - d.start_time > config.max_delivery_time,
                )
        expired: list[OrderId] = []
        for delivery in overdue:
            try:
                self.report_failed_attempt(delivery.order_id, DeliveryStatus.FAILED)
            except DispatchError as e:
                logger.warning(
                    f"Could not expire delivery {delivery.id}: {e.message}",
                    extra={"order_id": delivery.order_id, "delivery_id": delivery.id,
                           "error_code": e.code},
                )
                continue
            expired.append(delivery.order_id)
        if expired:
            logger.info(f"Expired overdue deliveries for orders {expired}")
        return expired

    def _courier_distance(self, order: Order) -> float | None:
        if order.courier_id is None:
            return None
        with store_errors("read_courier"):
            courier = self._ctx.couriers.read(order.courier_id)
        if courier is None:
            return None
        return haversine_km(courier.location, order.location)

    # ─── Queries ────────────────────────────────────────────────

    def history(self, order_id: int) -> list[DeliveryHistoryEntry]:
        with self._ctx.lock:
            self.get(order_id)
            return self._ledger.history_for_order(OrderId(order_id))

    def available_orders_for_courier(self, courier_id: int) -> list[OrderSnapshot]:
        """Open orders the courier may take, nearest first."""
        with self._ctx.lock:
            courier = self._couriers.get(courier_id)
            snapshots = [
                s for s in self.read_all(lambda o: o.courier_id is None and not o.is_closed)
                if s.status is OrderStatus.OPEN
            ]
            return sorted(
                (s for s in snapshots if _within_range(courier, s.order)),
                key=lambda s: haversine_km(courier.location, s.order.location),
            )

    def status_summary(self) -> dict:
        return summarize_orders(self.read_all())


def _within_range(courier: Courier, order: Order) -> bool:
    if courier.max_delivery_distance is None:
        return True
    return haversine_km(courier.location, order.location) <= courier.max_delivery_distance
