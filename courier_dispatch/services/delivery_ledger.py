"""Delivery Ledger — opens and closes Delivery records and serves delivery history.

Invariants:
    - At most one open delivery (end_time is None) per order
    - delivery_type is copied from the courier when the delivery is opened and
      never rewritten afterwards
    - completion_status and end_time are written together (Delivery.closed)
    - history_for_order() never fails on a missing courier; it shows "Unknown"

Design Decisions:
    - open_in()/close_in() run inside a caller's mutation and queue notifications
      on the caller's PendingNotifications; OrderLifecycle uses them so one
      transition is one locked section with one flush
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from courier_dispatch.core.domain_types import (
    CourierId, DeliveryId, DeliveryStatus, DeliveryType, OrderId,
)
from courier_dispatch.core.entities import Courier, Delivery, Order
from courier_dispatch.core.errors import (
    ConflictError, DispatchError, ErrorContext, InvalidValueError, NotFoundError,
)
from courier_dispatch.services.dispatch_context import DispatchContext, store_errors
from courier_dispatch.services.notification_bus import PendingNotifications

logger = logging.getLogger(__name__)

UNKNOWN_COURIER = "Unknown"


@dataclass(frozen=True)
class DeliveryHistoryEntry:
    delivery_id: DeliveryId
    courier_id: CourierId
    courier_name: str
    delivery_type: DeliveryType
    start_time: datetime
    end_time: datetime | None
    completion_status: DeliveryStatus | None
    actual_distance: float | None


def _sort_key(delivery: Delivery):
    return (delivery.start_time, delivery.id)


class DeliveryLedger:
    def __init__(self, ctx: DispatchContext):
        self._ctx = ctx

    # ─── Reads ──────────────────────────────────────────────────

    def read(self, delivery_id: int) -> Delivery:
        with self._ctx.lock, store_errors("read_delivery"):
            delivery = self._ctx.deliveries.read(delivery_id)
        if delivery is None:
            raise NotFoundError("Delivery", delivery_id)
        return delivery

    def read_all(self, predicate=None) -> list[Delivery]:
        with self._ctx.lock, store_errors("read_deliveries"):
            return self._ctx.deliveries.read_all(predicate)

    def open_delivery_for_order(self, order_id: OrderId) -> Delivery | None:
        with self._ctx.lock, store_errors("read_delivery"):
            return self._ctx.deliveries.read_where(
                lambda d: d.order_id == order_id and d.is_open,
            )

    def open_delivery_for_courier(self, courier_id: CourierId) -> Delivery | None:
        with self._ctx.lock, store_errors("read_delivery"):
            return self._ctx.deliveries.read_where(
                lambda d: d.courier_id == courier_id and d.is_open,
            )

    def deliveries_for_order(self, order_id: OrderId) -> list[Delivery]:
        with self._ctx.lock, store_errors("read_deliveries"):
            found = self._ctx.deliveries.read_all(lambda d: d.order_id == order_id)
        return sorted(found, key=_sort_key)

    def deliveries_for_courier(self, courier_id: CourierId) -> list[Delivery]:
        with self._ctx.lock, store_errors("read_deliveries"):
            found = self._ctx.deliveries.read_all(
                lambda d: d.courier_id == courier_id,
            )
        return sorted(found, key=_sort_key)

    def last_delivery(self, order_id: OrderId) -> Delivery | None:
        found = self.deliveries_for_order(order_id)
        return found[-1] if found else None

    def last_closed_for_courier(
        self, courier_id: CourierId, status: DeliveryStatus | None = None,
    ) -> Delivery | None:
        """Latest-ending closed delivery, optionally only those closed as status."""
        closed = [
            d for d in self.deliveries_for_courier(courier_id)
            if not d.is_open and (status is None or d.completion_status is status)
        ]
        return max(closed, key=lambda d: d.end_time) if closed else None

    def history_for_order(self, order_id: OrderId) -> list[DeliveryHistoryEntry]:
        with self._ctx.lock:
            deliveries = self.deliveries_for_order(order_id)
            entries = []
            for d in deliveries:
                try:
                    with store_errors("read_courier"):
                        courier = self._ctx.couriers.read(d.courier_id)
                except DispatchError:
                    logger.warning(
                        f"Courier lookup failed for delivery {d.id}",
                        extra={"delivery_id": d.id}, exc_info=True,
                    )
                    courier = None
                entries.append(DeliveryHistoryEntry(
                    delivery_id=d.id,
                    courier_id=d.courier_id,
                    courier_name=courier.name if courier else UNKNOWN_COURIER,
                    delivery_type=d.delivery_type,
                    start_time=d.start_time,
                    end_time=d.end_time,
                    completion_status=d.completion_status,
                    actual_distance=d.actual_distance,
                ))
        return entries

    # ─── Writes inside a caller's mutation ──────────────────────

    def open_in(
        self,
        pending: PendingNotifications,
        order: Order,
        courier: Courier,
        now: datetime,
    ) -> Delivery:
        ctx = ErrorContext(
            order_id=order.id, courier_id=courier.id, operation="open_delivery",
        )
        if self.open_delivery_for_order(order.id) is not None:
            raise ConflictError(f"Order {order.id} already has an open delivery", ctx)
        with store_errors("open_delivery", ctx):
            delivery = self._ctx.deliveries.create(Delivery(
                id=DeliveryId(0),
                order_id=order.id,
                courier_id=courier.id,
                delivery_type=courier.delivery_type,
                start_time=now,
            ))
        logger.info(
            f"Delivery {delivery.id} opened",
            extra={
                "delivery_id": delivery.id, "order_id": order.id,
                "courier_id": courier.id,
            },
        )
        pending.changed(self._ctx.bus.deliveries, delivery.id)
        return delivery

    def close_in(
        self,
        pending: PendingNotifications,
        order_id: OrderId,
        status: DeliveryStatus,
        now: datetime,
        actual_distance: float | None = None,
    ) -> Delivery:
        ctx = ErrorContext(order_id=order_id, operation="close_delivery")
        open_delivery = self.open_delivery_for_order(order_id)
        if open_delivery is None:
            raise InvalidValueError(
                f"Order {order_id} has no open delivery to close", None, ctx,
            )
        closed = open_delivery.closed(status, now, actual_distance)
        with store_errors("close_delivery", ctx):
            self._ctx.deliveries.update(closed)
        logger.info(
            f"Delivery {closed.id} closed as {status.value}",
            extra={
                "delivery_id": closed.id, "order_id": order_id,
                "courier_id": closed.courier_id,
            },
        )
        pending.changed(self._ctx.bus.deliveries, closed.id)
        return closed

    # ─── Standalone writes ──────────────────────────────────────

    def open_delivery(self, order: Order, courier: Courier) -> Delivery:
        with self._ctx.mutation() as pending:
            return self.open_in(pending, order, courier, self._ctx.now)

    def close_delivery(
        self,
        order_id: OrderId,
        status: DeliveryStatus,
        actual_distance: float | None = None,
    ) -> Delivery:
        with self._ctx.mutation() as pending:
            return self.close_in(
                pending, order_id, status, self._ctx.now, actual_distance,
            )
