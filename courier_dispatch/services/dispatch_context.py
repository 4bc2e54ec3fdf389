"""Dispatch Context — the explicit, process-scoped state every service operates on.

Invariants:
    - There is no module-level mutable domain state: repositories, config, lock,
      observers, RNG and the simulator flag all live on one DispatchContext
    - mutation() holds the coarse RLock for the whole read -> derive -> validate
      -> write sequence, and flushes queued notifications only after releasing it
    - A mutation that raises flushes nothing
    - store_errors() converts StoreError signals into domain errors at the
      service boundary

Design Decisions:
    - RLock (not Lock): a locked lifecycle operation may call another locked
      operation (cancel -> ledger close) without self-deadlock
    - RNG on the context: tests inject a seeded/scripted Random
"""

import logging
import random
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterator

from courier_dispatch.core.errors import (
    AlreadyExistsError, ErrorContext, NotFoundError, OperationFailedError,
    RecordExistsError, RecordMissingError, StoreError,
)
from courier_dispatch.core.repository_protocols import (
    ConfigRepository, CourierRepository, DeliveryRepository, OrderRepository,
)
from courier_dispatch.core.simulation_rules import SimulationTuning
from courier_dispatch.core.system_config import SystemConfig
from courier_dispatch.services.config_store import ConfigStore
from courier_dispatch.services.notification_bus import (
    NotificationBus, PendingNotifications,
)

logger = logging.getLogger(__name__)


@dataclass
class DispatchContext:
    orders: OrderRepository
    couriers: CourierRepository
    deliveries: DeliveryRepository
    config: ConfigStore
    bus: NotificationBus
    rng: random.Random = field(default_factory=random.Random)
    tuning: SimulationTuning = field(default_factory=SimulationTuning)
    lock: threading.RLock = field(default_factory=threading.RLock)
    simulator_running: threading.Event = field(default_factory=threading.Event)
    health_check: Callable[[], bool] = lambda: True
    dispose: Callable[[], None] = lambda: None

    @property
    def now(self) -> datetime:
        return self.config.clock

    @contextmanager
    def mutation(self) -> Iterator[PendingNotifications]:
        pending = PendingNotifications()
        with self.lock:
            yield pending
        pending.flush()


@contextmanager
def store_errors(
    operation: str, context: ErrorContext | None = None,
) -> Iterator[None]:
    """Re-wrap persistence signals as domain errors for one operation."""
    try:
        yield
    except RecordMissingError as e:
        raise NotFoundError(e.entity, e.entity_id, context) from e
    except RecordExistsError as e:
        raise AlreadyExistsError(e.entity, e.entity_id, context) from e
    except StoreError as e:
        logger.error(
            f"Store failure during {operation}: {e}",
            extra={"operation": operation},
        )
        raise OperationFailedError(str(e), operation, context) from e


def build_memory_context(
    config: SystemConfig | None = None,
    rng: random.Random | None = None,
    tuning: SimulationTuning | None = None,
) -> DispatchContext:
    """Context over in-memory stores (tests, demos, the default backend)."""
    from courier_dispatch.infrastructure.memory_store import (
        MemoryConfigRepository, MemoryRepository,
    )

    bus = NotificationBus()
    return DispatchContext(
        orders=MemoryRepository("Order"),
        couriers=MemoryRepository("Courier", auto_id=False),
        deliveries=MemoryRepository("Delivery"),
        config=ConfigStore(MemoryConfigRepository(config), bus),
        bus=bus,
        rng=rng or random.Random(),
        tuning=tuning or SimulationTuning(),
    )


def build_sql_context(
    database_url: str,
    rng: random.Random | None = None,
    tuning: SimulationTuning | None = None,
) -> DispatchContext:
    """Context over SQLAlchemy repositories sharing one engine."""
    from courier_dispatch.infrastructure.sql_store import (
        SqlConfigRepository, SqlStore, courier_repository,
        delivery_repository, order_repository,
    )

    store = SqlStore(database_url)
    bus = NotificationBus()
    return DispatchContext(
        orders=order_repository(store),
        couriers=courier_repository(store),
        deliveries=delivery_repository(store),
        config=ConfigStore(SqlConfigRepository(store), bus),
        bus=bus,
        rng=rng or random.Random(),
        tuning=tuning or SimulationTuning(),
        health_check=store.health_check,
        dispose=store.dispose,
    )
