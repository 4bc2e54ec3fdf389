"""SQL Store — SQLAlchemy-backed repositories with automatic rollback.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - All SQLAlchemy exceptions mapped to StoreError (core/errors.py)
    - Rows are translated to frozen core entities at this boundary; nothing
      above this module ever sees an ORM object
    - Predicates are Python callables, evaluated after loading rows ordered by id

Design Decisions:
    - One SqlRepository class parametrized by row type and two mapping functions
      instead of one class per entity
    - Sync sessions: every call already runs under the dispatch lock
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import timedelta
from typing import Callable, Generic, Iterator, TypeVar

from sqlalchemy import delete, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.orm import Session

from courier_dispatch.core.domain_types import (
    CourierId, DeliveryId, DeliveryStatus, DeliveryType, OrderId, OrderType,
)
from courier_dispatch.core.entities import Courier, Delivery, Location, Order
from courier_dispatch.core.errors import (
    RecordExistsError, RecordMissingError, StoreError,
)
from courier_dispatch.core.system_config import SystemConfig
from courier_dispatch.db.session import create_db_engine, create_session_factory
from courier_dispatch.models import CourierRow, DeliveryRow, OrderRow, SystemConfigRow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlStore:
    """Owns the engine and hands out sessions with error mapping."""

    def __init__(self, database_url: str | None = None, engine: Engine | None = None):
        if engine is None:
            if database_url is None:
                raise ValueError("database_url or engine is required")
            engine = create_db_engine(database_url)
        self.engine = engine
        self._session_factory = create_session_factory(engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            logger.error(f"DB integrity error: {e}")
            raise StoreError("Integrity constraint violated") from e
        except OperationalError as e:
            session.rollback()
            logger.error(f"DB operational error: {e}")
            raise StoreError("Connection or operational error") from e
        except DBAPIError as e:
            session.rollback()
            logger.error(f"DB driver error: {e}")
            raise StoreError("Database driver error") from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise StoreError("Database operation failed") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            with self.session() as db:
                db.execute(text("SELECT 1"))
            return True
        except StoreError as e:
            logger.error(f"DB health check failed: {e}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()


class SqlRepository(Generic[T]):
    """CrudRepository over one ORM table."""

    def __init__(
        self,
        store: SqlStore,
        entity: str,
        row_cls: type,
        to_entity: Callable[[object], T],
        to_row: Callable[[T], dict],
        auto_id: bool = True,
    ):
        self._store = store
        self._entity = entity
        self._row_cls = row_cls
        self._to_entity = to_entity
        self._to_row = to_row
        self._auto_id = auto_id

    def create(self, item: T) -> T:
        values = self._to_row(item)
        if self._auto_id and item.id == 0:
            values.pop("id")
        with self._store.session() as db:
            if "id" in values and db.get(self._row_cls, values["id"]) is not None:
                raise RecordExistsError(self._entity, values["id"])
            row = self._row_cls(**values)
            db.add(row)
            db.flush()
            return replace(item, id=row.id)

    def read(self, item_id: int) -> T | None:
        with self._store.session() as db:
            row = db.get(self._row_cls, item_id)
            return None if row is None else self._to_entity(row)

    def read_where(self, predicate: Callable[[T], bool]) -> T | None:
        return next((i for i in self.read_all() if predicate(i)), None)

    def read_all(self, predicate: Callable[[T], bool] | None = None) -> list[T]:
        with self._store.session() as db:
            rows = db.scalars(select(self._row_cls).order_by(self._row_cls.id)).all()
            items = [self._to_entity(r) for r in rows]
        if predicate is None:
            return items
        return [i for i in items if predicate(i)]

    def update(self, item: T) -> T:
        with self._store.session() as db:
            row = db.get(self._row_cls, item.id)
            if row is None:
                raise RecordMissingError(self._entity, item.id)
            for key, value in self._to_row(item).items():
                setattr(row, key, value)
            return item

    def delete(self, item_id: int) -> None:
        with self._store.session() as db:
            row = db.get(self._row_cls, item_id)
            if row is None:
                raise RecordMissingError(self._entity, item_id)
            db.delete(row)

    def delete_all(self) -> None:
        with self._store.session() as db:
            db.execute(delete(self._row_cls))


# ─── Row <-> Entity Mapping ─────────────────────────────────────

def _order_from_row(row: OrderRow) -> Order:
    return Order(
        id=OrderId(row.id),
        order_type=OrderType(row.order_type),
        description=row.description,
        address=row.address,
        latitude=row.latitude,
        longitude=row.longitude,
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        weight=row.weight,
        volume=row.volume,
        is_fragile=row.is_fragile,
        created_at=row.created_at,
        courier_id=CourierId(row.courier_id) if row.courier_id is not None else None,
        courier_associated_date=row.courier_associated_date,
        pickup_date=row.pickup_date,
        delivery_date=row.delivery_date,
    )


def _order_to_row(order: Order) -> dict:
    return {
        "id": order.id,
        "order_type": order.order_type.value,
        "description": order.description,
        "address": order.address,
        "latitude": order.latitude,
        "longitude": order.longitude,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "weight": order.weight,
        "volume": order.volume,
        "is_fragile": order.is_fragile,
        "created_at": order.created_at,
        "courier_id": order.courier_id,
        "courier_associated_date": order.courier_associated_date,
        "pickup_date": order.pickup_date,
        "delivery_date": order.delivery_date,
    }


def _courier_from_row(row: CourierRow) -> Courier:
    return Courier(
        id=CourierId(row.id),
        name=row.name,
        phone=row.phone,
        email=row.email,
        is_active=row.is_active,
        max_delivery_distance=row.max_delivery_distance,
        delivery_type=DeliveryType(row.delivery_type),
        start_working_date=row.start_working_date,
        location=Location(row.latitude, row.longitude),
    )


def _courier_to_row(courier: Courier) -> dict:
    return {
        "id": courier.id,
        "name": courier.name,
        "phone": courier.phone,
        "email": courier.email,
        "is_active": courier.is_active,
        "max_delivery_distance": courier.max_delivery_distance,
        "delivery_type": courier.delivery_type.value,
        "start_working_date": courier.start_working_date,
        "latitude": courier.location.latitude,
        "longitude": courier.location.longitude,
    }


def _delivery_from_row(row: DeliveryRow) -> Delivery:
    return Delivery(
        id=DeliveryId(row.id),
        order_id=OrderId(row.order_id),
        courier_id=CourierId(row.courier_id),
        delivery_type=DeliveryType(row.delivery_type),
        start_time=row.start_time,
        completion_status=(
            DeliveryStatus(row.completion_status)
            if row.completion_status is not None else None
        ),
        end_time=row.end_time,
        actual_distance=row.actual_distance,
    )


def _delivery_to_row(delivery: Delivery) -> dict:
    return {
        "id": delivery.id,
        "order_id": delivery.order_id,
        "courier_id": delivery.courier_id,
        "delivery_type": delivery.delivery_type.value,
        "start_time": delivery.start_time,
        "completion_status": (
            delivery.completion_status.value
            if delivery.completion_status is not None else None
        ),
        "end_time": delivery.end_time,
        "actual_distance": delivery.actual_distance,
    }


def _minutes(value: timedelta) -> int:
    return int(value.total_seconds() // 60)


def _config_from_row(row: SystemConfigRow) -> SystemConfig:
    return SystemConfig(
        clock=row.clock,
        car_speed=row.car_speed,
        motorcycle_speed=row.motorcycle_speed,
        bicycle_speed=row.bicycle_speed,
        on_foot_speed=row.on_foot_speed,
        max_delivery_time=timedelta(minutes=row.max_delivery_minutes),
        risk_range=timedelta(minutes=row.risk_range_minutes),
        inactivity_range=timedelta(minutes=row.inactivity_range_minutes),
        simulator_interval_minutes=row.simulator_interval_minutes,
        max_delivery_distance=row.max_delivery_distance,
        company_address=row.company_address,
        company_latitude=row.company_latitude,
        company_longitude=row.company_longitude,
    )


def _config_to_row(config: SystemConfig) -> dict:
    return {
        "clock": config.clock,
        "car_speed": config.car_speed,
        "motorcycle_speed": config.motorcycle_speed,
        "bicycle_speed": config.bicycle_speed,
        "on_foot_speed": config.on_foot_speed,
        "max_delivery_minutes": _minutes(config.max_delivery_time),
        "risk_range_minutes": _minutes(config.risk_range),
        "inactivity_range_minutes": _minutes(config.inactivity_range),
        "simulator_interval_minutes": config.simulator_interval_minutes,
        "max_delivery_distance": config.max_delivery_distance,
        "company_address": config.company_address,
        "company_latitude": config.company_latitude,
        "company_longitude": config.company_longitude,
    }


class SqlConfigRepository:
    """ConfigRepository over the single system_config row."""

    ROW_ID = 1

    def __init__(self, store: SqlStore, default: SystemConfig | None = None):
        self._store = store
        self._default = default or SystemConfig()

    def load(self) -> SystemConfig:
        with self._store.session() as db:
            row = db.get(SystemConfigRow, self.ROW_ID)
            if row is None:
                row = SystemConfigRow(id=self.ROW_ID, **_config_to_row(self._default))
                db.add(row)
                return self._default
            return _config_from_row(row)

    def save(self, config: SystemConfig) -> None:
        with self._store.session() as db:
            row = db.get(SystemConfigRow, self.ROW_ID)
            values = _config_to_row(config)
            if row is None:
                db.add(SystemConfigRow(id=self.ROW_ID, **values))
                return
            for key, value in values.items():
                setattr(row, key, value)

    def reset(self) -> SystemConfig:
        self.save(self._default)
        return self._default


def order_repository(store: SqlStore) -> SqlRepository[Order]:
    return SqlRepository(store, "Order", OrderRow, _order_from_row, _order_to_row)


def courier_repository(store: SqlStore) -> SqlRepository[Courier]:
    return SqlRepository(
        store, "Courier", CourierRow, _courier_from_row, _courier_to_row,
        auto_id=False,
    )


def delivery_repository(store: SqlStore) -> SqlRepository[Delivery]:
    return SqlRepository(
        store, "Delivery", DeliveryRow, _delivery_from_row, _delivery_to_row,
    )
