"""Boundary Protocols — contracts between core and the persistence shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - read(id) returns None when missing (cheap existence check, no exception)
    - create raises RecordExistsError on duplicate ids; update/delete raise
      RecordMissingError on unknown ids (both from core/errors.py)
    - Records are immutable values; update replaces by id

Design Decisions:
    - Protocol over ABC: structural subtyping, memory and SQL stores share no base class
    - Synchronous: every call runs inside the coarse dispatch lock, on short
      in-process or local-DB work
"""

from typing import Callable, Protocol, TypeVar

from courier_dispatch.core.entities import Courier, Delivery, Order
from courier_dispatch.core.system_config import SystemConfig


T = TypeVar("T")


class CrudRepository(Protocol[T]):
    """Per-entity CRUD contract — implemented by infrastructure stores."""
    def create(self, item: T) -> T: ...
    def read(self, item_id: int) -> T | None: ...
    def read_where(self, predicate: Callable[[T], bool]) -> T | None: ...
    def read_all(self, predicate: Callable[[T], bool] | None = None) -> list[T]: ...
    def update(self, item: T) -> T: ...
    def delete(self, item_id: int) -> None: ...
    def delete_all(self) -> None: ...


class OrderRepository(CrudRepository[Order], Protocol):
    """Orders get their id from the store when created with id 0."""


class CourierRepository(CrudRepository[Courier], Protocol):
    """Courier ids are natural keys supplied by the caller."""


class DeliveryRepository(CrudRepository[Delivery], Protocol):
    """Deliveries get their id from the store when created with id 0."""


class ConfigRepository(Protocol):
    """Single-row config persistence."""
    def load(self) -> SystemConfig: ...
    def save(self, config: SystemConfig) -> None: ...
    def reset(self) -> SystemConfig: ...
