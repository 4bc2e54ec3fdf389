"""In-Memory Store — list-backed repositories with running ids.

Invariants:
    - Records are stored as immutable values; reads return the stored value itself
    - Items created with id 0 get the next running id (orders, deliveries)
    - delete_all() empties the list and restarts the running id at 1
    - Every method is atomic w.r.t. other calls on the same repository

Design Decisions:
    - Plain list, not dict: read_all preserves insertion order, matching the SQL
      store's ORDER BY id
"""

import threading
from dataclasses import replace
from typing import Callable, Generic, TypeVar

from courier_dispatch.core.errors import RecordExistsError, RecordMissingError
from courier_dispatch.core.system_config import SystemConfig


T = TypeVar("T")


class MemoryRepository(Generic[T]):
    """CrudRepository over a Python list."""

    def __init__(self, entity: str, auto_id: bool = True):
        self._entity = entity
        self._auto_id = auto_id
        self._items: list[T] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def create(self, item: T) -> T:
        with self._lock:
            if self._auto_id and item.id == 0:
                item = replace(item, id=self._next_id)
                self._next_id += 1
            if self._find(item.id) is not None:
                raise RecordExistsError(self._entity, item.id)
            self._items.append(item)
            return item

    def read(self, item_id: int) -> T | None:
        with self._lock:
            index = self._find(item_id)
            return None if index is None else self._items[index]

    def read_where(self, predicate: Callable[[T], bool]) -> T | None:
        with self._lock:
            return next((i for i in self._items if predicate(i)), None)

    def read_all(self, predicate: Callable[[T], bool] | None = None) -> list[T]:
        with self._lock:
            if predicate is None:
                return list(self._items)
            return [i for i in self._items if predicate(i)]

    def update(self, item: T) -> T:
        with self._lock:
            index = self._find(item.id)
            if index is None:
                raise RecordMissingError(self._entity, item.id)
            self._items[index] = item
            return item

    def delete(self, item_id: int) -> None:
        with self._lock:
            index = self._find(item_id)
            if index is None:
                raise RecordMissingError(self._entity, item_id)
            del self._items[index]

    def delete_all(self) -> None:
        with self._lock:
            self._items.clear()
            self._next_id = 1

    def _find(self, item_id: int) -> int | None:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None


class MemoryConfigRepository:
    """ConfigRepository holding one SystemConfig value."""

    def __init__(self, initial: SystemConfig | None = None):
        self._default = initial or SystemConfig()
        self._config = self._default

    def load(self) -> SystemConfig:
        return self._config

    def save(self, config: SystemConfig) -> None:
        self._config = config

    def reset(self) -> SystemConfig:
        self._config = self._default
        return self._config
