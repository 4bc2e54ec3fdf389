"""Config Store — synchronized access to the virtual clock and dispatch parameters.

Invariants:
    - Every read/write of a field happens under the store's own lock; set()
      holds it across load, replace and save so concurrent sets of different
      fields never overwrite each other
    - set_config() notifies config observers only if at least one field differs
    - forward_clock() is monotonic; clock observers are notified strictly after
      the new value is saved and the lock is released
    - Store failures surface as OperationFailedError, never as StoreError

Design Decisions:
    - Separate lock from the dispatch mutation lock: config reads happen inside
      mutations (now, thresholds) and must not wait on unrelated mutations.
      Reentrant so a mutation holding it can still read the clock.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any

from courier_dispatch.core.domain_types import TimeUnit
from courier_dispatch.core.errors import (
    InvalidValueError, OperationFailedError, StoreError,
)
from courier_dispatch.core.repository_protocols import ConfigRepository
from courier_dispatch.core.system_config import (
    CONFIG_FIELDS, SystemConfig, advance_clock, diff_config, validate_config,
)
from courier_dispatch.services.notification_bus import NotificationBus

logger = logging.getLogger(__name__)


class ConfigStore:
    def __init__(self, repository: ConfigRepository, bus: NotificationBus):
        self._repository = repository
        self._bus = bus
        self._lock = threading.RLock()

    def _load(self) -> SystemConfig:
        try:
            return self._repository.load()
        except StoreError as e:
            raise OperationFailedError(str(e), "load_config") from e

    def _save(self, config: SystemConfig, operation: str) -> None:
        try:
            self._repository.save(config)
        except StoreError as e:
            raise OperationFailedError(str(e), operation) from e

    # ─── Per-field access ───────────────────────────────────────

    def get(self, field: str) -> Any:
        if field not in CONFIG_FIELDS:
            raise InvalidValueError(f"Unknown config field '{field}'", field)
        with self._lock:
            return getattr(self._load(), field)

    def set(self, field: str, value: Any) -> bool:
        """Set one field. Returns True if the value changed."""
        if field not in CONFIG_FIELDS:
            raise InvalidValueError(f"Unknown config field '{field}'", field)
        with self._lock:
            changed = self._apply(replace(self._load(), **{field: value}))
        self._notify(changed)
        return bool(changed)

    @property
    def clock(self) -> datetime:
        with self._lock:
            return self._load().clock

    def get_config(self) -> SystemConfig:
        with self._lock:
            return self._load()

    # ─── Whole-config operations ────────────────────────────────

    def set_config(self, config: SystemConfig) -> list[str]:
        """Apply a field-by-field diff. Returns names of changed fields."""
        with self._lock:
            changed = self._apply(config)
        self._notify(changed)
        return changed

    def _apply(self, config: SystemConfig) -> list[str]:
        # caller holds self._lock
        problem = validate_config(config)
        if problem:
            raise InvalidValueError(problem)
        current = self._load()
        changed = diff_config(current, config)
        if not changed:
            return []
        if "clock" in changed and config.clock < current.clock:
            raise InvalidValueError("Clock cannot be moved backwards", "clock")
        self._save(config, "set_config")
        return changed

    def _notify(self, changed: list[str]) -> None:
        if not changed:
            return
        logger.info(f"Config updated: {', '.join(changed)}")
        self._bus.config.notify_list()
        if "clock" in changed:
            self._bus.clock.notify_list()

    def forward_clock(self, amount: int, unit: TimeUnit = TimeUnit.MINUTE) -> datetime:
        if amount < 0:
            raise InvalidValueError("Clock can only move forward", "amount")
        with self._lock:
            current = self._load()
            new_clock = advance_clock(current.clock, amount, unit)
            if new_clock == current.clock:
                return new_clock
            self._save(replace(current, clock=new_clock), "forward_clock")
        logger.debug(f"Clock forwarded to {new_clock.isoformat()}")
        self._bus.clock.notify_list()
        return new_clock

    def reset(self) -> SystemConfig:
        with self._lock:
            try:
                config = self._repository.reset()
            except StoreError as e:
                raise OperationFailedError(str(e), "reset_config") from e
        logger.info("Config reset to defaults")
        self._bus.config.notify_list()
        self._bus.clock.notify_list()
        return config
