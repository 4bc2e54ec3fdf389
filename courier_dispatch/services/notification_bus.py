"""Notification Bus — list-level and per-id observer registries, invoked after commit.

Invariants:
    - Delivery is synchronous and isolated per subscriber: an observer exception
      is logged and never reaches other observers or the mutating caller
    - Observers are invoked from a snapshot of the registry, so an observer may
      add/remove observers while being notified
    - While suppressed() is active, notifications are dropped (bulk reset/seed)
    - Notifications are sent only after the dispatch lock is released

Design Decisions:
    - Explicit registry over events/signals: add/remove by callback identity
    - PendingNotifications collects notifications inside the locked section and
      flushes them afterwards, giving "write happens-before notify" by construction
"""

import logging
import threading
from collections import defaultdict
from contextlib import ExitStack, contextmanager
from typing import Callable, Iterator

logger = logging.getLogger(__name__)

ListObserver = Callable[[], None]
ItemObserver = Callable[[int], None]


class ObserverRegistry:
    """Observers of one entity kind."""

    def __init__(self, name: str):
        self.name = name
        self._list_observers: list[ListObserver] = []
        self._item_observers: dict[int, list[ItemObserver]] = defaultdict(list)
        self._lock = threading.Lock()
        self._suppressed = 0

    def add_list_observer(self, observer: ListObserver) -> None:
        with self._lock:
            self._list_observers.append(observer)

    def remove_list_observer(self, observer: ListObserver) -> None:
        with self._lock:
            if observer in self._list_observers:
                self._list_observers.remove(observer)

    def add_item_observer(self, item_id: int, observer: ItemObserver) -> None:
        with self._lock:
            self._item_observers[item_id].append(observer)

    def remove_item_observer(self, item_id: int, observer: ItemObserver) -> None:
        with self._lock:
            observers = self._item_observers.get(item_id)
            if observers and observer in observers:
                observers.remove(observer)
                if not observers:
                    del self._item_observers[item_id]

    def observer_count(self, item_id: int | None = None) -> int:
        with self._lock:
            if item_id is None:
                return len(self._list_observers)
            return len(self._item_observers.get(item_id, ()))

    def notify_list(self) -> None:
        with self._lock:
            if self._suppressed:
                return
            observers = list(self._list_observers)
        for observer in observers:
            self._invoke(observer)

    def notify_item(self, item_id: int) -> None:
        with self._lock:
            if self._suppressed:
                return
            observers = list(self._item_observers.get(item_id, ()))
        for observer in observers:
            self._invoke(observer, item_id)

    def _invoke(self, observer: Callable, *args) -> None:
        try:
            observer(*args)
        except Exception:
            logger.warning(
                f"{self.name} observer {observer!r} raised; continuing",
                exc_info=True,
            )

    @contextmanager
    def suppressed(self) -> Iterator[None]:
        with self._lock:
            self._suppressed += 1
        try:
            yield
        finally:
            with self._lock:
                self._suppressed -= 1


class NotificationBus:
    """One registry per observable subject."""

    def __init__(self):
        self.orders = ObserverRegistry("orders")
        self.couriers = ObserverRegistry("couriers")
        self.deliveries = ObserverRegistry("deliveries")
        self.config = ObserverRegistry("config")
        self.clock = ObserverRegistry("clock")

    def registries(self) -> tuple[ObserverRegistry, ...]:
        return (self.orders, self.couriers, self.deliveries, self.config, self.clock)

    @contextmanager
    def suppressed(self) -> Iterator[None]:
        """Drop all notifications, then send one list notification per registry."""
        registries = self.registries()
        with ExitStack() as stack:
            for registry in registries:
                stack.enter_context(registry.suppressed())
            yield
        for registry in registries:
            registry.notify_list()


class PendingNotifications:
    """Notifications queued inside a locked mutation, flushed after unlock."""

    def __init__(self):
        self._calls: list[tuple[ObserverRegistry, int | None]] = []

    def item(self, registry: ObserverRegistry, item_id: int) -> None:
        self._calls.append((registry, item_id))

    def list_changed(self, registry: ObserverRegistry) -> None:
        self._calls.append((registry, None))

    def changed(self, registry: ObserverRegistry, item_id: int) -> None:
        """Item plus list notification for one changed entity."""
        self.item(registry, item_id)
        self.list_changed(registry)

    def flush(self) -> None:
        seen: set[tuple[int, int | None]] = set()
        calls, self._calls = self._calls, []
        for registry, item_id in calls:
            key = (id(registry), item_id)
            if key in seen:
                continue
            seen.add(key)
            if item_id is None:
                registry.notify_list()
            else:
                registry.notify_item(item_id)
