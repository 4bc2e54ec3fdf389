"""Concurrency Primitives — non-blocking busy flag for skip-if-running guards.

Invariants:
    - try_acquire() never blocks: it returns False immediately when already held
    - release() is only called by the holder that acquired the flag

Design Decisions:
    - Lock.acquire(blocking=False) is the atomic test-and-set: an overlapping
      caller skips instead of queueing
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class BusyFlag:
    def __init__(self):
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold_if_free(self) -> Iterator[bool]:
        """Yield True while holding the flag, False (and do nothing) if busy."""
        acquired = self.try_acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()
