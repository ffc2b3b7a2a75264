"""
In-process mutual exclusion keyed by (specialist_id, date).

This is the first of the two booking locks; the second is the slot_locks
row touched inside the write transaction (see AppointmentRepository). The
in-process lock keeps threads of one worker from piling up on the
database lock.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class KeyedLock:
    """A registry of ``threading.Lock`` objects, one per key.

    Locks are reference counted and dropped once no thread holds or waits
    for them, so the registry does not grow with every date ever booked.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._waiters: Dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._waiters[key] = self._waiters.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
