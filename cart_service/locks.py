"""Per-owner serialization inside one process.

The registry keeps reservation and checkout calls for the same owner from
interleaving within this process. Cross-process exclusion comes from the
row locks taken inside each store transaction; the registry only saves those
transactions from queueing on each other when one owner hammers their own
cart, so a deployment stays correct without it.
"""

from __future__ import annotations

import threading
from typing import Dict, Hashable


class LockHandle:
    """A held per-key lock. Release it once, or use it as a context manager."""

    __slots__ = ("key", "_lock", "_released")

    def __init__(self, key: Hashable, lock: threading.Lock):
        self.key = key
        self._lock = lock
        self._released = False

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._lock.release()

    @property
    def released(self) -> bool:
        return self._released

    def __enter__(self) -> "LockHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class KeyedLockRegistry:
    def __init__(self) -> None:
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, key: Hashable) -> threading.Lock:
        """Return the lock mapped to ``key``, creating it on first use."""
        lock = self._locks.get(key)
        if lock is not None:
            return lock
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    def acquire(self, key: Hashable) -> LockHandle:
        """Block until ``key`` is free and return a handle that releases it."""
        lock = self.lock_for(key)
        lock.acquire()
        return LockHandle(key, lock)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)


# process-wide registry used by the reservation and checkout operations
owner_locks = KeyedLockRegistry()
