"""Keyed mutual exclusion for request decisions and request creation."""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, Optional


class KeyedLockRegistry:
    """Process-wide registry of one lock per key.

    Decisions on a request are serialized under ``("request", id)`` and
    request creation under ``("item", type, id)``. An entry lives only while
    some thread holds or waits on its key.
    """

    _instance: Optional["KeyedLockRegistry"] = None
    _locks: Dict[Hashable, threading.Lock]
    _users: Dict[Hashable, int]
    _guard: threading.Lock

    def __new__(cls) -> "KeyedLockRegistry":
        """Singleton pattern for the shared registry."""
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._locks = {}
            instance._users = {}
            instance._guard = threading.Lock()
            cls._instance = instance
        return cls._instance

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[key] -= 1
                if not self._users[key]:
                    del self._users[key]
                    del self._locks[key]

    def is_held(self, key: Hashable) -> bool:
        with self._guard:
            lock = self._locks.get(key)
            return lock is not None and lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
