"""
Per-object locks.

Serializes operations on the same object id while leaving different ids
free to run in parallel. Entries are reference-counted and dropped when
no thread holds or waits on them, so the registry does not grow with the
number of objects ever touched.
"""

import threading
from contextlib import contextmanager


class KeyedLocks:
    """A registry of mutexes keyed by string."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # key -> [lock, refcount]

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1

        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
