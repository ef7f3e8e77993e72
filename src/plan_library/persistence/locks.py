import threading
import weakref
from collections.abc import Hashable


class KeyedLocks:
    """Hands out one lock per key, creating locks on first use.

    Locks are held weakly: once no caller references a key's lock, the entry
    is dropped, so the table only grows with the keys in use.
    """

    def __init__(self) -> None:
        self._global = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[Hashable, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, key: Hashable) -> threading.Lock:
        with self._global:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock
