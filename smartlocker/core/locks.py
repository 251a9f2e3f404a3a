from __future__ import annotations

import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager

LockKey = tuple[str, int]


def locker_key(locker_id: int) -> LockKey:
    return ("locker", locker_id)


def session_key(session_id: int) -> LockKey:
    return ("session", session_id)


def user_key(user_id: int) -> LockKey:
    return ("user", user_id)


class _EntityLock:
    __slots__ = ("lock", "__weakref__")

    def __init__(self) -> None:
        self.lock = threading.RLock()


class KeyedLockManager:
    """
    Per-entity mutual exclusion.

    Operations that touch the same locker, session or user serialize; operations
    on disjoint keys proceed in parallel. Keys are always acquired in sorted
    order so two callers asking for overlapping key sets cannot deadlock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[LockKey, _EntityLock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: LockKey) -> _EntityLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _EntityLock()
                self._locks[key] = entry
            return entry

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, *keys: LockKey) -> Iterator[None]:
        ordered = sorted(set(keys))
        # Strong references keep the entries alive in the weak map while held.
        entries = [self._lock_for(key) for key in ordered]
        acquired: list[_EntityLock] = []
        try:
            for entry in entries:
                entry.lock.acquire()
                acquired.append(entry)
            yield
        finally:
            for entry in reversed(acquired):
                entry.lock.release()
