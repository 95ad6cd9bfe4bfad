import threading
from contextlib import contextmanager
from typing import Dict, List, Tuple


def player_key(pid: int) -> Tuple[str, int]:
    return ('player', pid)


def session_key(session_id: int) -> Tuple[str, int]:
    return ('session', session_id)


def sequence_key(name: str) -> Tuple[str, str]:
    return ('sequence', name)


class KeyedLocks:
    """One mutex per key, created on demand and dropped when unused.

    ``hold`` takes several keys at once and always acquires them in sorted
    order, so two requests needing overlapping keys cannot deadlock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[tuple, List] = {}  # key -> [lock, users]

    def _checkout(self, key) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _checkin(self, key) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, *keys):
        held = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                try:
                    lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                held.append((key, lock))
            yield
        finally:
            for key, lock in reversed(held):
                lock.release()
                self._checkin(key)

    def __len__(self):
        with self._guard:
            return len(self._locks)


locks = KeyedLocks()
