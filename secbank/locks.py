"""
Keyed Locking Module

Per-key mutual exclusion used to serialize balance read-modify-write per
account, reference allocation per date and callbacks per interbank
reference. Multi-key acquisition always follows sorted key order so two
operations touching the same keys cannot deadlock.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from .exceptions import ConflictError


def account_key(account_id: str) -> str:
    return f"account:{account_id}"


def sequence_key(date_str: str) -> str:
    return f"sequence:{date_str}"


def interbank_key(reference_number: str) -> str:
    return f"interbank:{reference_number}"


class KeyedLock:
    """Registry of re-entrant locks addressed by string key

    A key's lock lives only while some caller holds or waits on it, so the
    registry stays bounded by the number of in-flight operations.
    """

    def __init__(self, timeout: Optional[float] = 10.0):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._users: Dict[str, int] = {}

    def _checkout(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """
        Hold the locks for all keys for the duration of the block

        Raises:
            ConflictError: If a lock cannot be acquired within the timeout
        """
        acquired: List[Tuple[str, threading.RLock]] = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                if self.timeout is None:
                    lock.acquire()
                elif not lock.acquire(timeout=self.timeout):
                    self._checkin(key)
                    raise ConflictError(f"Timed out waiting for lock on {key}")
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)
