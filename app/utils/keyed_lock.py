# app/utils/keyed_lock.py
"""
Per-key mutual exclusion for the vehicle-check read → decide → write sequence.
Two reports for the same vehicle number run one after the other; reports for
different vehicles never wait on each other. Locks are dropped once unused.
"""

import threading
from contextlib import contextmanager
from typing import Dict


class KeyedLock:
    def __init__(self) -> None:
        # key -> [lock, number of holders + waiters]
        self._locks: Dict[str, list] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
