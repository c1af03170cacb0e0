import threading
from contextlib import contextmanager


class KeyedLocks:
    """
    Registry of mutexes keyed by any hashable value.

    A lock lives only while somebody holds or waits on it, so the registry does
    not grow with every teacher or time slot ever seen.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    @contextmanager
    def hold(self, key):
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

    def __len__(self):
        with self._guard:
            return len(self._locks)


# Shared by every request handled by this process
booking_locks = KeyedLocks()
rating_locks = KeyedLocks()
