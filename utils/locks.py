import threading
from contextlib import contextmanager


class KeyedLock:
    """
    One mutex per key (sender id). Entries are reference-counted and dropped
    once nobody holds or waits on them, so the map does not grow with every
    number that ever wrote to the bot.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}  # key -> [lock, refcount]

    @contextmanager
    def hold(self, key):
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
                    del self._locks[key]

    def __len__(self):
        with self._guard:
            return len(self._locks)
