# ==========================================================
#                  USER LOCK MANAGER
# ==========================================================
# One writer per account at a time. Readers never take these locks.
from contextlib import contextmanager
import threading


class UserLockManager:
    _registry_lock = threading.Lock()
    # user id -> [lock, number of threads holding or waiting]
    _locks = {}

    @classmethod
    def _checkout(cls, user_id: int) -> threading.RLock:
        with cls._registry_lock:
            entry = cls._locks.get(user_id)
            if entry is None:
                entry = cls._locks[user_id] = [threading.RLock(), 0]
            entry[1] += 1
            return entry[0]

    @classmethod
    def _checkin(cls, user_id: int):
        with cls._registry_lock:
            entry = cls._locks[user_id]
            entry[1] -= 1
            if entry[1] == 0:
                del cls._locks[user_id]

    @classmethod
    @contextmanager
    def hold(cls, user_id: int):
        """Serialize writes for one user.

        A referee's first investment also locks the referrer. Referrers always
        registered earlier, so locks are taken in descending id order and two
        writers can never wait on each other in a cycle.

        The lock is dropped from the registry once nobody holds or waits on it.
        """
        lock = cls._checkout(user_id)
        try:
            lock.acquire()
            try:
                yield
            finally:
                lock.release()
        finally:
            cls._checkin(user_id)
