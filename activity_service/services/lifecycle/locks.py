# activity_service/services/lifecycle/locks.py
"""
Per-activity mutual exclusion inside one process.

Requests for the same activity id run their read-check-write step one at a
time; requests for different activities never share a lock. Across processes
the row lock taken by `crud.activity.get_for_update` provides the same
exclusion on databases that support SELECT ... FOR UPDATE.
"""

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, List, Optional

from activity_service.core.exceptions import BusyError

logger = logging.getLogger(__name__)


class ActivityLockRegistry:
    """Hands out one lock per activity id and forgets it once unused."""

    def __init__(self, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds
        # activity_id -> [lock, number of holders and waiters]
        self._locks: Dict[int, List] = {}
        self._registry_lock = Lock()

    def _checkout(self, activity_id: int) -> Lock:
        with self._registry_lock:
            entry = self._locks.get(activity_id)
            if entry is None:
                entry = [Lock(), 0]
                self._locks[activity_id] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, activity_id: int) -> None:
        with self._registry_lock:
            entry = self._locks[activity_id]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[activity_id]

    @contextmanager
    def hold(self, activity_id: int) -> Iterator[None]:
        """
        Holds the activity's lock for the duration of the block.

        Raises BusyError if the lock cannot be taken within the timeout.
        """
        lock = self._checkout(activity_id)
        timeout = -1 if self.timeout_seconds is None else self.timeout_seconds
        try:
            if not lock.acquire(timeout=timeout):
                logger.warning(
                    f"Timed out after {self.timeout_seconds}s waiting for activity {activity_id}"
                )
                raise BusyError("Activity is busy, please retry")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(activity_id)

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
