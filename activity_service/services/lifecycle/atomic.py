# activity_service/services/lifecycle/atomic.py
"""
Exclusive read-check-write units scoped to one activity.

`run` holds the activity's in-process lock, executes the operation inside a
database transaction (which normally starts by taking the activity row lock)
and retries the whole unit on transient write conflicts. Any exception rolls
the transaction back, so a failed attempt leaves nothing behind.
"""

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from activity_service.core.exceptions import ActivityServiceError
from activity_service.services.lifecycle.locks import ActivityLockRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# OperationalError covers lock/serialization failures and SQLite "database is
# locked"; IntegrityError covers a concurrent insert of the same membership.
TRANSIENT_ERRORS = (OperationalError, IntegrityError)


class ActivityTransactionRunner:
    def __init__(self, locks: ActivityLockRegistry, max_attempts: int = 3):
        self.locks = locks
        self.max_attempts = max_attempts

    def run(self, db: Session, activity_id: int, operation: Callable[[], T]) -> T:
        with self.locks.hold(activity_id):
            for attempt in Retrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=0.05, max=1),
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    try:
                        return operation()
                    except ActivityServiceError:
                        db.rollback()
                        raise
                    except Exception:
                        logger.error(
                            f"Transaction for activity {activity_id} failed, rolling back",
                            exc_info=True,
                        )
                        db.rollback()
                        raise
