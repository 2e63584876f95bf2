# activity_service/services/lifecycle/status_engine.py
"""
Status derivation for activities.

`derive_status` is a pure function of (activity, now). `apply` persists the
derived value when it differs from the stored one, using a compare-and-set
on the stored status so a concurrent change (for example a cancellation)
is never overwritten by a stale read.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from activity_service.constants.activity import (
    EDITABLE_STATUSES,
    TERMINAL_STATUSES,
    ActivityStatus,
)
from activity_service.core.clock import as_utc
from activity_service.core.exceptions import BadRequestError
from activity_service.crud import crud_activity
from activity_service.models.activity import Activity

logger = logging.getLogger(__name__)


class StatusTransitionEngine:
    """Automatic transitions and validation of manual ones."""

    def derive_status(self, activity: Activity, now: datetime) -> ActivityStatus:
        """
        Rules, first match wins:
        1. cancelled or finished stays as it is
        2. after end_time -> finished
        3. between start_time and end_time (inclusive) -> ongoing
        4. after the registration deadline, before start -> registration_closed
        5. otherwise the stored status is kept; preparing is never promoted
           to recruiting automatically
        """
        current = ActivityStatus(activity.status)
        if current in TERMINAL_STATUSES:
            return current

        start_time = as_utc(activity.start_time)
        end_time = as_utc(activity.end_time)
        deadline = as_utc(activity.registration_deadline)

        if now > end_time:
            return ActivityStatus.FINISHED
        if start_time <= now <= end_time:
            return ActivityStatus.ONGOING
        if deadline < now < start_time:
            return ActivityStatus.REGISTRATION_CLOSED
        return current

    def apply(
        self, db: Session, activity: Activity, now: datetime
    ) -> Optional[ActivityStatus]:
        """
        Persists the derived status if it changed (flush only, caller commits).
        Returns the new status, or None when nothing was written.
        """
        current = ActivityStatus(activity.status)
        derived = self.derive_status(activity, now)
        if derived == current:
            return None

        swapped = crud_activity.activity.compare_and_set_status(
            db, id=activity.id, expected=current.value, new=derived.value
        )
        if not swapped:
            # Someone else changed the row first; take their value.
            db.refresh(activity, ["status"])
            logger.info(
                f"Activity {activity.id} status changed concurrently to {activity.status}"
            )
            return None

        logger.info(
            f"Activity {activity.id} status {current.value} -> {derived.value}"
        )
        return derived

    def check_manual_transition(
        self, activity: Activity, requested: str, now: datetime
    ) -> ActivityStatus:
        """
        Validates an organizer/admin status change and returns the target.

        Any target is accepted as long as the activity is not in a terminal
        status and has not ended yet.
        """
        if not ActivityStatus.is_valid(requested):
            raise BadRequestError(f"Invalid activity status: {requested}")

        current = ActivityStatus(activity.status)
        if current == ActivityStatus.CANCELLED:
            raise BadRequestError("A cancelled activity cannot change status")
        if current == ActivityStatus.FINISHED or now > as_utc(activity.end_time):
            raise BadRequestError("A finished activity cannot change status")
        return ActivityStatus(requested)

    def check_editable(self, activity: Activity, now: datetime) -> None:
        """Edit and organizer-cancel are only open before the activity starts."""
        current = ActivityStatus(activity.status)
        if current not in EDITABLE_STATUSES:
            raise BadRequestError(
                f"Activities that are {current.value} can no longer be changed"
            )
        if now >= as_utc(activity.start_time):
            raise BadRequestError("The activity has already started")

    def check_withdrawable(self, activity: Activity, now: datetime) -> None:
        current = ActivityStatus(activity.status)
        if current in TERMINAL_STATUSES:
            raise BadRequestError(
                f"Enrollments in a {current.value} activity can no longer be withdrawn"
            )
        if now >= as_utc(activity.start_time):
            raise BadRequestError("The activity has already started")

    def check_not_terminal(self, activity: Activity, now: datetime) -> None:
        current = ActivityStatus(activity.status)
        if current == ActivityStatus.CANCELLED:
            raise BadRequestError("The activity is already cancelled")
        if current == ActivityStatus.FINISHED or now > as_utc(activity.end_time):
            raise BadRequestError("A finished activity cannot be cancelled")
