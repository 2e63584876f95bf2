# activity_service/services/lifecycle/enrollment_manager.py
"""
Enroll, leave and cascade-cancel operations.

All of them run through ActivityTransactionRunner, so for a given activity
the status recompute, the capacity check and the write happen as one
exclusive unit. Two concurrent enrollments can never both see the last free
slot.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from activity_service.constants.activity import ActivityStatus
from activity_service.core.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
)
from activity_service.crud import crud_activity, crud_enrollment
from activity_service.models.activity import Activity
from activity_service.models.enrollment import Enrollment
from activity_service.services.lifecycle.atomic import ActivityTransactionRunner
from activity_service.services.lifecycle.capacity_guard import (
    CapacityGuard,
    Rejected,
    RejectionReason,
)
from activity_service.services.lifecycle.status_engine import StatusTransitionEngine

logger = logging.getLogger(__name__)

REJECTION_ERRORS = {
    RejectionReason.NOT_RECRUITING: (BadRequestError, "This activity is not accepting enrollments"),
    RejectionReason.DEADLINE_PASSED: (BadRequestError, "The registration deadline has passed"),
    RejectionReason.ALREADY_ENROLLED: (ConflictError, "You are already enrolled in this activity"),
    RejectionReason.FULL: (BadRequestError, "The activity is full"),
}


class EnrollmentManager:
    def __init__(
        self,
        engine: StatusTransitionEngine,
        guard: CapacityGuard,
        runner: ActivityTransactionRunner,
    ):
        self.engine = engine
        self.guard = guard
        self.runner = runner

    def load_locked(self, db: Session, activity_id: int) -> Activity:
        activity = crud_activity.activity.get_for_update(db, id=activity_id)
        if activity is None:
            raise NotFoundError("Activity not found")
        return activity

    def enroll(self, db: Session, activity_id: int, user_id: int, now: datetime) -> Enrollment:
        """
        Admits the user, reactivating their cancelled enrollment if one exists.

        A status change found while recomputing is committed even when the
        admission is rejected; the enrollment itself is only written when
        every check passes.
        """

        def admit() -> Enrollment:
            activity = self.load_locked(db, activity_id)
            self.engine.apply(db, activity, now)

            admission = self.guard.try_admit(db, activity, user_id, now)
            if isinstance(admission, Rejected):
                db.commit()
                error_cls, message = REJECTION_ERRORS[admission.reason]
                raise error_cls(message)

            reactivated = admission.reactivate is not None
            enrollment = crud_enrollment.enrollment.admit(
                db,
                activity_id=activity_id,
                user_id=user_id,
                existing=admission.reactivate,
                now=now,
            )
            db.commit()
            logger.info(
                f"User {user_id} {'re-enrolled in' if reactivated else 'enrolled in'} "
                f"activity {activity_id}"
            )
            return enrollment

        # Refreshed outside the unit so a failed reload never replays a
        # committed admission.
        enrollment = self.runner.run(db, activity_id, admit)
        db.refresh(enrollment)
        return enrollment

    def cancel_enrollment(
        self, db: Session, activity_id: int, user_id: int, now: datetime
    ) -> Enrollment:
        """
        Withdraws the user's active enrollment. Not gated on the deadline or
        on the activity status; callers apply their own time rules.
        """

        def withdraw() -> Enrollment:
            self.load_locked(db, activity_id)
            enrollment = self.withdraw_locked(db, activity_id, user_id, now)
            db.commit()
            return enrollment

        enrollment = self.runner.run(db, activity_id, withdraw)
        db.refresh(enrollment)
        return enrollment

    def withdraw_locked(
        self, db: Session, activity_id: int, user_id: int, now: datetime
    ) -> Enrollment:
        """Cancels the user's active enrollment. The caller holds the lock and commits."""
        enrollment = crud_enrollment.enrollment.get_active(
            db, activity_id=activity_id, user_id=user_id
        )
        if enrollment is None:
            raise NotFoundError("No active enrollment found for this activity")
        crud_enrollment.enrollment.cancel(db, enrollment=enrollment, now=now)
        logger.info(f"User {user_id} cancelled enrollment in activity {activity_id}")
        return enrollment

    def cancel_activity_locked(self, db: Session, activity: Activity, now: datetime) -> int:
        """
        Marks a locked activity cancelled and cancels all of its active
        enrollments in the same transaction. Returns the number of
        enrollments cancelled. The caller commits.
        """
        crud_activity.activity.set_status(
            db, db_obj=activity, status=ActivityStatus.CANCELLED.value
        )
        cancelled = crud_enrollment.enrollment.cancel_all_for_activity(
            db, activity_id=activity.id, now=now
        )
        logger.info(
            f"Activity {activity.id} cancelled, {cancelled} enrollments cancelled with it"
        )
        return cancelled
