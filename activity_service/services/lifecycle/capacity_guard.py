# activity_service/services/lifecycle/capacity_guard.py
"""
Admission checks for enrollments.

The guard must run while the caller holds the activity's lock (see
EnrollmentManager), otherwise the count it reads can be stale by the time
the enrollment is written.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from sqlalchemy.orm import Session

from activity_service.constants.activity import ActivityStatus, EnrollmentStatus
from activity_service.core.clock import as_utc
from activity_service.crud import crud_enrollment
from activity_service.models.activity import Activity
from activity_service.models.enrollment import Enrollment

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    NOT_RECRUITING = "not_recruiting"
    DEADLINE_PASSED = "deadline_passed"
    ALREADY_ENROLLED = "already_enrolled"
    FULL = "full"


@dataclass(frozen=True)
class Admitted:
    # The user's cancelled row to reactivate, or None to insert a new one.
    reactivate: Optional[Enrollment] = None


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason


Admission = Union[Admitted, Rejected]


class CapacityGuard:
    def try_admit(
        self, db: Session, activity: Activity, user_id: int, now: datetime
    ) -> Admission:
        """
        Checks, in order, stopping at the first failure:
        1. the activity is recruiting
        2. the registration deadline has not passed
        3. the user is not already enrolled
        4. there is a free slot; a reactivation consumes a slot like a new row
        """
        if activity.status != ActivityStatus.RECRUITING.value:
            return self._reject(activity, user_id, RejectionReason.NOT_RECRUITING)

        if now > as_utc(activity.registration_deadline):
            return self._reject(activity, user_id, RejectionReason.DEADLINE_PASSED)

        existing = crud_enrollment.enrollment.get_user_enrollment(
            db, activity_id=activity.id, user_id=user_id
        )
        if existing is not None and existing.status == EnrollmentStatus.ENROLLED.value:
            return self._reject(activity, user_id, RejectionReason.ALREADY_ENROLLED)

        enrolled_count = crud_enrollment.enrollment.count_active(db, activity_id=activity.id)
        if enrolled_count >= activity.max_participants:
            return self._reject(
                activity,
                user_id,
                RejectionReason.FULL,
                f" ({enrolled_count}/{activity.max_participants})",
            )

        return Admitted(reactivate=existing)

    def _reject(
        self, activity: Activity, user_id: int, reason: RejectionReason, detail: str = ""
    ) -> Rejected:
        logger.warning(
            f"Enrollment rejected for user {user_id} on activity {activity.id}: "
            f"{reason.value}{detail}"
        )
        return Rejected(reason=reason)
