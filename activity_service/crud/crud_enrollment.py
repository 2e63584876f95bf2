# activity_service/crud/crud_enrollment.py
"""
Record store access for enrollments.

Nothing here commits: admissions, cancellations and cascades are committed
by the lifecycle service together with the activity row they belong to.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from activity_service.constants.activity import EnrollmentStatus
from activity_service.models.enrollment import Enrollment

logger = logging.getLogger(__name__)


class CRUDEnrollment:
    """CRUD operations for activity enrollments."""

    model = Enrollment

    def get_user_enrollment(
        self, db: Session, *, activity_id: int, user_id: int
    ) -> Optional[Enrollment]:
        """Get a user's enrollment for an activity (any status)."""
        return db.query(Enrollment).filter(
            and_(
                Enrollment.activity_id == activity_id,
                Enrollment.user_id == user_id,
            )
        ).first()

    def get_active(
        self, db: Session, *, activity_id: int, user_id: int
    ) -> Optional[Enrollment]:
        """Get a user's ENROLLED row for an activity."""
        return db.query(Enrollment).filter(
            and_(
                Enrollment.activity_id == activity_id,
                Enrollment.user_id == user_id,
                Enrollment.status == EnrollmentStatus.ENROLLED.value,
            )
        ).first()

    def count_active(self, db: Session, *, activity_id: int) -> int:
        """Count ENROLLED rows for an activity."""
        return db.query(func.count(Enrollment.id)).filter(
            and_(
                Enrollment.activity_id == activity_id,
                Enrollment.status == EnrollmentStatus.ENROLLED.value,
            )
        ).scalar() or 0

    def get_active_by_activity(self, db: Session, *, activity_id: int) -> List[Enrollment]:
        return db.query(Enrollment).filter(
            and_(
                Enrollment.activity_id == activity_id,
                Enrollment.status == EnrollmentStatus.ENROLLED.value,
            )
        ).order_by(Enrollment.enroll_time.asc(), Enrollment.id.asc()).all()

    def admit(
        self,
        db: Session,
        *,
        activity_id: int,
        user_id: int,
        existing: Optional[Enrollment],
        now: datetime,
    ) -> Enrollment:
        """
        Makes the user an active member: reactivates their cancelled row when
        there is one, otherwise inserts a new row.
        """
        if existing is not None:
            existing.status = EnrollmentStatus.ENROLLED.value
            existing.enroll_time = now
            existing.cancelled_at = None
            db.add(existing)
            db.flush()
            return existing

        enrollment = Enrollment(
            activity_id=activity_id,
            user_id=user_id,
            status=EnrollmentStatus.ENROLLED.value,
            enroll_time=now,
        )
        db.add(enrollment)
        db.flush()
        return enrollment

    def cancel(self, db: Session, *, enrollment: Enrollment, now: datetime) -> Enrollment:
        enrollment.status = EnrollmentStatus.CANCELLED.value
        enrollment.cancelled_at = now
        db.add(enrollment)
        db.flush()
        return enrollment

    def cancel_all_for_activity(self, db: Session, *, activity_id: int, now: datetime) -> int:
        """
        Flips every ENROLLED row of the activity to CANCELLED.
        Returns the number of rows changed.
        """
        changed = db.query(Enrollment).filter(
            and_(
                Enrollment.activity_id == activity_id,
                Enrollment.status == EnrollmentStatus.ENROLLED.value,
            )
        ).update(
            {
                Enrollment.status: EnrollmentStatus.CANCELLED.value,
                Enrollment.cancelled_at: now,
            },
            synchronize_session="fetch",
        )
        logger.info(f"Cancelled {changed} enrollments for activity {activity_id}")
        return changed


enrollment = CRUDEnrollment()
