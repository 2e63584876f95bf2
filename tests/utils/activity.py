from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from activity_service.constants.activity import ActivityStatus, EnrollmentStatus
from activity_service.models.activity import Activity
from activity_service.models.enrollment import Enrollment


def insert_activity(
    db: Session,
    *,
    now: datetime,
    category_id: int,
    organizer_id: int = 1,
    status: ActivityStatus = ActivityStatus.RECRUITING,
    max_participants: int = 10,
    deadline_in: timedelta = timedelta(days=1),
    start_in: timedelta = timedelta(days=2),
    duration: timedelta = timedelta(hours=3),
) -> Activity:
    """
    Writes an activity straight to the database, skipping the service's
    creation checks so tests can set up any state (including past times).
    """
    activity = Activity(
        name="Test Activity",
        location="Court 1",
        start_time=now + start_in,
        end_time=now + start_in + duration,
        registration_deadline=now + deadline_in,
        max_participants=max_participants,
        status=status.value,
        organizer_id=organizer_id,
        category_id=category_id,
    )
    db.add(activity)
    db.commit()
    db.refresh(activity)
    return activity


def insert_enrollment(
    db: Session,
    *,
    activity_id: int,
    user_id: int,
    status: EnrollmentStatus = EnrollmentStatus.ENROLLED,
    enroll_time: Optional[datetime] = None,
) -> Enrollment:
    enrollment = Enrollment(activity_id=activity_id, user_id=user_id, status=status.value)
    if enroll_time is not None:
        enrollment.enroll_time = enroll_time
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return enrollment


def count_rows(db: Session, activity_id: int, status: Optional[EnrollmentStatus] = None) -> int:
    query = db.query(Enrollment).filter(Enrollment.activity_id == activity_id)
    if status is not None:
        query = query.filter(Enrollment.status == status.value)
    return query.count()
