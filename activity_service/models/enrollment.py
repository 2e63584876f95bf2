# activity_service/models/enrollment.py
"""
Enrollment model: a user's membership in an activity.

There is at most one row per (activity_id, user_id). Leaving an activity
flips the row to cancelled and joining again reactivates the same row, so
the unique constraint also guarantees a single active membership.
"""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    and_,
    func,
    select,
)
from sqlalchemy.orm import column_property, relationship

from activity_service.constants.activity import EnrollmentStatus
from activity_service.db.base_class import Base
from activity_service.models.activity import Activity


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    activity_id = Column(
        Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, nullable=False, index=True)
    status = Column(
        String(20), nullable=False, default=EnrollmentStatus.ENROLLED.value
    )
    enroll_time = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    activity = relationship("Activity", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("activity_id", "user_id", name="unique_activity_enrollment_user"),
    )


# Deferred so it stays out of SELECT ... FOR UPDATE on the activity row;
# listings undefer it explicitly.
Activity.enrolled_count = column_property(
    select(func.count(Enrollment.id))
    .where(
        and_(
            Enrollment.activity_id == Activity.id,
            Enrollment.status == EnrollmentStatus.ENROLLED.value,
        )
    )
    .correlate_except(Enrollment)
    .scalar_subquery(),
    deferred=True,
)
