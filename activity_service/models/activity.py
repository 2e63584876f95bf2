# activity_service/models/activity.py
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from activity_service.constants.activity import ActivityStatus, FeeType
from activity_service.db.base_class import Base


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    cover_image_url = Column(String, nullable=True)
    location = Column(String(255), nullable=False)

    # registration_deadline < start_time < end_time, checked on create/update
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    registration_deadline = Column(DateTime(timezone=True), nullable=False)

    max_participants = Column(Integer, nullable=False)
    status = Column(
        String(32), nullable=False, default=ActivityStatus.PREPARING.value, index=True
    )

    # Fee fields are informational only; nothing is charged here.
    fee_type = Column(String(32), nullable=False, default=FeeType.FREE.value)
    fee_amount = Column(Numeric(10, 2), nullable=False, default=0)

    organizer_id = Column(Integer, nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    category = relationship("Category", back_populates="activities", lazy="joined")
    enrollments = relationship(
        "Enrollment",
        back_populates="activity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("max_participants > 0", name="ck_activities_max_participants_positive"),
    )
