# activity_service/constants/activity.py
"""
Status and fee values for activities and enrollments.

Stored as plain strings in the database; the enums give the rest of the
code a closed set to compare against.
"""

from enum import Enum


class ActivityStatus(str, Enum):
    PREPARING = "preparing"
    RECRUITING = "recruiting"
    REGISTRATION_CLOSED = "registration_closed"
    ONGOING = "ongoing"
    FINISHED = "finished"
    CANCELLED = "cancelled"

    @classmethod
    def all_values(cls) -> list[str]:
        """Return all valid status values."""
        return [member.value for member in cls]

    @classmethod
    def is_valid(cls, status: str) -> bool:
        """Check if a status value is valid."""
        return status in cls.all_values()


# No automatic or manual transition leaves these.
TERMINAL_STATUSES = frozenset({ActivityStatus.CANCELLED, ActivityStatus.FINISHED})

# Statuses in which the organizer may still edit or cancel the activity.
EDITABLE_STATUSES = frozenset(
    {
        ActivityStatus.PREPARING,
        ActivityStatus.RECRUITING,
        ActivityStatus.REGISTRATION_CLOSED,
    }
)

# Statuses an activity may be created with.
INITIAL_STATUSES = frozenset({ActivityStatus.PREPARING, ActivityStatus.RECRUITING})


class EnrollmentStatus(str, Enum):
    ENROLLED = "enrolled"
    CANCELLED = "cancelled"


class FeeType(str, Enum):
    FREE = "free"
    AA = "aa"
    PREPAID_ALL = "prepaid_all"
    PREPAID_REFUNDABLE = "prepaid_refundable"
