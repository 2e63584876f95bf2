from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from activity_service.constants.activity import EnrollmentStatus


class Enrollment(BaseModel):
    id: int
    activity_id: int
    user_id: int
    status: EnrollmentStatus
    enroll_time: datetime
    cancelled_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
