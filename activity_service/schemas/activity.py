# activity_service/schemas/activity.py
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from activity_service.constants.activity import ActivityStatus, FeeType
from activity_service.core.clock import as_utc
from activity_service.schemas.category import Category


class ActivityCreate(BaseModel):
    name: str = Field(..., min_length=1, json_schema_extra={"example": "Sunday Pickup Game"})
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    location: str = Field(..., min_length=1, json_schema_extra={"example": "North Court"})
    start_time: datetime
    end_time: datetime
    registration_deadline: datetime
    max_participants: int = Field(..., gt=0)
    # Only PREPARING or RECRUITING are accepted; checked by the service.
    status: Optional[ActivityStatus] = None
    fee_type: FeeType = FeeType.FREE
    fee_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    category_id: int = Field(..., gt=0)

    @field_validator("start_time", "end_time", "registration_deadline")
    @classmethod
    def normalize_instant(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class ActivityUpdate(BaseModel):
    """Partial update. Status is changed through the status endpoint only."""

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    location: Optional[str] = Field(None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, gt=0)
    fee_type: Optional[FeeType] = None
    fee_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[int] = Field(None, gt=0)

    @field_validator("start_time", "end_time", "registration_deadline")
    @classmethod
    def normalize_instant(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class ActivityStatusUpdate(BaseModel):
    # Kept as a plain string so an unknown value is reported by the engine
    # as a bad request rather than a schema error.
    status: str = Field(..., json_schema_extra={"example": "recruiting"})


class Activity(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    location: str
    start_time: datetime
    end_time: datetime
    registration_deadline: datetime
    max_participants: int
    status: ActivityStatus
    fee_type: FeeType
    fee_amount: Decimal
    organizer_id: int
    category_id: int
    category: Optional[Category] = None
    enrolled_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ActivityQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    category_id: Optional[int] = Field(None, gt=0)
    status: Optional[ActivityStatus] = None
    fee_type: Optional[FeeType] = None
    sort: Literal["newest", "oldest", "start_time"] = "newest"


class PaginatedActivities(BaseModel):
    items: List[Activity]
    total: int
    page: int
    limit: int
    total_pages: int
