# activity_service/schemas/commands.py
"""
Command variants accepted by ActivityLifecycleService.execute.

Each command carries exactly the fields its operation needs and is
discriminated on `kind`, so a payload can be parsed straight into the right
variant with `ActivityCommandAdapter.validate_python(...)`.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from activity_service.schemas.activity import ActivityCreate, ActivityUpdate


class CreateActivity(BaseModel):
    kind: Literal["create_activity"] = "create_activity"
    fields: ActivityCreate


class UpdateActivity(BaseModel):
    kind: Literal["update_activity"] = "update_activity"
    activity_id: int
    fields: ActivityUpdate


class Enroll(BaseModel):
    kind: Literal["enroll"] = "enroll"
    activity_id: int


class CancelEnrollment(BaseModel):
    kind: Literal["cancel_enrollment"] = "cancel_enrollment"
    activity_id: int


class SetStatus(BaseModel):
    kind: Literal["set_status"] = "set_status"
    activity_id: int
    status: str


class CancelActivity(BaseModel):
    kind: Literal["cancel_activity"] = "cancel_activity"
    activity_id: int


class DeleteActivity(BaseModel):
    kind: Literal["delete_activity"] = "delete_activity"
    activity_id: int


ActivityCommand = Annotated[
    Union[
        CreateActivity,
        UpdateActivity,
        Enroll,
        CancelEnrollment,
        SetStatus,
        CancelActivity,
        DeleteActivity,
    ],
    Field(discriminator="kind"),
]

ActivityCommandAdapter = TypeAdapter(ActivityCommand)
