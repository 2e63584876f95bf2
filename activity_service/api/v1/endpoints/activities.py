# activity_service/api/v1/endpoints/activities.py
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from activity_service.api import deps
from activity_service.core.config import settings
from activity_service.core.limiter import limiter
from activity_service.db.session import get_db
from activity_service.schemas.activity import (
    Activity,
    ActivityCreate,
    ActivityQuery,
    ActivityStatusUpdate,
    ActivityUpdate,
    PaginatedActivities,
)
from activity_service.schemas.category import Category
from activity_service.schemas.commands import (
    CancelActivity,
    CancelEnrollment,
    CreateActivity,
    Enroll,
    SetStatus,
    UpdateActivity,
)
from activity_service.schemas.enrollment import Enrollment
from activity_service.schemas.message import CancelActivityResult, Message
from activity_service.services.lifecycle import ActivityLifecycleService, Actor

router = APIRouter(prefix="/activities", tags=["Activities"])


@router.post("", response_model=Activity, status_code=status.HTTP_201_CREATED)
def create_activity(
    activity_in: ActivityCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """
    Create an activity organized by the current user.

    The registration deadline must be in the future and before the start
    time, which must be before the end time.
    """
    return service.execute(db, actor, CreateActivity(fields=activity_in))


@router.get("", response_model=PaginatedActivities)
def list_activities(
    query: ActivityQuery = Depends(),
    db: Session = Depends(get_db),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """
    List activities, filtered by category, status and fee type.
    Statuses are recomputed (and persisted when changed) before returning.
    """
    return service.list_activities(db, query)


@router.get("/categories", response_model=List[Category])
def list_categories(
    db: Session = Depends(get_db),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    return service.list_categories(db)


@router.get("/my", response_model=PaginatedActivities)
def list_my_activities(
    query: ActivityQuery = Depends(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """Activities organized by the current user."""
    return service.list_my_activities(db, actor, query)


@router.get("/enrolled", response_model=PaginatedActivities)
def list_enrolled_activities(
    query: ActivityQuery = Depends(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """Activities the current user is actively enrolled in."""
    return service.list_enrolled_activities(db, actor, query)


@router.get("/{activity_id}", response_model=Activity)
def get_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """
    Retrieve an activity. This is a read with a possible write: a status
    that is out of date with the clock is updated and saved.
    """
    return service.get_activity_by_id(db, activity_id)


@router.put("/{activity_id}", response_model=Activity)
def update_activity(
    activity_id: int,
    activity_in: ActivityUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """Update an activity. Organizer only, and only before it starts."""
    return service.execute(
        db, actor, UpdateActivity(activity_id=activity_id, fields=activity_in)
    )


@router.post("/{activity_id}/enroll", response_model=Enrollment)
@limiter.limit(settings.ENROLL_RATE_LIMIT)
def enroll(
    request: Request,
    activity_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """
    Enroll the current user.

    Fails with 400 when the activity is not recruiting, the deadline has
    passed or the activity is full, and with 409 when already enrolled.
    """
    return service.execute(db, actor, Enroll(activity_id=activity_id))


def _cancel_enrollment(
    activity_id: int, db: Session, actor: Actor, service: ActivityLifecycleService
) -> Message:
    service.execute(db, actor, CancelEnrollment(activity_id=activity_id))
    return Message(message="Enrollment cancelled")


@router.post("/{activity_id}/cancel-enrollment", response_model=Message)
@limiter.limit(settings.ENROLL_RATE_LIMIT)
def cancel_enrollment(
    request: Request,
    activity_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """Withdraw the current user's enrollment."""
    return _cancel_enrollment(activity_id, db, actor, service)


@router.delete("/{activity_id}/enroll", response_model=Message)
@limiter.limit(settings.ENROLL_RATE_LIMIT)
def cancel_enrollment_delete(
    request: Request,
    activity_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    return _cancel_enrollment(activity_id, db, actor, service)


@router.get("/{activity_id}/enrollments", response_model=List[Enrollment])
def list_activity_enrollments(
    activity_id: int,
    db: Session = Depends(get_db),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """Active enrollments, earliest first."""
    return service.list_activity_enrollments(db, activity_id)


@router.post("/{activity_id}/cancel", response_model=CancelActivityResult)
def cancel_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """Cancel the activity and every active enrollment in it."""
    cancelled = service.execute(db, actor, CancelActivity(activity_id=activity_id))
    return CancelActivityResult(message="Activity cancelled", cancelled_enrollments=cancelled)


@router.post("/{activity_id}/status", response_model=Activity)
def set_activity_status(
    activity_id: int,
    status_in: ActivityStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """Manually change the status. Not possible once cancelled or finished."""
    return service.execute(
        db, actor, SetStatus(activity_id=activity_id, status=status_in.status)
    )
