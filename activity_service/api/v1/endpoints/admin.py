# activity_service/api/v1/endpoints/admin.py
"""
Administrator endpoints. They skip the organizer ownership check but not
the terminal-state checks; the role itself is enforced by the service's
authorization policy.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from activity_service.api import deps
from activity_service.db.session import get_db
from activity_service.schemas.activity import (
    Activity,
    ActivityQuery,
    ActivityStatusUpdate,
    ActivityUpdate,
    PaginatedActivities,
)
from activity_service.schemas.commands import DeleteActivity
from activity_service.schemas.message import CancelActivityResult
from activity_service.services.lifecycle import ActivityLifecycleService, Actor

router = APIRouter(prefix="/activities/admin", tags=["Admin"])


@router.get("/all", response_model=PaginatedActivities)
def list_all_activities(
    query: ActivityQuery = Depends(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    return service.list_all_activities_for_admin(db, actor, query)


@router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    """Hard delete an activity and its enrollments."""
    service.execute(db, actor, DeleteActivity(activity_id=activity_id))


@router.post("/{activity_id}/cancel", response_model=CancelActivityResult)
def cancel_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    cancelled = service.cancel_activity_as_admin(db, activity_id, actor)
    return CancelActivityResult(message="Activity cancelled", cancelled_enrollments=cancelled)


@router.put("/{activity_id}", response_model=Activity)
def update_activity(
    activity_id: int,
    activity_in: ActivityUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    return service.update_activity_as_admin(db, activity_id, actor, activity_in)


@router.post("/{activity_id}/status", response_model=Activity)
def set_activity_status(
    activity_id: int,
    status_in: ActivityStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
    service: ActivityLifecycleService = Depends(deps.get_lifecycle_service),
):
    return service.set_status_as_admin(db, activity_id, actor, status_in.status)
