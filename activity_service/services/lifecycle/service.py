# activity_service/services/lifecycle/service.py
"""
ActivityLifecycleService: the entry point controllers call.

Combines the status engine, the capacity guard and the enrollment manager
behind one object. Each public operation reads the clock once and uses that
instant throughout.

Read operations (`get_activity_by_id` and the listings) are
read-with-possible-write: they recompute each returned activity's status
and persist it when it changed.
"""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from activity_service.constants.activity import INITIAL_STATUSES, ActivityStatus
from activity_service.core.clock import Clock, as_utc, system_clock
from activity_service.core.config import settings
from activity_service.core.exceptions import (
    ActivityServiceError,
    BadRequestError,
    NotFoundError,
)
from activity_service.crud import crud_activity, crud_category, crud_enrollment
from activity_service.models.activity import Activity
from activity_service.models.category import Category
from activity_service.models.enrollment import Enrollment
from activity_service.schemas.activity import (
    ActivityCreate,
    ActivityQuery,
    ActivityUpdate,
)
from activity_service.schemas.commands import (
    CancelActivity,
    CancelEnrollment,
    CreateActivity,
    DeleteActivity,
    Enroll,
    SetStatus,
    UpdateActivity,
)
from activity_service.services.lifecycle.atomic import ActivityTransactionRunner
from activity_service.services.lifecycle.authorization import Action, Actor, require
from activity_service.services.lifecycle.capacity_guard import CapacityGuard
from activity_service.services.lifecycle.enrollment_manager import EnrollmentManager
from activity_service.services.lifecycle.locks import ActivityLockRegistry
from activity_service.services.lifecycle.status_engine import StatusTransitionEngine

logger = logging.getLogger(__name__)

# Columns that may legitimately be cleared by an update.
NULLABLE_FIELDS = {"description", "cover_image_url"}


class ActivityLifecycleService:
    def __init__(
        self,
        clock: Clock = system_clock,
        locks: Optional[ActivityLockRegistry] = None,
        max_attempts: Optional[int] = None,
    ):
        self.clock = clock
        self.locks = locks or ActivityLockRegistry(
            timeout_seconds=settings.ACTIVITY_LOCK_TIMEOUT_SECONDS
        )
        self.engine = StatusTransitionEngine()
        self.guard = CapacityGuard()
        self.runner = ActivityTransactionRunner(
            self.locks, max_attempts=max_attempts or settings.ENROLL_MAX_ATTEMPTS
        )
        self.enrollments = EnrollmentManager(self.engine, self.guard, self.runner)

    # ========================================
    # Commands
    # ========================================

    def execute(self, db: Session, actor: Actor, command: Any) -> Any:
        """Dispatches a command variant to its operation."""
        handlers: Dict[type, Callable[[], Any]] = {
            CreateActivity: lambda: self.create_activity(db, actor, command.fields),
            UpdateActivity: lambda: self.update_activity(
                db, command.activity_id, actor, command.fields
            ),
            Enroll: lambda: self.enroll(db, command.activity_id, actor),
            CancelEnrollment: lambda: self.cancel_enrollment(db, command.activity_id, actor),
            SetStatus: lambda: self.set_status(db, command.activity_id, actor, command.status),
            CancelActivity: lambda: self.cancel_activity(db, command.activity_id, actor),
            DeleteActivity: lambda: self.delete_activity(db, command.activity_id, actor),
        }
        handler = handlers.get(type(command))
        if handler is None:
            raise BadRequestError(f"Unsupported command: {type(command).__name__}")
        return handler()

    # ========================================
    # Activity operations
    # ========================================

    def create_activity(self, db: Session, actor: Actor, fields: ActivityCreate) -> Activity:
        require(actor, None, Action.CREATE)
        now = self.clock.now()

        if crud_category.category.get(db, fields.category_id) is None:
            raise NotFoundError("Activity category not found")
        self._check_schedule(fields.start_time, fields.end_time, fields.registration_deadline)
        if fields.registration_deadline <= now:
            raise BadRequestError("The registration deadline must be in the future")

        status = fields.status or ActivityStatus.PREPARING
        if status not in INITIAL_STATUSES:
            raise BadRequestError(
                f"New activities must start as preparing or recruiting, not {status.value}"
            )

        data = fields.model_dump(exclude={"status"})
        data["status"] = status.value
        data["fee_type"] = fields.fee_type.value
        try:
            activity = crud_activity.activity.create_with_organizer(
                db, obj_in=data, organizer_id=actor.user_id
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"Activity {activity.id} created by user {actor.user_id}")
        return self._reload(db, activity.id)

    def update_activity(
        self, db: Session, activity_id: int, actor: Actor, fields: ActivityUpdate
    ) -> Activity:
        now = self.clock.now()
        changes = {
            key: value
            for key, value in fields.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_FIELDS
        }
        if "fee_type" in changes:
            changes["fee_type"] = changes["fee_type"].value

        def edit() -> Dict[str, Any]:
            activity = self.enrollments.load_locked(db, activity_id)
            require(actor, activity, Action.UPDATE)
            self._recompute_then_check(
                db, activity, now, lambda: self.engine.check_editable(activity, now)
            )
            self._check_changes(db, activity, changes)
            change_data = crud_activity.activity.apply_changes(
                db, db_obj=activity, changes=changes
            )
            db.commit()
            return change_data

        change_data = self.runner.run(db, activity_id, edit)
        if change_data:
            logger.info(
                f"Activity {activity_id} updated by user {actor.user_id}: "
                f"{', '.join(sorted(change_data))}"
            )
        return self._reload(db, activity_id)

    def update_activity_as_admin(
        self, db: Session, activity_id: int, actor: Actor, fields: ActivityUpdate
    ) -> Activity:
        require(actor, None, Action.ADMIN)
        return self.update_activity(db, activity_id, actor, fields)

    def get_activity_by_id(self, db: Session, activity_id: int) -> Activity:
        """
        Returns the activity after recomputing its status. Writes the new
        status to the record store when it changed.
        """
        now = self.clock.now()
        activity = crud_activity.activity.get(db, activity_id)
        if activity is None:
            raise NotFoundError("Activity not found")
        try:
            if self.engine.apply(db, activity, now) is not None:
                db.commit()
        except Exception:
            db.rollback()
            raise
        return self._reload(db, activity_id)

    def set_status(
        self, db: Session, activity_id: int, actor: Actor, status: str
    ) -> Activity:
        """
        Manual status change. A change to cancelled also cancels every
        active enrollment in the same transaction.
        """
        now = self.clock.now()

        def change() -> ActivityStatus:
            activity = self.enrollments.load_locked(db, activity_id)
            require(actor, activity, Action.SET_STATUS)
            target = self._recompute_then_check(
                db,
                activity,
                now,
                lambda: self.engine.check_manual_transition(activity, status, now),
            )
            if target == ActivityStatus.CANCELLED:
                self.enrollments.cancel_activity_locked(db, activity, now)
            else:
                crud_activity.activity.set_status(db, db_obj=activity, status=target.value)
            db.commit()
            return target

        target = self.runner.run(db, activity_id, change)
        logger.info(
            f"Activity {activity_id} status set to {target.value} by user {actor.user_id}"
        )
        return self._reload(db, activity_id)

    def set_status_as_admin(
        self, db: Session, activity_id: int, actor: Actor, status: str
    ) -> Activity:
        require(actor, None, Action.ADMIN)
        return self.set_status(db, activity_id, actor, status)

    def cancel_activity(self, db: Session, activity_id: int, actor: Actor) -> int:
        """
        Organizer cancellation, only before the activity starts. Returns the
        number of enrollments cancelled with it.
        """
        now = self.clock.now()

        def cancel() -> int:
            activity = self.enrollments.load_locked(db, activity_id)
            require(actor, activity, Action.CANCEL)
            self._recompute_then_check(
                db, activity, now, lambda: self.engine.check_editable(activity, now)
            )
            cancelled = self.enrollments.cancel_activity_locked(db, activity, now)
            db.commit()
            return cancelled

        return self.runner.run(db, activity_id, cancel)

    def cancel_activity_as_admin(self, db: Session, activity_id: int, actor: Actor) -> int:
        """Admin cancellation; allowed in any non-terminal status."""
        require(actor, None, Action.ADMIN)
        now = self.clock.now()

        def cancel() -> int:
            activity = self.enrollments.load_locked(db, activity_id)
            self._recompute_then_check(
                db, activity, now, lambda: self.engine.check_not_terminal(activity, now)
            )
            cancelled = self.enrollments.cancel_activity_locked(db, activity, now)
            db.commit()
            return cancelled

        return self.runner.run(db, activity_id, cancel)

    def delete_activity(self, db: Session, activity_id: int, actor: Actor) -> None:
        """Admin hard delete; removes the activity's enrollments too."""
        require(actor, None, Action.DELETE)

        def delete() -> int:
            activity = self.enrollments.load_locked(db, activity_id)
            removed = crud_activity.activity.hard_delete(db, db_obj=activity)
            db.commit()
            return removed

        removed = self.runner.run(db, activity_id, delete)
        logger.info(
            f"Activity {activity_id} deleted by admin {actor.user_id} "
            f"with {removed} enrollments"
        )

    # ========================================
    # Enrollment operations
    # ========================================

    def enroll(self, db: Session, activity_id: int, actor: Actor) -> Enrollment:
        require(actor, None, Action.ENROLL)
        return self.enrollments.enroll(db, activity_id, actor.user_id, self.clock.now())

    def cancel_enrollment(self, db: Session, activity_id: int, actor: Actor) -> None:
        """
        Withdraws the actor's enrollment. Only possible before the activity
        starts and while it is neither cancelled nor finished.
        """
        now = self.clock.now()

        def withdraw() -> None:
            activity = self.enrollments.load_locked(db, activity_id)
            self._recompute_then_check(
                db, activity, now, lambda: self.engine.check_withdrawable(activity, now)
            )
            self.enrollments.withdraw_locked(db, activity_id, actor.user_id, now)
            db.commit()

        self.runner.run(db, activity_id, withdraw)

    def list_activity_enrollments(self, db: Session, activity_id: int) -> List[Enrollment]:
        if crud_activity.activity.get(db, activity_id) is None:
            raise NotFoundError("Activity not found")
        return crud_enrollment.enrollment.get_active_by_activity(db, activity_id=activity_id)

    # ========================================
    # Listings
    # ========================================

    def list_activities(self, db: Session, query: ActivityQuery) -> Dict[str, Any]:
        return self._list(db, query)

    def list_my_activities(self, db: Session, actor: Actor, query: ActivityQuery) -> Dict[str, Any]:
        return self._list(db, query, organizer_id=actor.user_id)

    def list_enrolled_activities(
        self, db: Session, actor: Actor, query: ActivityQuery
    ) -> Dict[str, Any]:
        return self._list(db, query, enrolled_user_id=actor.user_id)

    def list_all_activities_for_admin(
        self, db: Session, actor: Actor, query: ActivityQuery
    ) -> Dict[str, Any]:
        require(actor, None, Action.ADMIN)
        return self._list(db, query)

    # ========================================
    # Categories
    # ========================================

    def list_categories(self, db: Session) -> List[Category]:
        return crud_category.category.get_all(db)

    def initialize_categories(self, db: Session, names: Optional[List[str]] = None) -> int:
        return crud_category.category.ensure_defaults(
            db, names=names if names is not None else settings.DEFAULT_CATEGORIES
        )

    # ========================================
    # Helpers
    # ========================================

    def _list(self, db: Session, query: ActivityQuery, **scope: Any) -> Dict[str, Any]:
        now = self.clock.now()
        items, total = crud_activity.activity.get_multi_filtered(
            db,
            skip=(query.page - 1) * query.limit,
            limit=query.limit,
            category_id=query.category_id,
            status=query.status.value if query.status else None,
            fee_type=query.fee_type.value if query.fee_type else None,
            sort=query.sort,
            **scope,
        )
        try:
            changed = [a for a in items if self.engine.apply(db, a, now) is not None]
            if changed:
                db.commit()
        except Exception:
            db.rollback()
            raise
        return {
            "items": items,
            "total": total,
            "page": query.page,
            "limit": query.limit,
            "total_pages": math.ceil(total / query.limit),
        }

    def _reload(self, db: Session, activity_id: int) -> Activity:
        activity = crud_activity.activity.get_with_count(db, id=activity_id)
        if activity is None:
            raise NotFoundError("Activity not found")
        return activity

    def _recompute_then_check(
        self, db: Session, activity: Activity, now: datetime, check: Callable[[], Any]
    ) -> Any:
        """
        Recomputes the status, then runs `check`. A recomputed status is kept
        even when the check rejects the request.
        """
        self.engine.apply(db, activity, now)
        try:
            return check()
        except ActivityServiceError:
            db.commit()
            raise

    def _check_schedule(
        self, start_time: datetime, end_time: datetime, registration_deadline: datetime
    ) -> None:
        if end_time <= start_time:
            raise BadRequestError("The end time must be after the start time")
        if registration_deadline >= start_time:
            raise BadRequestError("The registration deadline must be before the start time")

    def _check_changes(self, db: Session, activity: Activity, changes: Dict[str, Any]) -> None:
        if "category_id" in changes and crud_category.category.get(db, changes["category_id"]) is None:
            raise NotFoundError("Activity category not found")

        if {"start_time", "end_time", "registration_deadline"} & changes.keys():
            self._check_schedule(
                changes.get("start_time", as_utc(activity.start_time)),
                changes.get("end_time", as_utc(activity.end_time)),
                changes.get("registration_deadline", as_utc(activity.registration_deadline)),
            )

        if "max_participants" in changes:
            enrolled = crud_enrollment.enrollment.count_active(db, activity_id=activity.id)
            if changes["max_participants"] < enrolled:
                raise BadRequestError(
                    f"max_participants cannot be lower than the {enrolled} current enrollments"
                )
