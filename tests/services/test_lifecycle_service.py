"""
Tests for ActivityLifecycleService activity operations: creation and
update checks, manual status changes, admin overrides, listings and
command dispatch.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from activity_service.constants.activity import ActivityStatus, EnrollmentStatus, FeeType
from activity_service.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
)
from activity_service.models.activity import Activity
from activity_service.schemas.activity import ActivityCreate, ActivityQuery, ActivityUpdate
from activity_service.schemas.commands import (
    ActivityCommandAdapter,
    CancelActivity,
    CancelEnrollment,
    CreateActivity,
    Enroll,
    SetStatus,
)
from activity_service.services.lifecycle import Actor
from tests.utils.activity import count_rows, insert_activity, insert_enrollment
from tests.utils.clock import BASE_NOW

ORGANIZER = Actor(user_id=1)
STRANGER = Actor(user_id=2)
ADMIN = Actor(user_id=99, role="admin")


def activity_fields(category_id: int, **overrides) -> ActivityCreate:
    data = dict(
        name="Evening Run",
        location="Riverside",
        registration_deadline=BASE_NOW + timedelta(days=1),
        start_time=BASE_NOW + timedelta(days=2),
        end_time=BASE_NOW + timedelta(days=2, hours=2),
        max_participants=8,
        category_id=category_id,
    )
    data.update(overrides)
    return ActivityCreate(**data)


def stored_status(db, activity_id: int) -> str:
    db.expire_all()
    return db.get(Activity, activity_id).status


class TestCreateActivity:
    def test_create_defaults_to_preparing(self, db, service, category):
        activity = service.create_activity(db, ORGANIZER, activity_fields(category.id))

        assert activity.id is not None
        assert activity.status == ActivityStatus.PREPARING.value
        assert activity.organizer_id == ORGANIZER.user_id
        assert activity.fee_type == FeeType.FREE.value
        assert activity.enrolled_count == 0
        assert activity.category.name == "Basketball"

    def test_create_as_recruiting(self, db, service, category):
        activity = service.create_activity(
            db, ORGANIZER, activity_fields(category.id, status=ActivityStatus.RECRUITING)
        )
        assert activity.status == ActivityStatus.RECRUITING.value

    def test_create_rejects_later_initial_status(self, db, service, category):
        with pytest.raises(BadRequestError):
            service.create_activity(
                db, ORGANIZER, activity_fields(category.id, status=ActivityStatus.ONGOING)
            )

    def test_create_with_unknown_category(self, db, service, category):
        with pytest.raises(NotFoundError, match="category"):
            service.create_activity(db, ORGANIZER, activity_fields(category.id + 100))

    def test_end_must_follow_start(self, db, service, category):
        fields = activity_fields(category.id, end_time=BASE_NOW + timedelta(days=2))
        with pytest.raises(BadRequestError, match="end time"):
            service.create_activity(db, ORGANIZER, fields)

    def test_deadline_must_precede_start(self, db, service, category):
        fields = activity_fields(
            category.id, registration_deadline=BASE_NOW + timedelta(days=2)
        )
        with pytest.raises(BadRequestError, match="deadline"):
            service.create_activity(db, ORGANIZER, fields)

    def test_deadline_must_be_in_the_future(self, db, service, category):
        fields = activity_fields(category.id, registration_deadline=BASE_NOW)
        with pytest.raises(BadRequestError, match="future"):
            service.create_activity(db, ORGANIZER, fields)

    def test_schema_rejects_non_positive_capacity(self, category):
        with pytest.raises(ValidationError):
            activity_fields(category.id, max_participants=0)


class TestUpdateActivity:
    def test_organizer_updates_fields(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        updated = service.update_activity(
            db,
            activity.id,
            ORGANIZER,
            ActivityUpdate(name="Renamed", fee_amount=Decimal("12.50"), fee_type=FeeType.AA),
        )

        assert updated.name == "Renamed"
        assert updated.fee_type == FeeType.AA.value
        assert updated.fee_amount == Decimal("12.50")

    def test_other_user_is_forbidden(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        with pytest.raises(ForbiddenError):
            service.update_activity(db, activity.id, STRANGER, ActivityUpdate(name="Mine now"))

    def test_admin_can_update_any_activity(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        updated = service.update_activity_as_admin(
            db, activity.id, ADMIN, ActivityUpdate(location="Gym B")
        )

        assert updated.location == "Gym B"

    def test_admin_variant_requires_admin(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        with pytest.raises(ForbiddenError):
            service.update_activity_as_admin(db, activity.id, ORGANIZER, ActivityUpdate(name="x"))

    def test_cannot_update_after_start(self, db, service, clock, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)
        clock.advance(timedelta(days=2, minutes=30))

        with pytest.raises(BadRequestError):
            service.update_activity(db, activity.id, ORGANIZER, ActivityUpdate(name="Late"))
        # The recomputed status is still saved.
        assert stored_status(db, activity.id) == ActivityStatus.ONGOING.value

    def test_cannot_update_cancelled(self, db, service, category):
        activity = insert_activity(
            db,
            now=BASE_NOW,
            category_id=category.id,
            organizer_id=1,
            status=ActivityStatus.CANCELLED,
        )
        with pytest.raises(BadRequestError):
            service.update_activity(db, activity.id, ORGANIZER, ActivityUpdate(name="Back"))

    def test_time_order_checked_against_stored_values(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        with pytest.raises(BadRequestError, match="deadline"):
            service.update_activity(
                db,
                activity.id,
                ORGANIZER,
                ActivityUpdate(registration_deadline=BASE_NOW + timedelta(days=3)),
            )

    def test_cannot_lower_capacity_below_enrolled(self, db, service, category):
        activity = insert_activity(
            db, now=BASE_NOW, category_id=category.id, organizer_id=1, max_participants=5
        )
        for user_id in (11, 12, 13):
            insert_enrollment(db, activity_id=activity.id, user_id=user_id)

        with pytest.raises(BadRequestError, match="max_participants"):
            service.update_activity(db, activity.id, ORGANIZER, ActivityUpdate(max_participants=2))

        updated = service.update_activity(
            db, activity.id, ORGANIZER, ActivityUpdate(max_participants=3)
        )
        assert updated.max_participants == 3
        assert updated.enrolled_count == 3

    def test_explicit_null_for_required_field_is_ignored(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        updated = service.update_activity(
            db, activity.id, ORGANIZER, ActivityUpdate(name=None, description=None)
        )

        assert updated.name == "Test Activity"


class TestSetStatus:
    def test_organizer_opens_recruiting(self, db, service, category):
        activity = insert_activity(
            db,
            now=BASE_NOW,
            category_id=category.id,
            organizer_id=1,
            status=ActivityStatus.PREPARING,
        )

        updated = service.set_status(db, activity.id, ORGANIZER, "recruiting")

        assert updated.status == ActivityStatus.RECRUITING.value

    def test_cancelled_activity_cannot_be_reopened(self, db, service, clock, category):
        activity = insert_activity(
            db,
            now=BASE_NOW,
            category_id=category.id,
            organizer_id=1,
            status=ActivityStatus.CANCELLED,
        )
        for now in (BASE_NOW, BASE_NOW + timedelta(days=30)):
            clock.set(now)
            with pytest.raises(BadRequestError):
                service.set_status(db, activity.id, ORGANIZER, "recruiting")
            with pytest.raises(BadRequestError):
                service.set_status_as_admin(db, activity.id, ADMIN, "recruiting")
        assert stored_status(db, activity.id) == ActivityStatus.CANCELLED.value

    def test_finished_activity_is_locked(self, db, service, clock, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)
        clock.advance(timedelta(days=3))

        with pytest.raises(BadRequestError):
            service.set_status(db, activity.id, ORGANIZER, "recruiting")
        assert stored_status(db, activity.id) == ActivityStatus.FINISHED.value

    def test_invalid_status_value(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        with pytest.raises(BadRequestError, match="Invalid"):
            service.set_status(db, activity.id, ORGANIZER, "paused")

    def test_stranger_cannot_change_status(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        with pytest.raises(ForbiddenError):
            service.set_status(db, activity.id, STRANGER, "preparing")

    def test_set_cancelled_cascades(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)
        insert_enrollment(db, activity_id=activity.id, user_id=11)
        insert_enrollment(db, activity_id=activity.id, user_id=12)

        service.set_status(db, activity.id, ORGANIZER, "cancelled")

        assert count_rows(db, activity.id, EnrollmentStatus.ENROLLED) == 0
        assert count_rows(db, activity.id, EnrollmentStatus.CANCELLED) == 2


class TestCancelActivity:
    def test_stranger_cannot_cancel(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        with pytest.raises(ForbiddenError):
            service.cancel_activity(db, activity.id, STRANGER)

    def test_organizer_cannot_cancel_ongoing(self, db, service, clock, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)
        clock.advance(timedelta(days=2, hours=1))

        with pytest.raises(BadRequestError):
            service.cancel_activity(db, activity.id, ORGANIZER)

    def test_admin_can_cancel_ongoing(self, db, service, clock, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)
        insert_enrollment(db, activity_id=activity.id, user_id=11)
        clock.advance(timedelta(days=2, hours=1))

        cancelled = service.cancel_activity_as_admin(db, activity.id, ADMIN)

        assert cancelled == 1
        assert stored_status(db, activity.id) == ActivityStatus.CANCELLED.value

    def test_admin_cannot_cancel_finished(self, db, service, clock, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)
        clock.advance(timedelta(days=5))

        with pytest.raises(BadRequestError):
            service.cancel_activity_as_admin(db, activity.id, ADMIN)

    def test_admin_cannot_cancel_twice(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)
        service.cancel_activity_as_admin(db, activity.id, ADMIN)

        with pytest.raises(BadRequestError):
            service.cancel_activity_as_admin(db, activity.id, ADMIN)

    def test_non_admin_cannot_use_admin_cancel(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        with pytest.raises(ForbiddenError):
            service.cancel_activity_as_admin(db, activity.id, ORGANIZER)


class TestDeleteActivity:
    def test_admin_hard_delete_removes_enrollments(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id)
        insert_enrollment(db, activity_id=activity.id, user_id=11)
        activity_id = activity.id

        service.delete_activity(db, activity_id, ADMIN)

        db.expire_all()
        assert db.get(Activity, activity_id) is None
        assert count_rows(db, activity_id) == 0

    def test_organizer_cannot_hard_delete(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)

        with pytest.raises(ForbiddenError):
            service.delete_activity(db, activity.id, ORGANIZER)

    def test_delete_unknown(self, db, service):
        with pytest.raises(NotFoundError):
            service.delete_activity(db, 12345, ADMIN)


class TestReads:
    def test_get_activity_finishes_past_activity_and_persists(self, db, service, clock, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id)
        clock.advance(timedelta(days=3))

        fetched = service.get_activity_by_id(db, activity.id)

        assert fetched.status == ActivityStatus.FINISHED.value
        assert stored_status(db, activity.id) == ActivityStatus.FINISHED.value

    def test_get_unknown_activity(self, db, service):
        with pytest.raises(NotFoundError):
            service.get_activity_by_id(db, 4242)

    def test_get_reports_enrolled_count(self, db, service, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id)
        insert_enrollment(db, activity_id=activity.id, user_id=11)
        insert_enrollment(
            db, activity_id=activity.id, user_id=12, status=EnrollmentStatus.CANCELLED
        )

        assert service.get_activity_by_id(db, activity.id).enrolled_count == 1

    def test_list_recomputes_statuses(self, db, service, clock, category):
        insert_activity(db, now=BASE_NOW, category_id=category.id)
        insert_activity(
            db, now=BASE_NOW, category_id=category.id, start_in=timedelta(days=10),
            deadline_in=timedelta(days=9),
        )
        clock.advance(timedelta(days=3))

        page = service.list_activities(db, ActivityQuery(sort="start_time"))

        assert page["total"] == 2
        assert [a.status for a in page["items"]] == [
            ActivityStatus.FINISHED.value,
            ActivityStatus.RECRUITING.value,
        ]

    def test_list_pagination(self, db, service, category):
        for _ in range(5):
            insert_activity(db, now=BASE_NOW, category_id=category.id)

        page = service.list_activities(db, ActivityQuery(page=2, limit=2))

        assert page["total"] == 5
        assert page["total_pages"] == 3
        assert len(page["items"]) == 2

    def test_my_and_enrolled_listings(self, db, service, category):
        mine = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=1)
        other = insert_activity(db, now=BASE_NOW, category_id=category.id, organizer_id=5)
        service.enroll(db, other.id, ORGANIZER)

        organized = service.list_my_activities(db, ORGANIZER, ActivityQuery())
        enrolled = service.list_enrolled_activities(db, ORGANIZER, ActivityQuery())

        assert [a.id for a in organized["items"]] == [mine.id]
        assert [a.id for a in enrolled["items"]] == [other.id]
        assert enrolled["items"][0].enrolled_count == 1

    def test_admin_listing_requires_admin(self, db, service, category):
        insert_activity(db, now=BASE_NOW, category_id=category.id)

        with pytest.raises(ForbiddenError):
            service.list_all_activities_for_admin(db, ORGANIZER, ActivityQuery())
        assert service.list_all_activities_for_admin(db, ADMIN, ActivityQuery())["total"] == 1

    def test_initialize_categories_is_idempotent(self, db, service):
        assert service.initialize_categories(db, ["Fitness", "Football"]) == 2
        assert service.initialize_categories(db, ["Fitness", "Football"]) == 0
        assert [c.name for c in service.list_categories(db)] == ["Fitness", "Football"]


class TestCommands:
    def test_payload_parses_into_variant(self):
        command = ActivityCommandAdapter.validate_python({"kind": "enroll", "activity_id": 3})
        assert command == Enroll(activity_id=3)

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValidationError):
            ActivityCommandAdapter.validate_python({"kind": "rate", "activity_id": 3})

    def test_variant_requires_its_fields(self):
        with pytest.raises(ValidationError):
            ActivityCommandAdapter.validate_python({"kind": "set_status", "activity_id": 3})

    def test_execute_dispatches(self, db, service, category):
        created = service.execute(
            db,
            ORGANIZER,
            CreateActivity(fields=activity_fields(category.id, status=ActivityStatus.RECRUITING)),
        )
        enrollment = service.execute(db, STRANGER, Enroll(activity_id=created.id))
        assert enrollment.user_id == STRANGER.user_id

        service.execute(db, ORGANIZER, SetStatus(activity_id=created.id, status="preparing"))
        assert stored_status(db, created.id) == ActivityStatus.PREPARING.value

        assert service.execute(db, ORGANIZER, CancelActivity(activity_id=created.id)) == 1

    def test_cancel_enrollment_command_is_gated_on_start(self, db, service, clock, category):
        activity = insert_activity(db, now=BASE_NOW, category_id=category.id)
        service.enroll(db, activity.id, STRANGER)
        clock.advance(timedelta(days=2, minutes=1))

        with pytest.raises(BadRequestError):
            service.execute(db, STRANGER, CancelEnrollment(activity_id=activity.id))
        assert count_rows(db, activity.id, EnrollmentStatus.ENROLLED) == 1
