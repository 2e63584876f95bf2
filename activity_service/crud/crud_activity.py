# activity_service/crud/crud_activity.py
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, exists
from sqlalchemy.orm import Session, lazyload, undefer

from .base import CRUDBase
from activity_service.constants.activity import EnrollmentStatus
from activity_service.models.activity import Activity
from activity_service.models.enrollment import Enrollment
from activity_service.schemas.activity import ActivityCreate, ActivityUpdate


class CRUDActivity(CRUDBase[Activity, ActivityCreate, ActivityUpdate]):
    """
    Record store access for activities.

    Methods that take part in a lifecycle mutation only flush; the calling
    service owns the transaction and commits or rolls back as a unit.
    """

    def get_with_count(self, db: Session, *, id: int) -> Optional[Activity]:
        return (
            db.query(self.model)
            .options(undefer(self.model.enrolled_count))
            .filter(self.model.id == id)
            .first()
        )

    def get_for_update(self, db: Session, *, id: int) -> Optional[Activity]:
        """
        Loads the activity and takes a row lock on it until the transaction
        ends. Concurrent admissions for the same activity queue up here.
        """
        return (
            db.query(self.model)
            .options(lazyload(self.model.category))
            .filter(self.model.id == id)
            .populate_existing()
            .with_for_update(of=self.model)
            .first()
        )

    def create_with_organizer(
        self, db: Session, *, obj_in: Dict[str, Any], organizer_id: int
    ) -> Activity:
        db_obj = self.model(**obj_in, organizer_id=organizer_id)
        db.add(db_obj)
        db.flush()
        return db_obj

    def apply_changes(
        self, db: Session, *, db_obj: Activity, changes: Dict[str, Any]
    ) -> Dict[str, Dict[str, Any]]:
        """
        Applies field changes and returns the ones that actually differ, as
        {field: {"old": ..., "new": ...}}.
        """
        change_data = {}
        for field, value in changes.items():
            old = getattr(db_obj, field)
            if old != value:
                change_data[field] = {"old": old, "new": value}
                setattr(db_obj, field, value)
        if change_data:
            db.add(db_obj)
            db.flush()
        return change_data

    def set_status(self, db: Session, *, db_obj: Activity, status: str) -> Activity:
        db_obj.status = status
        db.add(db_obj)
        db.flush()
        return db_obj

    def compare_and_set_status(
        self, db: Session, *, id: int, expected: str, new: str
    ) -> bool:
        """
        Writes `new` only if the stored status is still `expected`.
        Returns False when another writer changed it first.
        """
        updated = (
            db.query(self.model)
            .filter(self.model.id == id, self.model.status == expected)
            .update({self.model.status: new}, synchronize_session="evaluate")
        )
        return updated == 1

    def get_multi_filtered(
        self,
        db: Session,
        *,
        skip: int = 0,
        limit: int = 10,
        category_id: Optional[int] = None,
        status: Optional[str] = None,
        fee_type: Optional[str] = None,
        organizer_id: Optional[int] = None,
        enrolled_user_id: Optional[int] = None,
        sort: str = "newest",
    ) -> Tuple[List[Activity], int]:
        """
        Gets a page of activities with exact-match filters and the total
        count before pagination.
        """
        query = db.query(self.model)

        if category_id:
            query = query.filter(self.model.category_id == category_id)
        if status:
            query = query.filter(self.model.status == status)
        if fee_type:
            query = query.filter(self.model.fee_type == fee_type)
        if organizer_id is not None:
            query = query.filter(self.model.organizer_id == organizer_id)
        if enrolled_user_id is not None:
            query = query.filter(
                exists().where(
                    and_(
                        Enrollment.activity_id == self.model.id,
                        Enrollment.user_id == enrolled_user_id,
                        Enrollment.status == EnrollmentStatus.ENROLLED.value,
                    )
                )
            )

        total_count = query.count()

        if sort == "oldest":
            query = query.order_by(self.model.created_at.asc(), self.model.id.asc())
        elif sort == "start_time":
            query = query.order_by(self.model.start_time.asc(), self.model.id.asc())
        else:
            query = query.order_by(self.model.created_at.desc(), self.model.id.desc())

        items = (
            query.options(undefer(self.model.enrolled_count))
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total_count

    def hard_delete(self, db: Session, *, db_obj: Activity) -> int:
        """
        Deletes the activity together with all of its enrollments.
        Returns the number of enrollment rows removed.
        """
        removed = (
            db.query(Enrollment)
            .filter(Enrollment.activity_id == db_obj.id)
            .delete(synchronize_session=False)
        )
        db.delete(db_obj)
        db.flush()
        return removed


activity = CRUDActivity(Activity)
