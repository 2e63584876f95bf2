# activity_service/crud/crud_category.py
import logging
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from .base import CRUDBase
from activity_service.models.category import Category

logger = logging.getLogger(__name__)


class CategoryCreate(BaseModel):
    name: str


class CRUDCategory(CRUDBase[Category, CategoryCreate, CategoryCreate]):
    def get_by_name(self, db: Session, *, name: str) -> Optional[Category]:
        return db.query(self.model).filter(self.model.name == name).first()

    def get_all(self, db: Session) -> List[Category]:
        return db.query(self.model).order_by(self.model.id.asc()).all()

    def ensure_defaults(self, db: Session, *, names: List[str]) -> int:
        """
        Creates any of the given categories that do not exist yet.
        Returns the number of categories created.
        """
        created = 0
        for name in names:
            if self.get_by_name(db, name=name) is None:
                self.create(db, obj_in=CategoryCreate(name=name))
                created += 1
        if created:
            logger.info(f"Seeded {created} default categories")
        return created


category = CRUDCategory(Category)
