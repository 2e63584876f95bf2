# activity_service/models/category.py
from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from activity_service.db.base_class import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True)

    activities = relationship("Activity", back_populates="category")
