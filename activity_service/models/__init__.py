# activity_service/models/__init__.py
# Import all models to ensure SQLAlchemy can resolve relationships

from activity_service.db.base_class import Base
from activity_service.models.category import Category
from activity_service.models.activity import Activity
from activity_service.models.enrollment import Enrollment
