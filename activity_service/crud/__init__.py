# activity_service/crud/__init__.py

from .crud_activity import activity
from .crud_category import category
from .crud_enrollment import enrollment
