# activity_service/services/lifecycle/__init__.py

from .authorization import Action, Actor, Decision, authorize
from .capacity_guard import Admitted, CapacityGuard, Rejected, RejectionReason
from .enrollment_manager import EnrollmentManager
from .locks import ActivityLockRegistry
from .service import ActivityLifecycleService
from .status_engine import StatusTransitionEngine
