# activity_service/services/lifecycle/authorization.py
"""
Authorization policy for activity mutations.

Every mutating operation asks `authorize` before touching the record store,
so ownership and role rules live in one place.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from activity_service.core.exceptions import ForbiddenError
from activity_service.models.activity import Activity

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class Action(str, Enum):
    CREATE = "create"
    ENROLL = "enroll"
    UPDATE = "update"
    CANCEL = "cancel"
    SET_STATUS = "set_status"
    DELETE = "delete"
    ADMIN = "admin"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None


ORGANIZER_ACTIONS = frozenset({Action.UPDATE, Action.CANCEL, Action.SET_STATUS})
OPEN_ACTIONS = frozenset({Action.CREATE, Action.ENROLL})

DENIAL_MESSAGES = {
    Action.UPDATE: "Only the organizer can modify this activity",
    Action.CANCEL: "Only the organizer can cancel this activity",
    Action.SET_STATUS: "Only the organizer can change the activity status",
    Action.DELETE: "Only administrators can delete activities",
    Action.ADMIN: "Administrator role required",
}


def authorize(actor: Actor, activity: Optional[Activity], action: Action) -> Decision:
    if actor.is_admin:
        return Decision(allowed=True)
    if action in OPEN_ACTIONS:
        return Decision(allowed=True)
    if (
        action in ORGANIZER_ACTIONS
        and activity is not None
        and activity.organizer_id == actor.user_id
    ):
        return Decision(allowed=True)
    return Decision(allowed=False, reason=DENIAL_MESSAGES.get(action, "Not authorized"))


def require(actor: Actor, activity: Optional[Activity], action: Action) -> None:
    """Raises ForbiddenError when the policy denies the action."""
    decision = authorize(actor, activity, action)
    if not decision.allowed:
        raise ForbiddenError(decision.reason)
