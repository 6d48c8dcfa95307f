"""Authorization rules for the booking core.

``decide`` is a pure function of (actor, action, target). Targets only carry
the ownership ids a rule needs, so callers resolve them before asking:

    target = Target(client_id=appt.client_id, barber_owner_id=barber.user_id)
    enforce(actor, Action.CANCEL_APPOINTMENT, target)
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import Forbidden
from .models import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    id: int
    role: Role


@dataclass(frozen=True)
class Target:
    client_id: Optional[int] = None
    barber_owner_id: Optional[int] = None


class Action(str, enum.Enum):
    VIEW_APPOINTMENT = "view appointment"
    CREATE_APPOINTMENT = "create appointment"
    CANCEL_APPOINTMENT = "cancel appointment"
    CONFIRM_APPOINTMENT = "confirm appointment"
    COMPLETE_APPOINTMENT = "complete appointment"
    LIST_OWN_APPOINTMENTS = "list own appointments"
    LIST_ALL_APPOINTMENTS = "list all appointments"
    CHECK_CONFLICTS = "check conflicts"
    MANAGE_SCHEDULE = "manage schedule"
    VIEW_SCHEDULES = "view schedules"
    WRITE_CATALOG = "write catalog"
    SET_BARBER_AVAILABILITY = "set barber availability"


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"


def _owns(actor_id: int, owner_id: Optional[int]) -> bool:
    return owner_id is not None and owner_id == actor_id


def _is_client_owner(actor: Actor, target: Optional[Target]) -> bool:
    return actor.role == Role.CLIENT and target is not None and _owns(actor.id, target.client_id)


def _is_barber_owner(actor: Actor, target: Optional[Target]) -> bool:
    return actor.role == Role.BARBER and target is not None and _owns(actor.id, target.barber_owner_id)


def _allowed(actor: Actor, action: Action, target: Optional[Target]) -> bool:
    if actor.role == Role.ADMIN:
        return True

    if action == Action.VIEW_APPOINTMENT:
        return _is_client_owner(actor, target) or _is_barber_owner(actor, target)
    if action in (Action.CREATE_APPOINTMENT, Action.CANCEL_APPOINTMENT):
        return _is_client_owner(actor, target)
    if action in (Action.CONFIRM_APPOINTMENT, Action.COMPLETE_APPOINTMENT):
        return _is_barber_owner(actor, target)
    if action == Action.LIST_OWN_APPOINTMENTS:
        return actor.role in (Role.CLIENT, Role.BARBER)
    if action == Action.CHECK_CONFLICTS:
        return actor.role == Role.BARBER
    if action in (Action.MANAGE_SCHEDULE, Action.VIEW_SCHEDULES, Action.SET_BARBER_AVAILABILITY):
        return _is_barber_owner(actor, target)
    # LIST_ALL_APPOINTMENTS, WRITE_CATALOG and anything unknown are admin only
    return False


def decide(actor: Actor, action: Action, target: Optional[Target] = None) -> Decision:
    return Decision.ALLOW if _allowed(actor, action, target) else Decision.DENY


def enforce(actor: Actor, action: Action, target: Optional[Target] = None) -> None:
    if decide(actor, action, target) is Decision.DENY:
        logger.warning("Denied %s for actor %s (%s)", action.value, actor.id, actor.role.value)
        raise Forbidden(f"Not allowed to {action.value}")
