"""Owner-or-admin capability checks for presentation management."""

from typing import Callable

from services.presentations.errors import ForbiddenError
from shared.enums import UserRole
from shared.models import Identity, Presentation

CanManage = Callable[[Presentation, Identity], bool]

STAFF_ROLES = {UserRole.FACULTY, UserRole.ADMIN}


def can_manage(presentation: Presentation, identity: Identity) -> bool:
    """True when the identity is an administrator or owns the presentation."""
    return identity.role == UserRole.ADMIN or presentation.owner_id == identity.id


def ensure_can_manage(
    presentation: Presentation, identity: Identity, predicate: CanManage = can_manage
) -> None:
    if not predicate(presentation, identity):
        raise ForbiddenError("You are not authorized to manage this presentation")


def ensure_staff(identity: Identity) -> None:
    if identity.role not in STAFF_ROLES:
        raise ForbiddenError("Access denied. Faculty or admin privileges required.")
