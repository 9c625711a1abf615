"""Request payload and role-based access validation.

Access rules are declared once in `PERMISSIONS`, mapping each operation
to the roles allowed to perform it; `AccessValidator.check` is the only
place they are evaluated.
"""

import logging
from enum import Enum
from typing import Dict, FrozenSet, Optional

from .errors import AccessDeniedError, InvalidPayloadError, NotFoundError
from .identity import Identity, IdentityClient, Role

logger = logging.getLogger("lessons.access")

ANY_ROLE = frozenset(Role)
STAFF = frozenset({Role.ADMIN, Role.INSTRUCTOR})
ADMIN_ONLY = frozenset({Role.ADMIN})


class Operation(str, Enum):
    LESSON_CREATE = "lesson:create"
    LESSON_READ = "lesson:read"
    LESSON_UPDATE = "lesson:update"
    LESSON_DELETE = "lesson:delete"
    LESSON_LIST = "lesson:list"
    LESSON_LIST_BY_GROUP = "lesson:list_by_group"
    LESSON_PLAN_CREATE = "lesson_plan:create"
    LESSON_PLAN_READ = "lesson_plan:read"
    LESSON_PLAN_UPDATE = "lesson_plan:update"
    LESSON_PLAN_DELETE = "lesson_plan:delete"
    LESSON_PLAN_LIST = "lesson_plan:list"
    ACTIVITY_CREATE = "activity:create"
    ACTIVITY_READ = "activity:read"
    ACTIVITY_UPDATE = "activity:update"
    ACTIVITY_DELETE = "activity:delete"
    ACTIVITY_LIST = "activity:list"

    def __str__(self) -> str:
        return self.value


PERMISSIONS: Dict[Operation, FrozenSet[Role]] = {
    Operation.LESSON_CREATE: STAFF,
    Operation.LESSON_READ: ANY_ROLE,
    Operation.LESSON_UPDATE: STAFF,
    Operation.LESSON_DELETE: STAFF,
    Operation.LESSON_LIST: STAFF,
    Operation.LESSON_LIST_BY_GROUP: ANY_ROLE,
    Operation.LESSON_PLAN_CREATE: STAFF,
    Operation.LESSON_PLAN_READ: STAFF,
    Operation.LESSON_PLAN_UPDATE: STAFF,
    Operation.LESSON_PLAN_DELETE: STAFF,
    Operation.LESSON_PLAN_LIST: STAFF,
    Operation.ACTIVITY_CREATE: STAFF,
    Operation.ACTIVITY_READ: STAFF,
    Operation.ACTIVITY_UPDATE: STAFF,
    Operation.ACTIVITY_DELETE: STAFF,
    Operation.ACTIVITY_LIST: STAFF,
}


def role_allowed(role: Optional[Role], allowed: FrozenSet[Role]) -> bool:
    return role is not None and role in allowed


class AccessValidator:
    """Validate payloads and caller roles for API operations."""

    def __init__(self, identity_client: IdentityClient):
        self.identity_client = identity_client

    def validate_payload(self, payload, kind: str) -> None:
        """Raise `InvalidPayloadError` when no payload was sent."""
        if payload is None:
            msg = f"No {kind} information was provided"
            logger.warning(msg)
            raise InvalidPayloadError(msg)

    def resolve(self, principal: Optional[str]) -> Identity:
        """Resolve the principal to an identity.

        Raises `AccessDeniedError` for a missing principal and lets the
        identity client's `NotFoundError` propagate.
        """
        if not principal:
            logger.warning("access_denied reason=no_principal")
            raise AccessDeniedError("No authorization provided")
        return self.identity_client.resolve_user(principal)

    def check(self, operation: Operation, principal: Optional[str]) -> Identity:
        """Return the caller's identity if its role may perform `operation`."""
        identity = self.resolve(principal)
        if not role_allowed(identity.role, PERMISSIONS[operation]):
            logger.warning(
                "access_denied operation=%s user=%s role=%s",
                operation,
                identity.username,
                identity.role.value if identity.role else None,
            )
            raise AccessDeniedError("Current user is not authorized")
        return identity

    def check_staff_or_user(self, user_id: int, principal: Optional[str]) -> Identity:
        """Allow admins, instructors, or the user owning the resource."""
        identity = self.resolve(principal)
        if not role_allowed(identity.role, STAFF) and identity.id != user_id:
            logger.warning(
                "access_denied operation=staff_or_user user=%s role=%s target_user_id=%s",
                identity.username,
                identity.role.value if identity.role else None,
                user_id,
            )
            raise AccessDeniedError("Current user is not authorized")
        return identity

    def _passes(self, allowed: FrozenSet[Role], principal: Optional[str]) -> bool:
        try:
            identity = self.resolve(principal)
        except (AccessDeniedError, NotFoundError):
            return False
        return role_allowed(identity.role, allowed)

    def is_admin(self, principal: Optional[str]) -> bool:
        return self._passes(ADMIN_ONLY, principal)

    def is_admin_or_instructor(self, principal: Optional[str]) -> bool:
        return self._passes(STAFF, principal)

    def is_authenticated_user(self, user_id: int, principal: Optional[str]) -> bool:
        """Return True when the principal resolves to `user_id`."""
        try:
            identity = self.resolve(principal)
        except (AccessDeniedError, NotFoundError):
            return False
        return identity.id == user_id
