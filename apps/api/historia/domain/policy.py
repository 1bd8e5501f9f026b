"""Role-based authorization rules shared by every router."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from historia.schemas.auth import Principal, Role


class ResourceKind(str, Enum):
    PERIOD = "period"
    EVENT = "event"
    COMMENT = "comment"
    MEDIA = "media"


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    MODERATE = "moderate"


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    INSUFFICIENT_ROLE = "insufficient role"


@dataclass(frozen=True, slots=True)
class AuthorizationDecision:
    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> AuthorizationDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> AuthorizationDecision:
        return cls(allowed=False, reason=reason)


_ALL_ROLES: frozenset[Role] = frozenset(Role)
_STAFF: frozenset[Role] = frozenset({Role.ADMIN, Role.MODERATOR})

_POLICY: dict[tuple[ResourceKind, Action], frozenset[Role]] = {
    (ResourceKind.PERIOD, Action.CREATE): _STAFF,
    (ResourceKind.PERIOD, Action.UPDATE): _STAFF,
    (ResourceKind.PERIOD, Action.DELETE): _STAFF,
    (ResourceKind.EVENT, Action.CREATE): _ALL_ROLES,
    (ResourceKind.EVENT, Action.UPDATE): _ALL_ROLES,
    (ResourceKind.EVENT, Action.DELETE): _STAFF,
    (ResourceKind.COMMENT, Action.CREATE): _ALL_ROLES,
    (ResourceKind.COMMENT, Action.APPROVE): _STAFF,
    (ResourceKind.COMMENT, Action.DELETE): _STAFF,
    (ResourceKind.COMMENT, Action.MODERATE): _STAFF,
    (ResourceKind.MEDIA, Action.CREATE): _STAFF,
    (ResourceKind.MEDIA, Action.UPDATE): _STAFF,
    (ResourceKind.MEDIA, Action.DELETE): _STAFF,
}


def allowed_roles(resource_kind: ResourceKind, action: Action) -> list[Role]:
    """Return deterministically ordered roles permitted for a resource action."""
    return sorted(_POLICY.get((resource_kind, action), frozenset()), key=lambda role: role.value)


def evaluate(principal: Principal | None, resource_kind: ResourceKind, action: Action) -> AuthorizationDecision:
    """Decide whether ``principal`` may perform ``action`` on ``resource_kind``.

    Combinations missing from the table are denied.
    """
    if principal is None:
        return AuthorizationDecision.deny(DenyReason.UNAUTHENTICATED)
    if principal.role not in _POLICY.get((resource_kind, action), frozenset()):
        return AuthorizationDecision.deny(DenyReason.INSUFFICIENT_ROLE)
    return AuthorizationDecision.allow()
