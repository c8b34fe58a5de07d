"""Role-Based Access Control helpers."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import select

from cams.core.database import db
from cams.core.exceptions import AuthenticationError
from cams.core.models import Role, User, UserRole


@dataclass(frozen=True)
class RequestContext:
    """Caller identity resolved once per request."""
    user_id: Optional[int]
    username: str
    roles: frozenset[str] = field(default_factory=frozenset)
    ip_address: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def has_role(self, role: str) -> bool:
        return role.lower() in {r.lower() for r in self.roles}


ANONYMOUS = RequestContext(user_id=None, username="anonymous")


def is_authorized(caller_roles: Iterable[str], required: Iterable[str]) -> bool:
    """Return True when the caller holds at least one of the required roles.

    Comparison is case-insensitive. An empty ``required`` means any
    authenticated caller is allowed.
    """
    required_lower = {role.lower() for role in required}
    if not required_lower:
        return True
    return any(role.lower() in required_lower for role in caller_roles)


def load_active_role_names(user_id: int) -> list[str]:
    """Names of the active roles currently assigned (and active) for a user."""
    stmt = (
        select(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id, UserRole.is_active.is_(True), Role.is_active.is_(True))
        .order_by(Role.name)
    )
    return list(db.session.scalars(stmt))


def resolve_request_context(claims: dict, ip_address: Optional[str] = None) -> RequestContext:
    """Build the caller context from validated token claims.

    The user id comes from ``sub`` (or ``nameid``/``user_id``); the role set
    is always loaded from the store rather than trusted from the token.

    Raises:
        AuthenticationError: If the subject is missing, unknown or inactive
    """
    raw_id = claims.get("sub") or claims.get("nameid") or claims.get("user_id")
    try:
        user_id = int(raw_id)
    except (TypeError, ValueError):
        raise AuthenticationError("Token subject is not a valid user id")

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("Token subject is unknown or inactive")

    return RequestContext(
        user_id=user.id,
        username=user.username,
        roles=frozenset(load_active_role_names(user.id)),
        ip_address=ip_address,
    )
