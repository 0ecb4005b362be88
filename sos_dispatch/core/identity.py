"""Identity verification: authenticate a bearer credential, then authorize."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from sos_dispatch.core.errors import Forbidden, Unauthenticated
from sos_dispatch.core.security import decode_access_token


class Role(str, enum.Enum):
    REQUESTER = "requester"
    VOLUNTEER = "volunteer"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def satisfies(self, required: Role) -> bool:
        """Admin satisfies volunteer checks, volunteer satisfies requester checks."""
        return self.rank >= required.rank


_RANKS = {Role.REQUESTER: 0, Role.VOLUNTEER: 1, Role.ADMIN: 2}


@dataclass(frozen=True)
class Identity:
    subject_id: int | None
    role: Role
    name: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.subject_id is None


ANONYMOUS = Identity(subject_id=None, role=Role.REQUESTER)


def authenticate(token: str | None) -> Identity:
    """Resolve a bearer token to an identity. No token means anonymous requester."""
    if not token:
        return ANONYMOUS
    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        raise Unauthenticated("Invalid or expired token")
    try:
        role = Role(payload.get("role"))
        subject_id = int(payload["sub"])
    except (TypeError, ValueError) as exc:
        raise Unauthenticated("Token is not valid") from exc
    if role is Role.REQUESTER:
        # Requesters never hold tokens
        raise Unauthenticated("Token is not valid")
    return Identity(subject_id=subject_id, role=role, name=payload.get("name"))


def require_role(identity: Identity, role: Role) -> Identity:
    """Raise Forbidden unless the identity's role covers `role`."""
    if not identity.role.satisfies(role):
        raise Forbidden(f"Access denied: {role.value} role required")
    return identity
