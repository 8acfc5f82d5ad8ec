"""
Access Domain Entities
=======================

Actors are modelled as a tagged union: an ``AdminActor`` holds every
permission everywhere, an ``ExecutiveActor`` carries an explicit permission
set and an optional zone/branch scope. The access policy pattern-matches on
the concrete type.
"""

import json
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Union

from complaintdesk.config import AccessReason, Role, VALID_ROLES
from complaintdesk.core import ForbiddenException


@dataclass(frozen=True)
class AdminActor:
    """Administrator. Implicitly holds all permissions in every zone."""

    user_id: int
    role: str = field(default=Role.ADMIN, init=False)


@dataclass(frozen=True)
class ExecutiveActor:
    """
    Executive scoped by granted permissions and an optional zone/branch.

    An executive without a zone is treated as covering every zone for the
    permissions it holds.
    """

    user_id: int
    permissions: FrozenSet[str] = frozenset()
    zone_id: Optional[int] = None
    branch_id: Optional[int] = None
    role: str = field(default=Role.EXECUTIVE, init=False)

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


Actor = Union[AdminActor, ExecutiveActor]


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access check. Never persisted."""

    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def parse_permissions(raw: Union[str, Iterable[str], None]) -> FrozenSet[str]:
    """
    Normalise a stored permission list.

    Users store permissions as a JSON array in a text column; older rows may
    hold a comma-separated string.
    """
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return frozenset()
        if text.startswith("["):
            try:
                raw = json.loads(text)
            except json.JSONDecodeError:
                return frozenset()
        else:
            raw = text.split(",")
    return frozenset(p.strip() for p in raw if isinstance(p, str) and p.strip())


@dataclass
class UserAccount:
    """
    User record as provided by the user directory.

    Only read by the engine; the actor it produces drives access checks.
    """

    id: int
    name: str
    role: str
    is_active: bool = True
    zone_id: Optional[int] = None
    branch_id: Optional[int] = None
    permissions: FrozenSet[str] = frozenset()

    def to_actor(self) -> Actor:
        """
        Build the runtime actor for this account.

        Raises:
            ForbiddenException: the stored role is neither admin nor executive
        """
        if self.role not in VALID_ROLES:
            raise ForbiddenException(
                AccessReason.UNKNOWN_ROLE, details={"user_id": self.id, "role": self.role}
            )
        if self.role == Role.ADMIN:
            return AdminActor(user_id=self.id)
        return ExecutiveActor(
            user_id=self.id,
            permissions=frozenset(self.permissions),
            zone_id=self.zone_id,
            branch_id=self.branch_id,
        )
