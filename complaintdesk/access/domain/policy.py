"""
Access Policy
=============

Single pure function deciding whether an actor may perform an operation
against a resource located in a given zone/branch.

Rules, in order:
1. Admins are always allowed.
2. Executives need the requested permission.
3. An executive bound to a zone may only touch that zone; one bound to a
   branch may only touch that branch.
4. An executive without a zone covers every zone for the permissions it
   holds (org-wide executive).
"""

from typing import Optional

from complaintdesk.access.domain.entities import (
    Actor, AdminActor, ExecutiveActor, AccessDecision
)
from complaintdesk.config import AccessReason
from complaintdesk.core import ForbiddenException


def evaluate_access(
    actor: Actor,
    permission: str,
    zone_id: Optional[int],
    branch_id: Optional[int]
) -> AccessDecision:
    """
    Decide whether ``actor`` holds ``permission`` for a resource.

    Args:
        actor: The acting user
        permission: Permission identifier, e.g. ``complaint.view``
        zone_id: Zone of the resource being accessed
        branch_id: Branch of the resource being accessed

    Returns:
        AccessDecision with a machine-readable reason
    """
    if isinstance(actor, AdminActor):
        return AccessDecision(True, AccessReason.ADMIN)

    if not isinstance(actor, ExecutiveActor):
        raise TypeError(f"Unsupported actor type: {type(actor).__name__}")

    if not actor.has_permission(permission):
        return AccessDecision(False, AccessReason.PERMISSION_DENIED)

    if actor.zone_id is not None and zone_id != actor.zone_id:
        return AccessDecision(False, AccessReason.ZONE_SCOPE_VIOLATION)

    if actor.branch_id is not None and branch_id != actor.branch_id:
        return AccessDecision(False, AccessReason.BRANCH_SCOPE_VIOLATION)

    return AccessDecision(True, AccessReason.GRANTED)


def require_access(
    actor: Actor,
    permission: str,
    zone_id: Optional[int],
    branch_id: Optional[int]
) -> AccessDecision:
    """
    Like ``evaluate_access`` but raises on denial.

    Raises:
        ForbiddenException: carrying the decision's reason
    """
    decision = evaluate_access(actor, permission, zone_id, branch_id)
    if not decision.allowed:
        raise ForbiddenException(
            decision.reason,
            permission=permission,
            details={
                "user_id": actor.user_id,
                "zone_id": zone_id,
                "branch_id": branch_id,
            }
        )
    return decision
