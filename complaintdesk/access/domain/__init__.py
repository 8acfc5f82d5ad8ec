"""
Access Domain Layer
===================

Contains:
- Entities: AdminActor / ExecutiveActor tagged union, AccessDecision, UserAccount
- Policy: evaluate_access / require_access

Pure Python - no infrastructure dependencies.
"""

from complaintdesk.access.domain.entities import (
    Actor,
    AdminActor,
    ExecutiveActor,
    AccessDecision,
    UserAccount,
    parse_permissions,
)
from complaintdesk.access.domain.policy import evaluate_access, require_access

__all__ = [
    "Actor",
    "AdminActor",
    "ExecutiveActor",
    "AccessDecision",
    "UserAccount",
    "parse_permissions",
    "evaluate_access",
    "require_access",
]
