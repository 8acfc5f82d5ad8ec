"""
Access Application Services
============================

Resolves the acting user from the user directory port.
"""

from abc import ABC, abstractmethod
from typing import Optional

from complaintdesk.access.domain import Actor, UserAccount
from complaintdesk.config import AccessReason
from complaintdesk.core import ForbiddenException, ResourceNotFoundException
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IUserDirectory(ABC):
    """Interface for user lookups (role, scope and granted permissions)."""

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[UserAccount]:
        """Get user account by ID."""


# ========== Application Services ==========

async def resolve_actor(directory: IUserDirectory, user_id: int) -> Actor:
    """
    Load a user and turn it into an actor.

    Raises:
        ResourceNotFoundException: unknown user
        ForbiddenException: user is deactivated
    """
    account = await directory.get_user(user_id)
    if account is None:
        raise ResourceNotFoundException("User", user_id)

    if not account.is_active:
        logger.warning("Inactive user rejected", extra={"user_id": user_id})
        raise ForbiddenException(AccessReason.INACTIVE_USER, details={"user_id": user_id})

    return account.to_actor()
