"""
Access Infrastructure Repositories
===================================

User directory implementations.
"""

from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.access.application import IUserDirectory
from complaintdesk.access.domain import UserAccount, parse_permissions
from complaintdesk.access.infrastructure.models import UserModel


class SQLAlchemyUserDirectory(IUserDirectory):
    """Reads users from the 'users' table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_user(self, user_id: int) -> Optional[UserAccount]:
        """Get user account by ID."""
        stmt = select(UserModel).where(UserModel.id == user_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None

        return UserAccount(
            id=model.id,
            name=model.name,
            role=model.role,
            is_active=model.is_active,
            zone_id=model.zone_id,
            branch_id=model.branch_id,
            permissions=parse_permissions(model.permissions),
        )


class InMemoryUserDirectory(IUserDirectory):
    """Dictionary-backed directory for tests and local runs."""

    def __init__(self, users: Iterable[UserAccount] = ()):
        self._users: Dict[int, UserAccount] = {user.id: user for user in users}

    def add(self, user: UserAccount) -> None:
        self._users[user.id] = user

    async def get_user(self, user_id: int) -> Optional[UserAccount]:
        return self._users.get(user_id)
