"""
Access Infrastructure Layer
===========================

- Models: SQLAlchemy ORM model for users
- Repositories: user directory adapters
"""

from complaintdesk.access.infrastructure.models import UserModel
from complaintdesk.access.infrastructure.repositories import (
    SQLAlchemyUserDirectory,
    InMemoryUserDirectory,
)

__all__ = [
    "UserModel",
    "SQLAlchemyUserDirectory",
    "InMemoryUserDirectory",
]
