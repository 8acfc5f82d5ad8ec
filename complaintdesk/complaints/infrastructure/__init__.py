"""
Complaints Infrastructure Layer
================================

Infrastructure implementations for the complaint lifecycle:
- Models: SQLAlchemy ORM models
- Repositories: SQLAlchemy adapters and unit of work
- Memory: process-local store with the same semantics
"""

from complaintdesk.complaints.infrastructure.models import (
    FarmerModel,
    ComplaintModel,
    CallLogModel,
    StatusChangeModel,
)
from complaintdesk.complaints.infrastructure.repositories import (
    SQLAlchemyComplaintRepository,
    SQLAlchemyCallLogRepository,
    SQLAlchemyStatusChangeRepository,
    SQLAlchemyFarmerDirectory,
    SQLAlchemyUnitOfWork,
)
from complaintdesk.complaints.infrastructure.memory import (
    InMemoryComplaintStore,
    InMemoryUnitOfWork,
)

__all__ = [
    "FarmerModel",
    "ComplaintModel",
    "CallLogModel",
    "StatusChangeModel",
    "SQLAlchemyComplaintRepository",
    "SQLAlchemyCallLogRepository",
    "SQLAlchemyStatusChangeRepository",
    "SQLAlchemyFarmerDirectory",
    "SQLAlchemyUnitOfWork",
    "InMemoryComplaintStore",
    "InMemoryUnitOfWork",
]
