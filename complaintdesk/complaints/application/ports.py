"""
Complaint Storage Ports
========================

Repository and unit-of-work interfaces the application services depend on.

Concrete adapters live in the infrastructure layer (SQLAlchemy and
in-memory). A unit of work is one transaction boundary: everything written
through its repositories is committed together or not at all.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from complaintdesk.complaints.domain import (
    Complaint, CallLog, StatusChange, Farmer, ComplaintFilters
)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IComplaintRepository(ABC):
    """Interface for complaint data access."""

    @abstractmethod
    async def get_by_id(self, complaint_id: int) -> Optional[Complaint]:
        """Get complaint by ID without locking."""

    @abstractmethod
    async def get_for_update(self, complaint_id: int) -> Optional[Complaint]:
        """
        Get complaint by ID and hold its write lock until the unit of work ends.

        Locks are per complaint; different complaints never contend.
        """

    @abstractmethod
    async def add(self, complaint: Complaint) -> Complaint:
        """Persist a new complaint and return it with its ID assigned."""

    @abstractmethod
    async def update(self, complaint: Complaint) -> Complaint:
        """
        Persist changes to an existing complaint.

        Raises:
            ConflictException: the stored version moved since it was read
        """

    @abstractmethod
    async def list(self, filters: ComplaintFilters) -> List[Complaint]:
        """List complaints matching filters, newest first."""


class ICallLogRepository(ABC):
    """Interface for call log data access. Append-only."""

    @abstractmethod
    async def add(self, call_log: CallLog) -> CallLog:
        """Append a call log and return it with its ID assigned."""

    @abstractmethod
    async def list_for_complaint(self, complaint_id: int) -> List[CallLog]:
        """Call logs of one complaint, newest first."""

    @abstractmethod
    async def latest_asserted_status(self, complaint_id: int) -> Optional[str]:
        """Status asserted by the most recent call log that carries one."""

    @abstractmethod
    async def list_recent(
        self,
        zone_id: Optional[int],
        branch_id: Optional[int],
        limit: int
    ) -> List[Tuple[CallLog, Complaint]]:
        """Most recent call logs with their complaints, newest first."""


class IStatusChangeRepository(ABC):
    """Interface for the status audit trail. Append-only."""

    @abstractmethod
    async def add(self, change: StatusChange) -> StatusChange:
        """Append an audit entry."""

    @abstractmethod
    async def list_for_complaint(self, complaint_id: int) -> List[StatusChange]:
        """Audit entries of one complaint, oldest first."""


class IFarmerDirectory(ABC):
    """Interface for farmer reference lookups."""

    @abstractmethod
    async def get_by_id(self, farmer_id: int) -> Optional[Farmer]:
        """Get farmer by ID."""


class IUnitOfWork(ABC):
    """
    Transaction boundary over the complaint repositories.

    Usage:
        async with uow_factory() as uow:
            complaint = await uow.complaints.get_for_update(complaint_id)
            ...
            await uow.commit()

    Leaving the block without committing (or through an exception) rolls
    back everything written inside it and releases held locks.
    """

    complaints: IComplaintRepository
    call_logs: ICallLogRepository
    status_changes: IStatusChangeRepository
    farmers: IFarmerDirectory

    async def __aenter__(self) -> "IUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self.rollback()
        finally:
            await self.close()

    @abstractmethod
    async def commit(self) -> None:
        """Make every write of this unit of work durable."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard uncommitted writes."""

    async def close(self) -> None:
        """Release resources held by this unit of work."""


UnitOfWorkFactory = Callable[[], IUnitOfWork]
