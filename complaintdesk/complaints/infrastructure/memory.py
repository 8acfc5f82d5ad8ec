"""
In-Memory Complaint Store
==========================

Process-local implementation of the complaint ports, used by the test suite
and for running the service without PostgreSQL.

Semantics mirror the SQL adapter:
- ``get_for_update`` takes a per-complaint ``asyncio.Lock`` held until the
  unit of work closes, so writers on one complaint serialize while other
  complaints stay unblocked
- writes are staged and applied on ``commit``; anything else discards them
- complaint updates are compare-and-set on ``version``
"""

import asyncio
import itertools
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from complaintdesk.complaints.application.ports import (
    IComplaintRepository, ICallLogRepository, IStatusChangeRepository,
    IFarmerDirectory, IUnitOfWork
)
from complaintdesk.complaints.domain import (
    Complaint, CallLog, StatusChange, Farmer, ComplaintFilters
)
from complaintdesk.core import ConflictException, RepositoryException


class InMemoryComplaintStore:
    """
    Committed state shared by every unit of work created from it.

    Complaints are never deleted, so the per-complaint lock map only grows;
    the store is meant for tests and short local runs.

    Usage:
        store = InMemoryComplaintStore()
        store.add_farmer(Farmer(...))
        lifecycle = ComplaintLifecycleService(store.unit_of_work)
    """

    def __init__(self):
        self.complaints: Dict[int, Complaint] = {}
        self.call_logs: List[CallLog] = []
        self.status_changes: List[StatusChange] = []
        self.farmers: Dict[int, Farmer] = {}
        self._locks: Dict[int, asyncio.Lock] = {}
        self._complaint_ids = itertools.count(1)
        self._call_log_ids = itertools.count(1)
        self._status_change_ids = itertools.count(1)

    def add_farmer(self, farmer: Farmer) -> Farmer:
        self.farmers[farmer.id] = farmer
        return farmer

    def lock_for(self, complaint_id: int) -> asyncio.Lock:
        return self._locks.setdefault(complaint_id, asyncio.Lock())

    def next_complaint_id(self) -> int:
        return next(self._complaint_ids)

    def next_call_log_id(self) -> int:
        return next(self._call_log_ids)

    def next_status_change_id(self) -> int:
        return next(self._status_change_ids)

    def unit_of_work(self) -> "InMemoryUnitOfWork":
        return InMemoryUnitOfWork(self)


class InMemoryComplaintRepository(IComplaintRepository):

    def __init__(self, uow: "InMemoryUnitOfWork"):
        self._uow = uow
        self._store = uow.store

    async def get_by_id(self, complaint_id: int) -> Optional[Complaint]:
        staged = self._uow.staged_complaint(complaint_id)
        if staged is not None:
            return replace(staged)
        complaint = self._store.complaints.get(complaint_id)
        return replace(complaint) if complaint else None

    async def get_for_update(self, complaint_id: int) -> Optional[Complaint]:
        if complaint_id not in self._store.complaints:
            return None
        await self._uow.acquire(complaint_id)
        return await self.get_by_id(complaint_id)

    async def add(self, complaint: Complaint) -> Complaint:
        created = replace(complaint, id=self._store.next_complaint_id(), version=1)
        self._uow.stage_new_complaint(created)
        return replace(created)

    async def update(self, complaint: Complaint) -> Complaint:
        stored = self._store.complaints.get(complaint.id)
        if stored is None and self._uow.staged_complaint(complaint.id) is None:
            raise RepositoryException(f"Complaint {complaint.id} not found")
        updated = replace(complaint, version=complaint.version + 1)
        self._uow.stage_update(complaint.version, updated)
        return replace(updated)

    async def list(self, filters: ComplaintFilters) -> List[Complaint]:
        rows = [
            complaint for complaint in self._store.complaints.values()
            if filters.matches(complaint, self._store.farmers.get(complaint.farmer_id))
        ]
        rows.sort(key=lambda c: (c.created_at, c.id), reverse=True)
        if filters.limit is not None:
            rows = rows[filters.offset:filters.offset + filters.limit]
        return [replace(c) for c in rows]


class InMemoryCallLogRepository(ICallLogRepository):

    def __init__(self, uow: "InMemoryUnitOfWork"):
        self._uow = uow
        self._store = uow.store

    def _visible(self) -> List[CallLog]:
        return self._store.call_logs + self._uow.pending_call_logs

    async def add(self, call_log: CallLog) -> CallLog:
        created = replace(call_log, id=self._store.next_call_log_id())
        self._uow.pending_call_logs.append(created)
        return created

    async def list_for_complaint(self, complaint_id: int) -> List[CallLog]:
        rows = [log for log in self._visible() if log.complaint_id == complaint_id]
        return sorted(rows, key=lambda log: (log.created_at, log.id), reverse=True)

    async def latest_asserted_status(self, complaint_id: int) -> Optional[str]:
        for log in await self.list_for_complaint(complaint_id):
            if log.complaint_status is not None:
                return log.complaint_status
        return None

    async def list_recent(
        self,
        zone_id: Optional[int],
        branch_id: Optional[int],
        limit: int
    ) -> List[Tuple[CallLog, Complaint]]:
        rows = []
        for log in sorted(self._visible(), key=lambda log: (log.created_at, log.id), reverse=True):
            complaint = self._store.complaints.get(log.complaint_id)
            if complaint is None:
                continue
            if zone_id is not None and complaint.zone_id != zone_id:
                continue
            if branch_id is not None and complaint.branch_id != branch_id:
                continue
            rows.append((log, replace(complaint)))
            if len(rows) >= limit:
                break
        return rows


class InMemoryStatusChangeRepository(IStatusChangeRepository):

    def __init__(self, uow: "InMemoryUnitOfWork"):
        self._uow = uow
        self._store = uow.store

    async def add(self, change: StatusChange) -> StatusChange:
        created = replace(change, id=self._store.next_status_change_id())
        self._uow.pending_status_changes.append(created)
        return created

    async def list_for_complaint(self, complaint_id: int) -> List[StatusChange]:
        rows = [
            change for change in self._store.status_changes + self._uow.pending_status_changes
            if change.complaint_id == complaint_id
        ]
        return sorted(rows, key=lambda change: (change.changed_at, change.id))


class InMemoryFarmerDirectory(IFarmerDirectory):

    def __init__(self, store: InMemoryComplaintStore):
        self._store = store

    async def get_by_id(self, farmer_id: int) -> Optional[Farmer]:
        return self._store.farmers.get(farmer_id)


class InMemoryUnitOfWork(IUnitOfWork):
    """Stages writes against an ``InMemoryComplaintStore`` until commit."""

    def __init__(self, store: InMemoryComplaintStore):
        self.store = store
        self.pending_call_logs: List[CallLog] = []
        self.pending_status_changes: List[StatusChange] = []
        self._new_complaints: Dict[int, Complaint] = {}
        # complaint id -> (version read, updated complaint)
        self._updates: Dict[int, Tuple[int, Complaint]] = {}
        self._held: List[asyncio.Lock] = []
        self._held_ids: set = set()

        self.complaints = InMemoryComplaintRepository(self)
        self.call_logs = InMemoryCallLogRepository(self)
        self.status_changes = InMemoryStatusChangeRepository(self)
        self.farmers = InMemoryFarmerDirectory(store)

    async def acquire(self, complaint_id: int) -> None:
        if complaint_id in self._held_ids:
            return
        lock = self.store.lock_for(complaint_id)
        await lock.acquire()
        self._held.append(lock)
        self._held_ids.add(complaint_id)

    def staged_complaint(self, complaint_id: int) -> Optional[Complaint]:
        if complaint_id in self._updates:
            return self._updates[complaint_id][1]
        return self._new_complaints.get(complaint_id)

    def stage_new_complaint(self, complaint: Complaint) -> None:
        self._new_complaints[complaint.id] = complaint

    def stage_update(self, version_read: int, complaint: Complaint) -> None:
        if complaint.id in self._new_complaints:
            self._new_complaints[complaint.id] = complaint
            return
        if complaint.id in self._updates:
            version_read = self._updates[complaint.id][0]
        self._updates[complaint.id] = (version_read, complaint)

    async def commit(self) -> None:
        for complaint_id, (version_read, _) in self._updates.items():
            if self.store.complaints[complaint_id].version != version_read:
                self._clear()
                raise ConflictException("Complaint", complaint_id)

        for complaint_id, complaint in self._new_complaints.items():
            self.store.complaints[complaint_id] = replace(complaint)
        for complaint_id, (_, complaint) in self._updates.items():
            self.store.complaints[complaint_id] = replace(complaint)
        self.store.call_logs.extend(self.pending_call_logs)
        self.store.status_changes.extend(self.pending_status_changes)
        self._clear()

    async def rollback(self) -> None:
        self._clear()

    async def close(self) -> None:
        while self._held:
            self._held.pop().release()
        self._held_ids.clear()

    def _clear(self) -> None:
        self._new_complaints.clear()
        self._updates.clear()
        self.pending_call_logs = []
        self.pending_status_changes = []
