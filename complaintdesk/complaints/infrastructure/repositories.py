"""
Complaint Infrastructure Repositories
======================================

Concrete implementations of the complaint ports using async SQLAlchemy.

Writes to a complaint go through ``SELECT ... FOR UPDATE`` plus the
model's version column, so concurrent writers on one complaint serialize
and a stale write surfaces as ``ConflictException``.
"""

from typing import List, Optional, Tuple

from sqlalchemy import select, and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from complaintdesk.complaints.application.ports import (
    IComplaintRepository, ICallLogRepository, IStatusChangeRepository,
    IFarmerDirectory, IUnitOfWork
)
from complaintdesk.complaints.domain import (
    Complaint, CallLog, StatusChange, Farmer, ComplaintFilters, as_utc
)
from complaintdesk.complaints.infrastructure.models import (
    ComplaintModel, CallLogModel, StatusChangeModel, FarmerModel
)
from complaintdesk.core import ConflictException, RepositoryException
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def complaint_to_domain(model: ComplaintModel) -> Complaint:
    return Complaint(
        id=model.id,
        ticket_number=model.ticket_number,
        title=model.title,
        description=model.description,
        category=model.category,
        priority=model.priority,
        status=model.status,
        farmer_id=model.farmer_id,
        zone_id=model.zone_id,
        branch_id=model.branch_id,
        line_id=model.line_id,
        created_by=model.created_by,
        sla_deadline=as_utc(model.sla_deadline),
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
        equipment_id=model.equipment_id,
        assigned_to=model.assigned_to,
        closed_at=as_utc(model.closed_at),
        version=model.version
    )


def call_log_to_domain(model: CallLogModel) -> CallLog:
    return CallLog(
        id=model.id,
        complaint_id=model.complaint_id,
        called_by=model.called_by,
        outcome=model.outcome,
        duration_minutes=model.duration_minutes,
        created_at=as_utc(model.created_at),
        remarks=model.remarks,
        next_follow_up_date=as_utc(model.next_follow_up_date),
        complaint_status=model.complaint_status,
        complaint_status_date=as_utc(model.complaint_status_date)
    )


class SQLAlchemyComplaintRepository(IComplaintRepository):
    """
    SQLAlchemy implementation of the complaint repository.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, complaint_id: int) -> Optional[Complaint]:
        stmt = select(ComplaintModel).where(ComplaintModel.id == complaint_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return complaint_to_domain(model) if model else None

    async def get_for_update(self, complaint_id: int) -> Optional[Complaint]:
        stmt = (
            select(ComplaintModel)
            .where(ComplaintModel.id == complaint_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return complaint_to_domain(model) if model else None

    async def add(self, complaint: Complaint) -> Complaint:
        model = ComplaintModel(
            ticket_number=complaint.ticket_number,
            title=complaint.title,
            description=complaint.description,
            category=complaint.category,
            priority=complaint.priority,
            status=complaint.status,
            farmer_id=complaint.farmer_id,
            equipment_id=complaint.equipment_id,
            assigned_to=complaint.assigned_to,
            created_by=complaint.created_by,
            zone_id=complaint.zone_id,
            branch_id=complaint.branch_id,
            line_id=complaint.line_id,
            sla_deadline=complaint.sla_deadline,
            created_at=complaint.created_at,
            updated_at=complaint.updated_at,
            closed_at=complaint.closed_at
        )

        self._session.add(model)
        await self._session.flush()

        return complaint_to_domain(model)

    async def update(self, complaint: Complaint) -> Complaint:
        model = await self._session.get(ComplaintModel, complaint.id)
        if model is None:
            raise RepositoryException(f"Complaint {complaint.id} not found")
        if model.version != complaint.version:
            raise ConflictException("Complaint", complaint.id)

        # Identity, references and created_at are fixed
        model.title = complaint.title
        model.description = complaint.description
        model.category = complaint.category
        model.priority = complaint.priority
        model.sla_deadline = complaint.sla_deadline
        model.status = complaint.status
        model.assigned_to = complaint.assigned_to
        model.closed_at = complaint.closed_at
        model.updated_at = complaint.updated_at

        try:
            await self._session.flush()
        except StaleDataError as e:
            raise ConflictException("Complaint", complaint.id) from e

        return complaint_to_domain(model)

    async def list(self, filters: ComplaintFilters) -> List[Complaint]:
        stmt = select(ComplaintModel)

        conditions = []
        exact = (
            (ComplaintModel.status, filters.status),
            (ComplaintModel.priority, filters.priority),
            (ComplaintModel.category, filters.category),
            (ComplaintModel.zone_id, filters.zone_id),
            (ComplaintModel.branch_id, filters.branch_id),
            (ComplaintModel.line_id, filters.line_id),
            (ComplaintModel.farmer_id, filters.farmer_id),
            (ComplaintModel.assigned_to, filters.assigned_to),
        )
        for column, value in exact:
            if value is not None:
                conditions.append(column == value)

        if filters.created_from is not None:
            conditions.append(ComplaintModel.created_at >= filters.created_from)
        if filters.created_to is not None:
            conditions.append(ComplaintModel.created_at <= filters.created_to)

        if filters.search:
            needle = f"%{filters.search.strip()}%"
            stmt = stmt.join(FarmerModel, FarmerModel.id == ComplaintModel.farmer_id)
            conditions.append(or_(FarmerModel.name.ilike(needle), FarmerModel.phone.like(needle)))

        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(ComplaintModel.created_at.desc(), ComplaintModel.id.desc())
        if filters.limit is not None:
            stmt = stmt.limit(filters.limit).offset(filters.offset)

        result = await self._session.execute(stmt)
        return [complaint_to_domain(model) for model in result.scalars().all()]


class SQLAlchemyCallLogRepository(ICallLogRepository):
    """
    SQLAlchemy implementation of the call log repository.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, call_log: CallLog) -> CallLog:
        model = CallLogModel(
            complaint_id=call_log.complaint_id,
            called_by=call_log.called_by,
            outcome=call_log.outcome,
            duration_minutes=call_log.duration_minutes,
            remarks=call_log.remarks,
            next_follow_up_date=call_log.next_follow_up_date,
            complaint_status=call_log.complaint_status,
            complaint_status_date=call_log.complaint_status_date,
            created_at=call_log.created_at
        )

        self._session.add(model)
        await self._session.flush()

        return call_log_to_domain(model)

    async def list_for_complaint(self, complaint_id: int) -> List[CallLog]:
        stmt = (
            select(CallLogModel)
            .where(CallLogModel.complaint_id == complaint_id)
            .order_by(CallLogModel.created_at.desc(), CallLogModel.id.desc())
        )
        result = await self._session.execute(stmt)
        return [call_log_to_domain(model) for model in result.scalars().all()]

    async def latest_asserted_status(self, complaint_id: int) -> Optional[str]:
        stmt = (
            select(CallLogModel.complaint_status)
            .where(
                CallLogModel.complaint_id == complaint_id,
                CallLogModel.complaint_status.is_not(None)
            )
            .order_by(CallLogModel.created_at.desc(), CallLogModel.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_recent(
        self,
        zone_id: Optional[int],
        branch_id: Optional[int],
        limit: int
    ) -> List[Tuple[CallLog, Complaint]]:
        stmt = select(CallLogModel, ComplaintModel).join(
            ComplaintModel, ComplaintModel.id == CallLogModel.complaint_id
        )
        if zone_id is not None:
            stmt = stmt.where(ComplaintModel.zone_id == zone_id)
        if branch_id is not None:
            stmt = stmt.where(ComplaintModel.branch_id == branch_id)
        stmt = stmt.order_by(CallLogModel.created_at.desc(), CallLogModel.id.desc()).limit(limit)

        result = await self._session.execute(stmt)
        return [
            (call_log_to_domain(call_log), complaint_to_domain(complaint))
            for call_log, complaint in result.all()
        ]


class SQLAlchemyStatusChangeRepository(IStatusChangeRepository):
    """
    SQLAlchemy implementation of the status audit trail.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, change: StatusChange) -> StatusChange:
        model = StatusChangeModel(
            complaint_id=change.complaint_id,
            from_status=change.from_status,
            to_status=change.to_status,
            effective_date=change.effective_date,
            changed_by=change.changed_by,
            changed_at=change.changed_at,
            call_log_id=change.call_log_id
        )

        self._session.add(model)
        await self._session.flush()

        return StatusChange(
            id=model.id,
            complaint_id=change.complaint_id,
            from_status=change.from_status,
            to_status=change.to_status,
            effective_date=change.effective_date,
            changed_by=change.changed_by,
            changed_at=change.changed_at,
            call_log_id=change.call_log_id
        )

    async def list_for_complaint(self, complaint_id: int) -> List[StatusChange]:
        stmt = (
            select(StatusChangeModel)
            .where(StatusChangeModel.complaint_id == complaint_id)
            .order_by(StatusChangeModel.changed_at.asc(), StatusChangeModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [
            StatusChange(
                id=model.id,
                complaint_id=model.complaint_id,
                from_status=model.from_status,
                to_status=model.to_status,
                effective_date=as_utc(model.effective_date),
                changed_by=model.changed_by,
                changed_at=as_utc(model.changed_at),
                call_log_id=model.call_log_id
            )
            for model in result.scalars().all()
        ]


class SQLAlchemyFarmerDirectory(IFarmerDirectory):
    """Reads farmers from the 'farmers' table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, farmer_id: int) -> Optional[Farmer]:
        model = await self._session.get(FarmerModel, farmer_id)
        if model is None:
            return None
        return Farmer(
            id=model.id,
            name=model.name,
            phone=model.phone,
            zone_id=model.zone_id,
            branch_id=model.branch_id,
            line_id=model.line_id
        )


class SQLAlchemyUnitOfWork(IUnitOfWork):
    """
    Unit of work over one AsyncSession.

    Repositories share the session, so a single commit covers the complaint
    update, the call log and the audit entry together.
    """

    def __init__(self, session: AsyncSession):
        self._session = session
        self.complaints = SQLAlchemyComplaintRepository(session)
        self.call_logs = SQLAlchemyCallLogRepository(session)
        self.status_changes = SQLAlchemyStatusChangeRepository(session)
        self.farmers = SQLAlchemyFarmerDirectory(session)

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except StaleDataError as e:
            await self._session.rollback()
            raise ConflictException("Complaint") from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error("Commit failed", extra={"error": str(e)})
            raise RepositoryException(f"Commit failed: {e}") from e

    async def rollback(self) -> None:
        await self._session.rollback()

    async def close(self) -> None:
        # The session stays usable; it simply begins a new transaction next time
        await self._session.close()
