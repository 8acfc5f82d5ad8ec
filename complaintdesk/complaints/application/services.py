"""
Complaint Application Services
===============================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

- ComplaintLifecycleService: creation, edits, status transitions, assignment
- CallLogRecorder: call logs, including the status change a call can cause
- ComplaintQueryService: scoped listings and SLA summaries

Every service receives a unit-of-work factory and a clock; none of them
keeps state between calls.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional

from complaintdesk.access.application import IUserDirectory
from complaintdesk.access.domain import (
    Actor, ExecutiveActor, evaluate_access, require_access
)
from complaintdesk.complaints.application.ports import IUnitOfWork, UnitOfWorkFactory
from complaintdesk.complaints.domain import (
    Complaint, CallLog, StatusChange, ComplaintFilters, SLAPolicy, SLASummary,
    generate_ticket_number
)
from complaintdesk.config import (
    Permission, Priority, Role, ComplaintStatus,
    VALID_CATEGORIES, VALID_PRIORITIES, VALID_STATUSES, VALID_CALL_OUTCOMES
)
from complaintdesk.core import (
    ForbiddenException, ResourceNotFoundException, ValidationException
)
from complaintdesk.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def authorize(actor: Actor, permission: str, complaint: Complaint) -> None:
    """Require ``permission`` on the complaint's zone/branch, logging denials."""
    try:
        require_access(actor, permission, complaint.zone_id, complaint.branch_id)
    except ForbiddenException as e:
        logger.warning(
            "Access denied",
            extra={
                "user_id": actor.user_id,
                "permission": permission,
                "reason": e.reason,
                "complaint_id": complaint.id
            }
        )
        raise


async def load_complaint(uow: IUnitOfWork, complaint_id: int, for_update: bool = False) -> Complaint:
    """Fetch a complaint or raise ``not_found``."""
    if for_update:
        complaint = await uow.complaints.get_for_update(complaint_id)
    else:
        complaint = await uow.complaints.get_by_id(complaint_id)
    if complaint is None:
        raise ResourceNotFoundException("Complaint", complaint_id)
    return complaint


class ComplaintLifecycleService:
    """
    State machine for complaints.

    Statuses: open (initial), progress, closed, reopen. Any status may move
    to any other; the only ways in are ``create_complaint`` and
    ``transition_status`` (directly or cascaded from a call log).
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        user_directory: Optional[IUserDirectory] = None,
        clock: Clock = utc_now
    ):
        self._uow_factory = uow_factory
        self._user_directory = user_directory
        self._clock = clock

    async def create_complaint(
        self,
        actor: Actor,
        title: str,
        description: str,
        category: str,
        priority: Optional[str],
        farmer_id: int,
        zone_id: int,
        branch_id: int,
        line_id: int,
        equipment_id: Optional[int] = None,
        assigned_to: Optional[int] = None
    ) -> Complaint:
        """
        Create a complaint in ``open`` with its ticket number and SLA deadline.

        Raises:
            ValidationException: bad category/priority, or the farmer's
                zone/branch/line differ from the complaint's
            ForbiddenException: actor may not create complaints there
            ResourceNotFoundException: unknown farmer
        """
        if not title or not description:
            raise ValidationException("Title and description are required", reason="missing_field")
        if category not in VALID_CATEGORIES:
            raise ValidationException(f"Invalid category: {category}", reason="invalid_category")
        priority = priority or Priority.NORMAL
        if priority not in VALID_PRIORITIES:
            raise ValidationException(f"Invalid priority: {priority}", reason="invalid_priority")

        try:
            require_access(actor, Permission.COMPLAINT_CREATE, zone_id, branch_id)
        except ForbiddenException as e:
            logger.warning(
                "Complaint creation denied",
                extra={"user_id": actor.user_id, "zone_id": zone_id, "reason": e.reason}
            )
            raise

        async with self._uow_factory() as uow:
            farmer = await uow.farmers.get_by_id(farmer_id)
            if farmer is None:
                raise ResourceNotFoundException("Farmer", farmer_id)

            if (farmer.zone_id, farmer.branch_id, farmer.line_id) != (zone_id, branch_id, line_id):
                raise ValidationException(
                    "Farmer does not belong to the complaint's zone/branch/line",
                    reason="farmer_scope_mismatch",
                    details={"farmer_id": farmer_id}
                )

            if assigned_to is not None:
                require_access(actor, Permission.COMPLAINT_ASSIGN, zone_id, branch_id)
                await self._check_assignee(assigned_to, zone_id, branch_id)

            now = self._clock()
            complaint = Complaint(
                id=None,
                ticket_number=generate_ticket_number(now),
                title=title,
                description=description,
                category=category,
                priority=priority,
                status=ComplaintStatus.OPEN,
                farmer_id=farmer_id,
                zone_id=zone_id,
                branch_id=branch_id,
                line_id=line_id,
                created_by=actor.user_id,
                sla_deadline=SLAPolicy.compute_deadline(priority, now),
                created_at=now,
                updated_at=now,
                equipment_id=equipment_id,
                assigned_to=assigned_to
            )
            complaint = await uow.complaints.add(complaint)
            await uow.commit()

        logger.info(
            "Complaint created",
            extra={
                "complaint_id": complaint.id,
                "ticket_number": complaint.ticket_number,
                "priority": complaint.priority,
                "sla_deadline": complaint.sla_deadline.isoformat(),
                "user_id": actor.user_id
            }
        )
        return complaint

    async def get_complaint(self, actor: Actor, complaint_id: int) -> Complaint:
        async with self._uow_factory() as uow:
            complaint = await load_complaint(uow, complaint_id)
        authorize(actor, Permission.COMPLAINT_VIEW, complaint)
        return complaint

    async def transition_status(
        self,
        actor: Actor,
        complaint_id: int,
        target_status: str,
        effective_date: Optional[datetime] = None
    ) -> Complaint:
        """
        Move a complaint to ``target_status``.

        Raises:
            ValidationException: target is not one of the four statuses
            ResourceNotFoundException: unknown complaint
            ForbiddenException: actor lacks complaint.updateStatus in scope
            ConflictException: a concurrent write won (optimistic stores only)
        """
        self.validate_status(target_status)

        async with self._uow_factory() as uow:
            complaint = await load_complaint(uow, complaint_id, for_update=True)
            await self.apply_transition(uow, actor, complaint, target_status, effective_date)
            await uow.commit()

        return complaint

    async def apply_transition(
        self,
        uow: IUnitOfWork,
        actor: Actor,
        complaint: Complaint,
        target_status: str,
        effective_date: Optional[datetime] = None,
        call_log_id: Optional[int] = None
    ) -> Optional[StatusChange]:
        """
        Apply a status change inside an open unit of work.

        This is the one place a status is written; ``CallLogRecorder`` calls
        it when a call asserts a different status. ``complaint`` is updated
        in place. Re-asserting the current status writes nothing.

        The effective date is recorded in the audit trail only; the SLA
        deadline never moves.
        """
        self.validate_status(target_status)
        authorize(actor, Permission.COMPLAINT_UPDATE_STATUS, complaint)

        if complaint.status == target_status:
            return None

        now = self._clock()
        previous = complaint.apply_status(target_status, now)
        stored = await uow.complaints.update(complaint)
        complaint.version = stored.version

        change = await uow.status_changes.add(StatusChange(
            id=None,
            complaint_id=complaint.id,
            from_status=previous,
            to_status=target_status,
            effective_date=effective_date or now,
            changed_by=actor.user_id,
            changed_at=now,
            call_log_id=call_log_id
        ))

        logger.info(
            "Complaint status changed",
            extra={
                "complaint_id": complaint.id,
                "from_status": previous,
                "to_status": target_status,
                "user_id": actor.user_id,
                "call_log_id": call_log_id
            }
        )
        return change

    async def assign_complaint(
        self,
        actor: Actor,
        complaint_id: int,
        assignee_id: int
    ) -> Complaint:
        """
        Assign a complaint to an executive.

        The assignee must be an active executive whose own scope covers the
        complaint.
        """
        async with self._uow_factory() as uow:
            complaint = await load_complaint(uow, complaint_id, for_update=True)
            authorize(actor, Permission.COMPLAINT_ASSIGN, complaint)
            await self._check_assignee(assignee_id, complaint.zone_id, complaint.branch_id)

            complaint.assign(assignee_id, self._clock())
            stored = await uow.complaints.update(complaint)
            complaint.version = stored.version
            await uow.commit()

        logger.info(
            "Complaint assigned",
            extra={"complaint_id": complaint_id, "assigned_to": assignee_id, "user_id": actor.user_id}
        )
        return complaint

    async def update_complaint(
        self,
        actor: Actor,
        complaint_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
        priority: Optional[str] = None,
        rederive_sla: bool = False
    ) -> Complaint:
        """
        Edit a complaint's title, description, category or priority.

        A priority change keeps the existing SLA deadline. With
        ``rederive_sla`` the deadline is recomputed from ``created_at`` and
        the (possibly new) priority.

        Raises:
            ValidationException: blank text, unknown category or priority
            ResourceNotFoundException: unknown complaint
            ForbiddenException: actor lacks complaint.edit in scope
            ConflictException: a concurrent write won
        """
        if title is not None and not title.strip():
            raise ValidationException("Title cannot be blank", reason="missing_field")
        if description is not None and not description.strip():
            raise ValidationException("Description cannot be blank", reason="missing_field")
        if category is not None and category not in VALID_CATEGORIES:
            raise ValidationException(f"Invalid category: {category}", reason="invalid_category")
        if priority is not None and priority not in VALID_PRIORITIES:
            raise ValidationException(f"Invalid priority: {priority}", reason="invalid_priority")

        async with self._uow_factory() as uow:
            complaint = await load_complaint(uow, complaint_id, for_update=True)
            authorize(actor, Permission.COMPLAINT_EDIT, complaint)

            now = self._clock()
            changed = complaint.edit(now, title, description, category, priority)
            if rederive_sla:
                deadline = SLAPolicy.compute_deadline(complaint.priority, complaint.created_at)
                if deadline != complaint.sla_deadline:
                    complaint.sla_deadline = deadline
                    complaint.updated_at = max(now, complaint.created_at)
                    changed.append("sla_deadline")

            if changed:
                stored = await uow.complaints.update(complaint)
                complaint.version = stored.version
                await uow.commit()

        logger.info(
            "Complaint updated",
            extra={
                "complaint_id": complaint_id,
                "changed_fields": changed,
                "sla_deadline": complaint.sla_deadline.isoformat(),
                "user_id": actor.user_id
            }
        )
        return complaint

    async def status_history(self, actor: Actor, complaint_id: int) -> List[StatusChange]:
        async with self._uow_factory() as uow:
            complaint = await load_complaint(uow, complaint_id)
            authorize(actor, Permission.COMPLAINT_VIEW, complaint)
            return await uow.status_changes.list_for_complaint(complaint_id)

    def is_breached(self, complaint: Complaint, now: Optional[datetime] = None) -> bool:
        return SLAPolicy.is_breached(complaint, now or self._clock())

    @staticmethod
    def validate_status(status: Optional[str]) -> None:
        if status not in VALID_STATUSES:
            raise ValidationException(f"Invalid status: {status}", reason="invalid_status")

    async def _check_assignee(self, assignee_id: int, zone_id: int, branch_id: int) -> None:
        if self._user_directory is None:
            raise ValidationException("Assignment is not available", reason="invalid_assignee")

        assignee = await self._user_directory.get_user(assignee_id)
        if assignee is None:
            raise ResourceNotFoundException("User", assignee_id)
        if assignee.role != Role.EXECUTIVE or not assignee.is_active:
            raise ValidationException(
                "Assignee must be an active executive",
                reason="invalid_assignee",
                details={"assignee_id": assignee_id}
            )
        decision = evaluate_access(assignee.to_actor(), Permission.COMPLAINT_VIEW, zone_id, branch_id)
        if not decision.allowed:
            raise ValidationException(
                "Assignee cannot access this complaint",
                reason="assignee_out_of_scope",
                details={"assignee_id": assignee_id, "scope_reason": decision.reason}
            )


class CallLogRecorder:
    """
    Records phone follow-ups on complaints.

    A call that asserts a status different from the stored one transitions
    the complaint in the same transaction; if the transition fails the call
    log is not kept either.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        lifecycle: ComplaintLifecycleService,
        clock: Clock = utc_now
    ):
        self._uow_factory = uow_factory
        self._lifecycle = lifecycle
        self._clock = clock

    async def record_call(
        self,
        actor: Actor,
        complaint_id: int,
        outcome: str,
        remarks: Optional[str],
        duration_minutes: int,
        next_follow_up_date: Optional[datetime],
        asserted_status: Optional[str],
        asserted_status_effective_date: Optional[datetime] = None
    ) -> CallLog:
        """
        Append a call log, cascading a status change when the call asserts one.

        Recording needs complaint.edit; a call that changes the status needs
        complaint.updateStatus instead.

        Raises:
            ValidationException: negative duration, unknown outcome or status
            ResourceNotFoundException: unknown complaint
            ForbiddenException: access policy denial
        """
        if duration_minutes is None or duration_minutes < 0:
            raise ValidationException("Duration cannot be negative", reason="invalid_input")
        if outcome not in VALID_CALL_OUTCOMES:
            raise ValidationException(f"Invalid call outcome: {outcome}", reason="invalid_input")
        if asserted_status is not None and asserted_status not in VALID_STATUSES:
            raise ValidationException(f"Invalid status: {asserted_status}", reason="invalid_status")

        async with self._uow_factory() as uow:
            complaint = await load_complaint(uow, complaint_id, for_update=True)

            changes_status = asserted_status is not None and asserted_status != complaint.status
            permission = (
                Permission.COMPLAINT_UPDATE_STATUS if changes_status
                else Permission.COMPLAINT_EDIT
            )
            authorize(actor, permission, complaint)

            now = self._clock()
            call_log = await uow.call_logs.add(CallLog(
                id=None,
                complaint_id=complaint_id,
                called_by=actor.user_id,
                outcome=outcome,
                duration_minutes=duration_minutes,
                created_at=now,
                remarks=remarks,
                next_follow_up_date=next_follow_up_date,
                complaint_status=asserted_status,
                complaint_status_date=asserted_status_effective_date
            ))

            if changes_status:
                await self._lifecycle.apply_transition(
                    uow, actor, complaint, asserted_status,
                    asserted_status_effective_date, call_log_id=call_log.id
                )

            await uow.commit()

        logger.info(
            "Call logged",
            extra={
                "complaint_id": complaint_id,
                "call_log_id": call_log.id,
                "outcome": outcome,
                "status_changed": changes_status,
                "user_id": actor.user_id
            }
        )
        return call_log

    async def list_call_logs(self, actor: Actor, complaint_id: int) -> List[CallLog]:
        async with self._uow_factory() as uow:
            complaint = await load_complaint(uow, complaint_id)
            authorize(actor, Permission.COMPLAINT_VIEW, complaint)
            return await uow.call_logs.list_for_complaint(complaint_id)

    async def default_status_for(self, actor: Actor, complaint_id: int) -> str:
        """
        Status to pre-fill on the next call form.

        The status asserted by the latest call log, or the complaint's live
        status when no call has asserted one.
        """
        async with self._uow_factory() as uow:
            complaint = await load_complaint(uow, complaint_id)
            authorize(actor, Permission.COMPLAINT_VIEW, complaint)
            asserted = await uow.call_logs.latest_asserted_status(complaint_id)
        return asserted or complaint.status

    async def recent_call_logs(self, actor: Actor, limit: int = 10) -> List[CallLog]:
        """Newest call logs across every complaint the actor can view."""
        if limit is None or limit < 1:
            raise ValidationException(f"Invalid limit: {limit}", reason="invalid_input")
        scope = ComplaintFilters().narrow_to(actor)
        async with self._uow_factory() as uow:
            rows = await uow.call_logs.list_recent(scope.zone_id, scope.branch_id, limit)

        return [
            call_log for call_log, complaint in rows
            if evaluate_access(actor, Permission.COMPLAINT_VIEW, complaint.zone_id, complaint.branch_id).allowed
        ]


class ComplaintQueryService:
    """
    Scoped read access to complaints.

    The effective filter is the requested filter narrowed to the actor's
    scope, and each returned row is still checked against the access policy.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Clock = utc_now):
        self._uow_factory = uow_factory
        self._clock = clock

    async def list_complaints(self, actor: Actor, filters: ComplaintFilters) -> List[Complaint]:
        if isinstance(actor, ExecutiveActor) and not actor.has_permission(Permission.COMPLAINT_VIEW):
            logger.warning(
                "Complaint listing denied",
                extra={"user_id": actor.user_id, "reason": "permission_denied"}
            )
            return []

        effective = filters.narrow_to(actor)
        if effective is None:
            logger.info(
                "Complaint listing outside actor scope",
                extra={"user_id": actor.user_id, "zone_id": filters.zone_id, "branch_id": filters.branch_id}
            )
            return []

        with log_latency(logger, "list_complaints", user_id=actor.user_id):
            async with self._uow_factory() as uow:
                rows = await uow.complaints.list(effective)

        return [
            complaint for complaint in rows
            if evaluate_access(actor, Permission.COMPLAINT_VIEW, complaint.zone_id, complaint.branch_id).allowed
        ]

    async def sla_summary(self, actor: Actor, filters: Optional[ComplaintFilters] = None) -> SLASummary:
        """SLA compliance per priority over everything the actor can see."""
        filters = (filters or ComplaintFilters()).unpaginated()
        complaints = await self.list_complaints(actor, filters)
        return SLASummary.from_complaints(complaints, self._clock())
