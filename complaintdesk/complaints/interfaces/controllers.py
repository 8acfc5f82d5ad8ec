"""
Complaint Controllers (API Routes)
===================================

FastAPI routes for the complaint lifecycle.

Controllers are thin - they resolve the acting user, delegate to the
application services and convert domain objects to response DTOs. Typed
domain errors propagate to the application exception handler.
"""

from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.access.application import IUserDirectory, resolve_actor
from complaintdesk.access.domain import Actor
from complaintdesk.access.infrastructure import SQLAlchemyUserDirectory
from complaintdesk.complaints.application import (
    ComplaintLifecycleService,
    CallLogRecorder,
    ComplaintQueryService,
    UnitOfWorkFactory,
    ComplaintCreateRequest,
    ComplaintUpdateRequest,
    StatusTransitionRequest,
    AssignRequest,
    CallLogCreateRequest,
    ComplaintResponse,
    ComplaintListResponse,
    Pagination,
    CallLogResponse,
    StatusChangeResponse,
    DefaultStatusResponse,
    SLASummaryResponse,
    utc_now,
)
from complaintdesk.complaints.domain import ComplaintFilters
from complaintdesk.complaints.infrastructure import SQLAlchemyUnitOfWork
from complaintdesk.config import get_settings
from complaintdesk.infrastructure.database import get_session

router = APIRouter(prefix="/complaints", tags=["Complaints"])


# ========== Example payloads for Swagger ==========

COMPLAINT_CREATE_EXAMPLE = {
    "title": "Milking machine not starting",
    "description": "Motor hums but the pump does not engage since this morning.",
    "category": "equipment",
    "priority": "critical",
    "farmer_id": 1042,
    "zone_id": 5,
    "branch_id": 51,
    "line_id": 511,
    "equipment_id": 77
}

COMPLAINT_RESPONSE_EXAMPLE = {
    "id": 1,
    "ticket_number": "SHC48213377K2M9QX0B",
    "title": "Milking machine not starting",
    "description": "Motor hums but the pump does not engage since this morning.",
    "category": "equipment",
    "priority": "critical",
    "status": "open",
    "farmer_id": 1042,
    "zone_id": 5,
    "branch_id": 51,
    "line_id": 511,
    "equipment_id": 77,
    "assigned_to": None,
    "created_by": 12,
    "sla_deadline": "2024-01-15T10:30:00Z",
    "created_at": "2024-01-15T10:00:00Z",
    "updated_at": "2024-01-15T10:00:00Z",
    "closed_at": None,
    "is_breached": False,
    "minutes_remaining": 30.0
}

ERROR_EXAMPLE = {
    "error": "forbidden",
    "reason": "zone_scope_violation",
    "detail": "Access denied: zone_scope_violation (complaint.updateStatus)",
    "correlation_id": "5b8c0f0e-6d0a-4b43-9a8e-0e7f1b0c2d11"
}

ERROR_RESPONSES = {
    400: {"description": "Validation error"},
    403: {"description": "Access denied", "content": {"application/json": {"example": ERROR_EXAMPLE}}},
    404: {"description": "Complaint, farmer or user not found"},
}


# ========== Dependencies ==========

async def get_user_directory(
    session: AsyncSession = Depends(get_session)
) -> IUserDirectory:
    """Get user directory instance."""
    return SQLAlchemyUserDirectory(session)


async def get_uow_factory(
    session: AsyncSession = Depends(get_session)
) -> UnitOfWorkFactory:
    """Units of work for this request share the request's session."""
    return lambda: SQLAlchemyUnitOfWork(session)


async def get_current_actor(
    x_user_id: int = Header(..., description="ID of the acting user"),
    directory: IUserDirectory = Depends(get_user_directory)
) -> Actor:
    """Resolve the acting user; authentication happens upstream."""
    return await resolve_actor(directory, x_user_id)


async def get_lifecycle_service(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    directory: IUserDirectory = Depends(get_user_directory)
) -> ComplaintLifecycleService:
    """Get complaint lifecycle service instance."""
    return ComplaintLifecycleService(uow_factory, directory)


async def get_call_log_recorder(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    lifecycle: ComplaintLifecycleService = Depends(get_lifecycle_service)
) -> CallLogRecorder:
    """Get call log recorder instance."""
    return CallLogRecorder(uow_factory, lifecycle)


async def get_query_service(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)
) -> ComplaintQueryService:
    """Get complaint query service instance."""
    return ComplaintQueryService(uow_factory)


def _listing_filters(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Farmer name or phone"),
    zone_id: Optional[int] = Query(None),
    branch_id: Optional[int] = Query(None),
    line_id: Optional[int] = Query(None),
    farmer_id: Optional[int] = Query(None),
    assigned_to: Optional[int] = Query(None),
    created_from: Optional[datetime] = Query(None),
    created_to: Optional[datetime] = Query(None)
) -> ComplaintFilters:
    return ComplaintFilters(
        status=status_filter,
        priority=priority,
        category=category,
        search=search,
        zone_id=zone_id,
        branch_id=branch_id,
        line_id=line_id,
        farmer_id=farmer_id,
        assigned_to=assigned_to,
        created_from=created_from,
        created_to=created_to
    )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=ComplaintResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a complaint",
    description="""
    Create a complaint in `open` with a generated ticket number and SLA deadline.

    **SLA windows**: `critical` 30 minutes, `urgent` 2 hours, `normal` 8 hours.
    A missing priority defaults to `normal`.

    The farmer must belong to the given zone, branch and line.

    **Example Request**:
    ```json
    {
        "title": "Milking machine not starting",
        "category": "equipment",
        "priority": "critical",
        "farmer_id": 1042,
        "zone_id": 5,
        "branch_id": 51,
        "line_id": 511
    }
    ```
    """,
    responses={
        201: {
            "description": "Complaint created",
            "content": {"application/json": {"example": COMPLAINT_RESPONSE_EXAMPLE}}
        },
        **ERROR_RESPONSES
    }
)
async def create_complaint(
    request: ComplaintCreateRequest = Body(..., examples=[COMPLAINT_CREATE_EXAMPLE]),
    actor: Actor = Depends(get_current_actor),
    lifecycle: ComplaintLifecycleService = Depends(get_lifecycle_service)
):
    complaint = await lifecycle.create_complaint(
        actor,
        title=request.title,
        description=request.description,
        category=request.category,
        priority=request.priority,
        farmer_id=request.farmer_id,
        zone_id=request.zone_id,
        branch_id=request.branch_id,
        line_id=request.line_id,
        equipment_id=request.equipment_id,
        assigned_to=request.assigned_to
    )
    return ComplaintResponse.from_domain(complaint, utc_now())


@router.get(
    "",
    response_model=ComplaintListResponse,
    summary="List complaints",
    description="""
    List complaints visible to the acting user, newest first.

    Filters are intersected with the user's zone/branch scope; asking for a
    zone outside that scope returns an empty list rather than an error.
    """
)
async def list_complaints(
    filters: ComplaintFilters = Depends(_listing_filters),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, description="Page size (capped by configuration)"),
    actor: Actor = Depends(get_current_actor),
    queries: ComplaintQueryService = Depends(get_query_service)
):
    settings = get_settings()
    page_size = min(limit or settings.default_page_size, settings.max_page_size)
    paged = replace(filters, page=page, limit=page_size)

    complaints = await queries.list_complaints(actor, paged)
    now = utc_now()
    return ComplaintListResponse(
        complaints=[ComplaintResponse.from_domain(c, now) for c in complaints],
        pagination=Pagination(page=page, limit=page_size, returned=len(complaints))
    )


@router.get(
    "/sla-summary",
    response_model=SLASummaryResponse,
    summary="SLA compliance summary",
    description="Per-priority totals, breaches and breach rate over complaints the user can see."
)
async def sla_summary(
    filters: ComplaintFilters = Depends(_listing_filters),
    actor: Actor = Depends(get_current_actor),
    queries: ComplaintQueryService = Depends(get_query_service)
):
    summary = await queries.sla_summary(actor, filters)
    return SLASummaryResponse.from_domain(summary)


@router.get(
    "/call-logs/recent",
    response_model=List[CallLogResponse],
    summary="Recent call logs",
    description="Newest call logs across every complaint the user can view."
)
async def recent_call_logs(
    limit: Optional[int] = Query(None, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    recorder: CallLogRecorder = Depends(get_call_log_recorder)
):
    call_logs = await recorder.recent_call_logs(actor, limit or get_settings().recent_call_logs_limit)
    return [CallLogResponse.from_domain(c) for c in call_logs]


@router.get(
    "/{complaint_id}",
    response_model=ComplaintResponse,
    summary="Get a complaint",
    description="Complaint details including the derived `is_breached` flag.",
    responses=ERROR_RESPONSES
)
async def get_complaint(
    complaint_id: int,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ComplaintLifecycleService = Depends(get_lifecycle_service)
):
    complaint = await lifecycle.get_complaint(actor, complaint_id)
    return ComplaintResponse.from_domain(complaint, utc_now())


@router.put(
    "/{complaint_id}",
    response_model=ComplaintResponse,
    summary="Edit a complaint",
    description="""
    Change title, description, category or priority.

    A priority change keeps the current SLA deadline. Send
    `rederive_sla: true` to recompute it from the creation time.
    """,
    responses=ERROR_RESPONSES
)
async def update_complaint(
    complaint_id: int,
    request: ComplaintUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ComplaintLifecycleService = Depends(get_lifecycle_service)
):
    complaint = await lifecycle.update_complaint(
        actor,
        complaint_id,
        title=request.title,
        description=request.description,
        category=request.category,
        priority=request.priority,
        rederive_sla=request.rederive_sla
    )
    return ComplaintResponse.from_domain(complaint, utc_now())


@router.put(
    "/{complaint_id}/status",
    response_model=ComplaintResponse,
    summary="Change complaint status",
    description="""
    Move a complaint to `open`, `progress`, `closed` or `reopen`.

    Every transition between the four statuses is allowed. The SLA deadline
    never moves; `effective_date` is recorded in the status history.
    """,
    responses=ERROR_RESPONSES
)
async def transition_status(
    complaint_id: int,
    request: StatusTransitionRequest,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ComplaintLifecycleService = Depends(get_lifecycle_service)
):
    complaint = await lifecycle.transition_status(
        actor, complaint_id, request.status, request.effective_date
    )
    return ComplaintResponse.from_domain(complaint, utc_now())


@router.put(
    "/{complaint_id}/assign",
    response_model=ComplaintResponse,
    summary="Assign a complaint",
    responses=ERROR_RESPONSES
)
async def assign_complaint(
    complaint_id: int,
    request: AssignRequest,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ComplaintLifecycleService = Depends(get_lifecycle_service)
):
    complaint = await lifecycle.assign_complaint(actor, complaint_id, request.assigned_to)
    return ComplaintResponse.from_domain(complaint, utc_now())


@router.get(
    "/{complaint_id}/history",
    response_model=List[StatusChangeResponse],
    summary="Status history",
    description="Status transitions of a complaint, oldest first.",
    responses=ERROR_RESPONSES
)
async def status_history(
    complaint_id: int,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ComplaintLifecycleService = Depends(get_lifecycle_service)
):
    changes = await lifecycle.status_history(actor, complaint_id)
    return [StatusChangeResponse.from_domain(c) for c in changes]


@router.post(
    "/{complaint_id}/call-logs",
    response_model=CallLogResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a call",
    description="""
    Record a phone follow-up on a complaint.

    When `complaint_status` differs from the complaint's current status the
    complaint is transitioned in the same transaction; if that transition is
    rejected, the call log is not stored either.
    """,
    responses=ERROR_RESPONSES
)
async def record_call(
    complaint_id: int,
    request: CallLogCreateRequest,
    actor: Actor = Depends(get_current_actor),
    recorder: CallLogRecorder = Depends(get_call_log_recorder)
):
    call_log = await recorder.record_call(
        actor,
        complaint_id,
        outcome=request.outcome,
        remarks=request.remarks,
        duration_minutes=request.duration_minutes,
        next_follow_up_date=request.next_follow_up_date,
        asserted_status=request.complaint_status,
        asserted_status_effective_date=request.complaint_status_date
    )
    return CallLogResponse.from_domain(call_log)


@router.get(
    "/{complaint_id}/call-logs",
    response_model=List[CallLogResponse],
    summary="List call logs",
    description="Call logs of a complaint, newest first.",
    responses=ERROR_RESPONSES
)
async def list_call_logs(
    complaint_id: int,
    actor: Actor = Depends(get_current_actor),
    recorder: CallLogRecorder = Depends(get_call_log_recorder)
):
    call_logs = await recorder.list_call_logs(actor, complaint_id)
    return [CallLogResponse.from_domain(c) for c in call_logs]


@router.get(
    "/{complaint_id}/default-status",
    response_model=DefaultStatusResponse,
    summary="Default status for the next call",
    description="Status asserted by the latest call log, or the live status when none asserted one.",
    responses=ERROR_RESPONSES
)
async def default_status(
    complaint_id: int,
    actor: Actor = Depends(get_current_actor),
    recorder: CallLogRecorder = Depends(get_call_log_recorder)
):
    current = await recorder.default_status_for(actor, complaint_id)
    return DefaultStatusResponse(complaint_id=complaint_id, status=current)


# Export router for inclusion in main app
complaints_router = router
