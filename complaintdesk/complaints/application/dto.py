"""
Complaint Application DTOs
===========================

Data Transfer Objects for the complaints API layer.

Request models accept plain strings for enumerated fields so that the
lifecycle services produce the typed validation errors (``invalid_status``,
``invalid_priority``...) instead of a generic schema error.
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Literal
from datetime import datetime

from complaintdesk.complaints.domain import (
    Complaint, CallLog, StatusChange, SLAPolicy, SLASummary
)


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["normal", "urgent", "critical"]
ComplaintStatusStr = Literal["open", "progress", "closed", "reopen"]
CategoryStr = Literal["equipment", "feed", "medicine", "service", "billing", "other"]
CallOutcomeStr = Literal["connected", "no_answer", "busy", "wrong_number"]


# ========== Request DTOs ==========

class ComplaintCreateRequest(BaseModel):
    """Request model for creating a complaint."""
    title: str = Field(..., min_length=1, description="Short summary")
    description: str = Field(..., min_length=1, description="Full description")
    category: str = Field(..., description="equipment, feed, medicine, service, billing or other")
    priority: Optional[str] = Field(None, description="normal (default), urgent or critical")
    farmer_id: int = Field(..., description="Farmer the complaint is raised for")
    zone_id: int
    branch_id: int
    line_id: int
    equipment_id: Optional[int] = None
    assigned_to: Optional[int] = Field(None, description="Executive to assign immediately")


class ComplaintUpdateRequest(BaseModel):
    """Request model for editing a complaint. Omitted fields are left unchanged."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = Field(None, description="A new priority keeps the current SLA deadline")
    rederive_sla: bool = Field(False, description="Recompute the SLA deadline from created_at and priority")


class StatusTransitionRequest(BaseModel):
    """Request model for a direct status change."""
    status: str = Field(..., description="open, progress, closed or reopen")
    effective_date: Optional[datetime] = Field(None, description="When the change took effect")


class AssignRequest(BaseModel):
    """Request model for assigning a complaint."""
    assigned_to: int = Field(..., description="Executive user ID")


class CallLogCreateRequest(BaseModel):
    """Request model for recording a phone call."""
    outcome: str = Field(..., description="connected, no_answer, busy or wrong_number")
    remarks: Optional[str] = None
    duration_minutes: int = Field(default=0, description="Call length in minutes")
    next_follow_up_date: Optional[datetime] = None
    complaint_status: Optional[str] = Field(
        None,
        description="Complaint status as of this call; a different value changes the complaint"
    )
    complaint_status_date: Optional[datetime] = Field(
        None,
        description="Effective date of the asserted status"
    )


# ========== Response DTOs ==========

class ComplaintResponse(BaseModel):
    """Response model for a complaint, including its derived SLA state."""
    id: int
    ticket_number: str
    title: str
    description: str
    category: CategoryStr
    priority: PriorityStr
    status: ComplaintStatusStr
    farmer_id: int
    zone_id: int
    branch_id: int
    line_id: int
    equipment_id: Optional[int] = None
    assigned_to: Optional[int] = None
    created_by: int
    sla_deadline: datetime
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None
    is_breached: bool = Field(..., description="Past SLA deadline while unresolved")
    minutes_remaining: float = Field(..., description="Minutes until the SLA deadline (negative once past)")

    @classmethod
    def from_domain(cls, complaint: Complaint, now: datetime) -> "ComplaintResponse":
        return cls(
            id=complaint.id,
            ticket_number=complaint.ticket_number,
            title=complaint.title,
            description=complaint.description,
            category=complaint.category,
            priority=complaint.priority,
            status=complaint.status,
            farmer_id=complaint.farmer_id,
            zone_id=complaint.zone_id,
            branch_id=complaint.branch_id,
            line_id=complaint.line_id,
            equipment_id=complaint.equipment_id,
            assigned_to=complaint.assigned_to,
            created_by=complaint.created_by,
            sla_deadline=complaint.sla_deadline,
            created_at=complaint.created_at,
            updated_at=complaint.updated_at,
            closed_at=complaint.closed_at,
            is_breached=SLAPolicy.is_breached(complaint, now),
            minutes_remaining=round(SLAPolicy.minutes_remaining(complaint, now), 2)
        )


class Pagination(BaseModel):
    page: int
    limit: int
    returned: int


class ComplaintListResponse(BaseModel):
    """Response model for complaint listings."""
    complaints: List[ComplaintResponse]
    pagination: Pagination


class CallLogResponse(BaseModel):
    """Response model for a call log."""
    id: int
    complaint_id: int
    called_by: int
    outcome: CallOutcomeStr
    remarks: Optional[str] = None
    duration_minutes: int
    next_follow_up_date: Optional[datetime] = None
    complaint_status: Optional[ComplaintStatusStr] = None
    complaint_status_date: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, call_log: CallLog) -> "CallLogResponse":
        return cls(
            id=call_log.id,
            complaint_id=call_log.complaint_id,
            called_by=call_log.called_by,
            outcome=call_log.outcome,
            remarks=call_log.remarks,
            duration_minutes=call_log.duration_minutes,
            next_follow_up_date=call_log.next_follow_up_date,
            complaint_status=call_log.complaint_status,
            complaint_status_date=call_log.complaint_status_date,
            created_at=call_log.created_at
        )


class StatusChangeResponse(BaseModel):
    """Response model for one audit trail entry."""
    from_status: ComplaintStatusStr
    to_status: ComplaintStatusStr
    effective_date: datetime
    changed_by: int
    changed_at: datetime
    call_log_id: Optional[int] = None

    @classmethod
    def from_domain(cls, change: StatusChange) -> "StatusChangeResponse":
        return cls(
            from_status=change.from_status,
            to_status=change.to_status,
            effective_date=change.effective_date,
            changed_by=change.changed_by,
            changed_at=change.changed_at,
            call_log_id=change.call_log_id
        )


class DefaultStatusResponse(BaseModel):
    complaint_id: int
    status: ComplaintStatusStr


class PrioritySLAResponse(BaseModel):
    total: int
    unresolved: int
    breached: int
    closed: int


class SLASummaryResponse(BaseModel):
    """SLA compliance summary."""
    generated_at: datetime
    total: int
    unresolved: int
    breached: int
    breach_rate: float = Field(..., description="Percentage of unresolved complaints past deadline")
    by_priority: Dict[str, PrioritySLAResponse]

    @classmethod
    def from_domain(cls, summary: SLASummary) -> "SLASummaryResponse":
        return cls(
            generated_at=summary.generated_at,
            total=summary.total,
            unresolved=summary.unresolved,
            breached=summary.breached,
            breach_rate=summary.breach_rate,
            by_priority={
                priority: PrioritySLAResponse(
                    total=stats.total,
                    unresolved=stats.unresolved,
                    breached=stats.breached,
                    closed=stats.closed
                )
                for priority, stats in summary.by_priority.items()
            }
        )
