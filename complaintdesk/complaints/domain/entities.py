"""
Complaint Domain Entities
==========================

Pure Python domain entities for the complaint lifecycle.

These entities contain business logic and are free of infrastructure
concerns. Call logs and status changes are immutable facts; a complaint is
mutated only through ``apply_status``, ``assign`` and ``edit``.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from complaintdesk.config import ComplaintStatus, UNRESOLVED_STATUSES


@dataclass(frozen=True)
class Farmer:
    """Farmer reference data. Owned by master-data management."""

    id: int
    name: str
    phone: str
    zone_id: int
    branch_id: int
    line_id: int


@dataclass
class Complaint:
    """
    Complaint (ticket) raised against a farmer or their equipment.

    The SLA deadline is fixed when the complaint is created. Status changes
    never move it; only an explicit re-derivation after an edit does.
    """

    # Identity
    id: Optional[int]
    ticket_number: str

    # Content (opaque to the engine)
    title: str
    description: str
    category: str

    priority: str
    status: str

    # Location and references
    farmer_id: int
    zone_id: int
    branch_id: int
    line_id: int
    created_by: int

    # Timestamps
    sla_deadline: datetime
    created_at: datetime
    updated_at: datetime

    equipment_id: Optional[int] = None
    assigned_to: Optional[int] = None
    closed_at: Optional[datetime] = None
    version: int = 1

    def __post_init__(self):
        if self.sla_deadline < self.created_at:
            raise ValueError("sla_deadline cannot be before created_at")
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")

    @property
    def is_unresolved(self) -> bool:
        """Open, in progress or reopened."""
        return self.status in UNRESOLVED_STATUSES

    def is_breached(self, now: datetime) -> bool:
        """
        Past the SLA deadline while still unresolved.

        A closed complaint is never breached, whenever it was closed.
        """
        return self.is_unresolved and now > self.sla_deadline

    def apply_status(self, target_status: str, at: datetime) -> str:
        """
        Move to ``target_status`` and return the previous status.

        Every edge between the four statuses is allowed.
        """
        previous = self.status
        self.status = target_status
        self.updated_at = max(at, self.created_at)
        if target_status == ComplaintStatus.CLOSED:
            self.closed_at = at
        return previous

    def assign(self, user_id: int, at: datetime) -> None:
        self.assigned_to = user_id
        self.updated_at = max(at, self.created_at)

    def edit(
        self,
        at: datetime,
        title: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
        priority: Optional[str] = None
    ) -> List[str]:
        """Overwrite the given content fields and return the names that changed."""
        changed = []
        for name, value in (
            ("title", title),
            ("description", description),
            ("category", category),
            ("priority", priority),
        ):
            if value is not None and getattr(self, name) != value:
                setattr(self, name, value)
                changed.append(name)
        if changed:
            self.updated_at = max(at, self.created_at)
        return changed


@dataclass(frozen=True)
class CallLog:
    """
    One phone contact attempt on a complaint.

    Never edited or deleted; corrections are new entries.
    """

    id: Optional[int]
    complaint_id: int
    called_by: int
    outcome: str
    duration_minutes: int
    created_at: datetime
    remarks: Optional[str] = None
    next_follow_up_date: Optional[datetime] = None
    complaint_status: Optional[str] = None
    complaint_status_date: Optional[datetime] = None

    def __post_init__(self):
        if self.duration_minutes < 0:
            raise ValueError("duration_minutes cannot be negative")


@dataclass(frozen=True)
class StatusChange:
    """Audit entry for one status transition."""

    id: Optional[int]
    complaint_id: int
    from_status: str
    to_status: str
    effective_date: datetime
    changed_by: int
    changed_at: datetime
    call_log_id: Optional[int] = None
