"""
Complaints Domain Layer
=======================

Domain layer for the complaint lifecycle.

Contains:
- Entities: Complaint, CallLog, StatusChange, Farmer
- Value Objects: ComplaintFilters, SLASummary
- Domain Services: generate_ticket_number, SLAPolicy

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from complaintdesk.complaints.domain.entities import (
    Complaint,
    CallLog,
    StatusChange,
    Farmer,
)
from complaintdesk.complaints.domain.value_objects import (
    as_utc,
    generate_ticket_number,
    SLAPolicy,
    ComplaintFilters,
    PrioritySLAStats,
    SLASummary,
)

__all__ = [
    # Entities
    "Complaint",
    "CallLog",
    "StatusChange",
    "Farmer",
    # Value Objects & Services
    "generate_ticket_number",
    "SLAPolicy",
    "ComplaintFilters",
    "PrioritySLAStats",
    "SLASummary",
    "as_utc",
]
