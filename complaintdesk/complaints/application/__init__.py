"""
Complaints Application Layer
============================

Contains:
- Ports: repository and unit-of-work interfaces
- Services: lifecycle, call log recorder, scoped queries
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and the port interfaces,
but not on concrete infrastructure implementations.
"""

from complaintdesk.complaints.application.ports import (
    IComplaintRepository,
    ICallLogRepository,
    IStatusChangeRepository,
    IFarmerDirectory,
    IUnitOfWork,
    UnitOfWorkFactory,
)
from complaintdesk.complaints.application.services import (
    ComplaintLifecycleService,
    CallLogRecorder,
    ComplaintQueryService,
    utc_now,
)
from complaintdesk.complaints.application.dto import (
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
)

__all__ = [
    # Ports
    "IComplaintRepository",
    "ICallLogRepository",
    "IStatusChangeRepository",
    "IFarmerDirectory",
    "IUnitOfWork",
    "UnitOfWorkFactory",
    # Services
    "ComplaintLifecycleService",
    "CallLogRecorder",
    "ComplaintQueryService",
    "utc_now",
    # DTOs
    "ComplaintCreateRequest",
    "ComplaintUpdateRequest",
    "StatusTransitionRequest",
    "AssignRequest",
    "CallLogCreateRequest",
    "ComplaintResponse",
    "ComplaintListResponse",
    "Pagination",
    "CallLogResponse",
    "StatusChangeResponse",
    "DefaultStatusResponse",
    "SLASummaryResponse",
]
