from transport_admin.schemas.grievance.grievance_actions import (
    AssigneeActionRequest,
    AssignerAssignRequest,
    AssignGrievanceRequest,
    BulkActionRequest,
    BulkAssignRequest,
    ReopenGrievanceRequest,
    ResolveGrievanceRequest,
)
from transport_admin.schemas.grievance.grievance_base import GrievanceCreate, GrievanceUpdate
from transport_admin.schemas.grievance.grievance_communication import (
    ActivityCreate,
    CommunicationCreate,
    MarkCommunicationRead,
    StudentCommunicationRequest,
)
from transport_admin.schemas.grievance.grievance_filters import DateRangeBucket, GrievanceFilters
from transport_admin.schemas.grievance.grievance_response import (
    AssignmentResponse,
    CommunicationResponse,
    GrievanceDetail,
    GrievanceResponse,
)

__all__ = [
    "ActivityCreate",
    "AssigneeActionRequest",
    "AssignerAssignRequest",
    "AssignGrievanceRequest",
    "AssignmentResponse",
    "BulkActionRequest",
    "BulkAssignRequest",
    "CommunicationCreate",
    "CommunicationResponse",
    "DateRangeBucket",
    "GrievanceCreate",
    "GrievanceDetail",
    "GrievanceFilters",
    "GrievanceResponse",
    "GrievanceUpdate",
    "MarkCommunicationRead",
    "ReopenGrievanceRequest",
    "ResolveGrievanceRequest",
    "StudentCommunicationRequest",
]
