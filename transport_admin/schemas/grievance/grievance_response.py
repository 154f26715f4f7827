"""
Grievance response schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from transport_admin.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = [
    "StudentBrief",
    "AdminBrief",
    "RouteBrief",
    "AssignmentResponse",
    "CommunicationResponse",
    "GrievanceResponse",
    "GrievanceDetail",
]


class StudentBrief(BaseSchema):
    id: str
    student_name: str
    roll_number: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None


class AdminBrief(BaseSchema):
    id: str
    name: str
    email: Optional[str] = None
    role: Optional[str] = None


class RouteBrief(BaseSchema):
    id: str
    route_name: str
    route_number: str


class AssignmentResponse(BaseResponseSchema):
    grievance_id: str
    assigned_to: str
    assigned_by: Optional[str] = None
    assigned_at: datetime
    valid_to: Optional[datetime] = None
    is_active: bool
    assignment_reason: Optional[str] = None
    unassigned_at: Optional[datetime] = None
    unassignment_reason: Optional[str] = None
    priority: Optional[str] = None
    expected_resolution_date: Optional[datetime] = None


class CommunicationResponse(BaseResponseSchema):
    grievance_id: str
    sender_type: str
    sender_id: str
    recipient_type: str
    recipient_id: str
    message: str
    communication_type: str
    is_internal: bool
    read_at: Optional[datetime] = None
    read_by: Optional[str] = None
    attachments: Optional[List[Dict[str, Any]]] = None


class GrievanceResponse(BaseResponseSchema):
    """Grievance row with its student, route and assignee."""

    updated_at: datetime
    student_id: str
    route_id: Optional[str] = None
    category: str
    grievance_type: str
    priority: str
    urgency: str
    subject: str
    description: str
    driver_name: Optional[str] = None
    vehicle_registration: Optional[str] = None
    location_details: Optional[str] = None
    incident_date: Optional[datetime] = None
    status: str

    assigned_to: Optional[str] = None
    escalated_to: Optional[str] = None
    escalated_at: Optional[datetime] = None
    escalation_reason: Optional[str] = None

    expected_resolution_date: Optional[datetime] = None
    estimated_resolution_time: Optional[str] = None
    actual_resolution_time: Optional[str] = None

    resolution: Optional[str] = None
    resolution_category: Optional[str] = None
    public_response: Optional[str] = None
    internal_notes: Optional[str] = None
    closure_reason: Optional[str] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    satisfaction_rating: Optional[int] = None
    satisfaction_feedback: Optional[str] = None
    tags: Optional[List[str]] = None
    follow_up_required: bool = False
    follow_up_date: Optional[datetime] = None

    student: Optional[StudentBrief] = None
    route: Optional[RouteBrief] = None
    assignee: Optional[AdminBrief] = None
    escalation_target: Optional[AdminBrief] = None


class GrievanceDetail(GrievanceResponse):
    """Single grievance with its conversation and assignment history."""

    communications: List[CommunicationResponse] = Field(default_factory=list)
    assignments: List[AssignmentResponse] = Field(default_factory=list)
