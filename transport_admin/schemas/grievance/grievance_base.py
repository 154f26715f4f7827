"""
Core grievance schemas: create, update and status change payloads.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from transport_admin.models.base.enums import GrievancePriority, GrievanceStatus
from transport_admin.schemas.common.base import BaseCreateSchema, BaseUpdateSchema

__all__ = [
    "GrievanceCreate",
    "GrievanceUpdate",
]


def _clean_tags(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    cleaned: List[str] = []
    for tag in v:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class GrievanceCreate(BaseCreateSchema):
    """
    Grievance creation payload (admin on behalf of a student).

    Subject and description are trimmed; an empty tag list is stored as null.
    """

    student_id: str = Field(..., min_length=1, description="Student raising the grievance")
    category: str = Field(..., min_length=1, max_length=100)
    subject: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)

    grievance_type: str = Field(default="service_complaint", max_length=100)
    priority: GrievancePriority = Field(default=GrievancePriority.MEDIUM)
    urgency: GrievancePriority = Field(default=GrievancePriority.MEDIUM)

    route_id: Optional[str] = None
    driver_name: Optional[str] = Field(default=None, max_length=255)
    vehicle_registration: Optional[str] = Field(default=None, max_length=50)
    location_details: Optional[str] = None
    incident_date: Optional[datetime] = None

    tags: List[str] = Field(default_factory=list)
    assigned_to: Optional[str] = Field(default=None, description="Initial assignee")
    internal_notes: Optional[str] = None
    estimated_resolution_time: Optional[str] = Field(
        default=None,
        description="Overrides the SLA-derived estimate, e.g. '48 hours'",
    )

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)


class GrievanceUpdate(BaseUpdateSchema):
    """
    Partial grievance update.

    Only fields explicitly sent are applied (``model_dump(exclude_unset=True)``).
    ``merge_tags`` unions ``tags`` into the existing set instead of replacing it.
    """

    id: str = Field(..., min_length=1, description="Grievance to update")

    status: Optional[GrievanceStatus] = None
    priority: Optional[GrievancePriority] = None
    urgency: Optional[GrievancePriority] = None
    category: Optional[str] = Field(default=None, max_length=100)
    grievance_type: Optional[str] = Field(default=None, max_length=100)
    subject: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, min_length=1)

    route_id: Optional[str] = None
    driver_name: Optional[str] = None
    vehicle_registration: Optional[str] = None
    location_details: Optional[str] = None
    incident_date: Optional[datetime] = None

    assigned_to: Optional[str] = None
    assigned_by: Optional[str] = None
    assignment_reason: Optional[str] = None

    escalated_to: Optional[str] = None
    escalation_reason: Optional[str] = None

    tags: Optional[List[str]] = None
    merge_tags: bool = False

    resolution: Optional[str] = None
    resolution_category: Optional[str] = None
    public_response: Optional[str] = None
    internal_notes: Optional[str] = None
    expected_resolution_date: Optional[datetime] = None
    follow_up_required: Optional[bool] = None
    follow_up_date: Optional[datetime] = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)
