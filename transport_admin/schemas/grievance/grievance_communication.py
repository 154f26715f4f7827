"""
Communication and activity log payloads.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field

from transport_admin.models.base.enums import (
    ActivityVisibility,
    CommunicationType,
    ParticipantType,
    StudentCommunicationType,
)
from transport_admin.schemas.common.base import BaseSchema

__all__ = [
    "CommunicationCreate",
    "MarkCommunicationRead",
    "ActivityCreate",
    "StudentCommunicationRequest",
]


class CommunicationCreate(BaseSchema):
    sender_id: str = Field(..., min_length=1)
    recipient_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    sender_type: ParticipantType = ParticipantType.ADMIN
    recipient_type: ParticipantType = ParticipantType.STUDENT
    communication_type: CommunicationType = CommunicationType.COMMENT
    is_internal: bool = False
    attachments: Optional[List[Dict[str, Any]]] = None


class MarkCommunicationRead(BaseSchema):
    communication_id: str = Field(..., min_length=1)
    read_by: str = Field(..., min_length=1)


class ActivityCreate(BaseSchema):
    activity_type: str = Field(..., min_length=1, max_length=50)
    action_description: str = Field(..., min_length=1)
    visibility: ActivityVisibility = ActivityVisibility.PUBLIC
    action_details: Optional[Dict[str, Any]] = None
    is_milestone: bool = False


class StudentCommunicationRequest(BaseSchema):
    """Message submitted by a student from the tracking view."""

    student_id: str = Field(..., alias="studentId", min_length=1)
    grievance_id: str = Field(..., alias="grievanceId", min_length=1)
    type: StudentCommunicationType
    message: str = Field(..., min_length=1)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
