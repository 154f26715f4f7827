"""
Payloads for grievance workflow actions: assignment, resolution, reopening,
the assignee dashboard quick actions, bulk actions and assigner dashboard
assignments.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from transport_admin.models.base.enums import AssigneeAction, BulkAction, GrievancePriority
from transport_admin.schemas.common.base import BaseSchema

__all__ = [
    "AssignGrievanceRequest",
    "BulkAssignRequest",
    "ResolveGrievanceRequest",
    "ReopenGrievanceRequest",
    "AssigneeActionRequest",
    "BulkActionRequest",
    "AssignmentItem",
    "AssignerAssignRequest",
]


class AssignGrievanceRequest(BaseSchema):
    assigned_to: str = Field(..., min_length=1, description="Admin to assign")
    priority: Optional[GrievancePriority] = None
    expected_resolution_date: Optional[datetime] = None
    notes: Optional[str] = None


class BulkAssignRequest(BaseSchema):
    grievance_ids: List[str] = Field(..., min_length=1)
    assigned_to: str = Field(..., min_length=1)
    priority: Optional[GrievancePriority] = None
    notes: Optional[str] = None


class ResolveGrievanceRequest(BaseSchema):
    resolution: str = Field(..., min_length=1)
    resolution_category: Optional[str] = None
    public_response: Optional[str] = None
    internal_notes: Optional[str] = None


class ReopenGrievanceRequest(BaseSchema):
    reason: str = Field(..., min_length=1)


class AssigneeActionRequest(BaseSchema):
    """
    Quick action from the assignee dashboard.

    ``data`` carries action specific values: ``resolution`` for resolve,
    ``priority`` for update_priority, ``deadline`` for set_deadline and
    ``note`` for add_note.
    """

    admin_id: str = Field(..., alias="adminId", min_length=1)
    grievance_id: str = Field(..., alias="grievanceId", min_length=1)
    action: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def parsed_action(self) -> Optional[AssigneeAction]:
        try:
            return AssigneeAction(self.action)
        except ValueError:
            return None


class BulkActionRequest(BaseSchema):
    """
    One action applied to many grievances.

    ``data`` keys per action: ``assigned_to`` (assign), ``status``
    (update_status), ``resolution`` and ``resolution_category`` (resolve),
    ``closure_reason`` (close), ``priority`` and ``urgency``
    (update_priority), ``tags`` (add_tags).
    """

    action: str = Field(..., min_length=1)
    grievance_ids: List[str] = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def parsed_action(self) -> Optional[BulkAction]:
        try:
            return BulkAction(self.action)
        except ValueError:
            return None


class AssignmentItem(BaseSchema):
    grievance_id: str = Field(..., alias="grievanceId", min_length=1)
    assigned_to: str = Field(..., alias="assignedTo", min_length=1)
    reason: Optional[str] = None
    priority: Optional[GrievancePriority] = None
    deadline: Optional[datetime] = None


class AssignerAssignRequest(BaseSchema):
    """Assignments submitted from the assigner dashboard."""

    admin_id: str = Field(..., alias="adminId", min_length=1)
    assignments: List[AssignmentItem] = Field(..., min_length=1)
    assignment_type: str = Field("bulk", alias="assignmentType")
