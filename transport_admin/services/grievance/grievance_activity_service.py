"""
Grievance activity log service.

Writes go through a savepoint so a failed log entry never rolls back the
change being logged. ``log`` returns a ServiceResult that primary-path
callers are free to ignore.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.security import RequestContext
from transport_admin.models.base.enums import ActivityVisibility, ParticipantType
from transport_admin.models.grievance.grievance_activity_log import GrievanceActivityLog
from transport_admin.repositories.grievance import (
    GrievanceActivityRepository,
    GrievanceRepository,
)
from transport_admin.schemas.grievance.grievance_communication import ActivityCreate
from transport_admin.services.base import BaseService, ErrorSeverity, ServiceResult


STUDENT_VISIBLE = (ActivityVisibility.PUBLIC.value, ActivityVisibility.SYSTEM.value)


def format_activity(activity: GrievanceActivityLog) -> Dict[str, Any]:
    return {
        "id": activity.id,
        "type": activity.activity_type,
        "visibility": activity.visibility,
        "actor": {
            "type": activity.actor_type,
            "id": activity.actor_id,
            "name": activity.actor_name,
        },
        "description": activity.action_description,
        "details": activity.action_details,
        "oldValues": activity.old_values,
        "newValues": activity.new_values,
        "isMilestone": activity.is_milestone,
        "timestamp": activity.created_at.isoformat() if activity.created_at else None,
    }


def format_timeline_entry(activity: GrievanceActivityLog) -> Dict[str, Any]:
    """Student timeline shape (no visibility or old/new values)."""
    return {
        "id": activity.id,
        "type": activity.activity_type,
        "actor": activity.actor_name,
        "description": activity.action_description,
        "timestamp": activity.created_at.isoformat() if activity.created_at else None,
        "is_milestone": activity.is_milestone,
        "details": activity.action_details,
    }


class GrievanceActivityService(BaseService[GrievanceActivityLog, GrievanceActivityRepository]):
    """Append-only activity trail for grievances."""

    def __init__(self, db: Session):
        super().__init__(GrievanceActivityRepository(db), db)
        self.grievances = GrievanceRepository(db)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def log(
        self,
        grievance_id: str,
        activity_type: str,
        description: str,
        actor_type: str = ParticipantType.ADMIN.value,
        actor_id: Optional[str] = None,
        actor_name: Optional[str] = None,
        visibility: str = ActivityVisibility.PUBLIC.value,
        details: Optional[Dict[str, Any]] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        is_milestone: bool = False,
    ) -> ServiceResult[GrievanceActivityLog]:
        """
        Append one entry inside a savepoint.

        Does not commit; the entry becomes durable with the caller's commit.
        """
        entry = GrievanceActivityLog(
            grievance_id=grievance_id,
            activity_type=activity_type,
            visibility=visibility,
            actor_type=actor_type,
            actor_id=actor_id,
            actor_name=actor_name,
            action_description=description,
            action_details=details,
            old_values=old_values,
            new_values=new_values,
            is_milestone=is_milestone,
        )
        try:
            with self.db.begin_nested():
                self.db.add(entry)
            return ServiceResult.success(entry)
        except SQLAlchemyError as e:
            return self._handle_exception(
                e,
                "log grievance activity",
                grievance_id,
                severity=ErrorSeverity.WARNING,
                additional_context={"activity_type": activity_type},
            )

    def add_manual(
        self,
        grievance_id: str,
        payload: ActivityCreate,
        ctx: RequestContext,
    ) -> ServiceResult[Dict[str, Any]]:
        """Append an activity entered by an admin."""
        try:
            if not self.grievances.find_by_id(grievance_id):
                return ServiceResult.not_found("Grievance", grievance_id)

            result = self.log(
                grievance_id,
                payload.activity_type,
                payload.action_description,
                actor_type=ParticipantType.ADMIN.value,
                actor_id=ctx.user_id,
                actor_name=ctx.email or "Admin",
                visibility=payload.visibility,
                details=payload.action_details,
                is_milestone=payload.is_milestone,
            )
            if not result.is_success:
                self._rollback()
                return result

            self._commit()
            return ServiceResult.success(format_activity(result.data), message="Activity added")
        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "add grievance activity", grievance_id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_for_admin(self, grievance_id: str) -> ServiceResult[List[Dict[str, Any]]]:
        """Every entry, newest first."""
        try:
            if not self.grievances.find_by_id(grievance_id):
                return ServiceResult.not_found("Grievance", grievance_id)
            entries = self.repository.find_by_grievance(grievance_id)
            return ServiceResult.success([format_activity(a) for a in entries])
        except SQLAlchemyError as e:
            return self._handle_exception(e, "list grievance activities", grievance_id)

    def timeline_for_student(self, grievance_id: str, limit: Optional[int] = None) -> List[GrievanceActivityLog]:
        """Public and system entries only, newest first."""
        return self.repository.find_by_grievance(grievance_id, visibilities=STUDENT_VISIBLE, limit=limit)
