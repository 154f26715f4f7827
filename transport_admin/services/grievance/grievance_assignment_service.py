"""
Grievance assignment service.

Moving a grievance between admins closes the previous active history row and
opens a new one in the same transaction as the grievance update, so at most
one active row exists per grievance.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.security import RequestContext
from transport_admin.models.base.enums import ActivityVisibility, GrievanceStatus
from transport_admin.models.base.types import utcnow
from transport_admin.models.grievance.grievance import Grievance
from transport_admin.models.grievance.grievance_assignment import GrievanceAssignment
from transport_admin.repositories.grievance import (
    GrievanceAssignmentRepository,
    GrievanceRepository,
)
from transport_admin.repositories.transport import AdminUserRepository
from transport_admin.schemas.grievance.grievance_actions import (
    AssignGrievanceRequest,
    BulkAssignRequest,
)
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.grievance.grievance_access import admin_can_modify
from transport_admin.services.grievance.grievance_activity_service import GrievanceActivityService

logger = logging.getLogger(__name__)

DEFAULT_REASSIGN_REASON = "Reassigned"
DEFAULT_UNASSIGN_REASON = "Reassigned to another admin"


class GrievanceAssignmentService(BaseService[GrievanceAssignment, GrievanceAssignmentRepository]):
    """Assignment history and the assign / bulk-assign operations."""

    def __init__(self, db: Session):
        super().__init__(GrievanceAssignmentRepository(db), db)
        self.grievances = GrievanceRepository(db)
        self.admins = AdminUserRepository(db)
        self.activities = GrievanceActivityService(db)

    # -------------------------------------------------------------------------
    # Core swap (no commit)
    # -------------------------------------------------------------------------

    def reassign(
        self,
        grievance: Grievance,
        new_assignee: str,
        assigned_by: Optional[str] = None,
        reason: Optional[str] = None,
        unassignment_reason: str = DEFAULT_UNASSIGN_REASON,
        now: Optional[datetime] = None,
        expected_resolution_date: Optional[datetime] = None,
    ) -> Optional[GrievanceAssignment]:
        """
        Point ``grievance`` at ``new_assignee`` and record the history.

        Returns the new history row, or None when the grievance is already
        assigned to ``new_assignee`` (no row is written in that case).
        The caller owns the commit.
        """
        if grievance.assigned_to == new_assignee:
            return None

        now = now or utcnow()
        previous = self.repository.deactivate_active(grievance.id, unassignment_reason, at=now)
        assignment = self.repository.create_assignment(
            grievance_id=grievance.id,
            assigned_to=new_assignee,
            assigned_by=assigned_by,
            assignment_reason=reason or DEFAULT_REASSIGN_REASON,
            priority=grievance.priority,
            expected_resolution_date=expected_resolution_date or grievance.expected_resolution_date,
            assigned_at=now,
        )
        grievance.assigned_to = new_assignee

        logger.info(
            f"Grievance {grievance.id} assigned to {new_assignee}"
            + (f" (previously {previous.assigned_to})" if previous else "")
        )
        return assignment

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def assign(
        self,
        grievance_id: str,
        payload: AssignGrievanceRequest,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Grievance]:
        """
        Assign a grievance to an active admin.

        An open grievance moves to in_progress. Reassigning to the current
        assignee only applies the priority/deadline changes.
        """
        now = now or utcnow()
        try:
            admin = self.admins.find_active(payload.assigned_to)
            if not admin:
                return ServiceResult.not_found("Admin", payload.assigned_to)

            grievance = self.grievances.find_by_id(grievance_id)
            if not grievance:
                return ServiceResult.not_found("Grievance", grievance_id)

            if not admin_can_modify(grievance, ctx):
                return ServiceResult.unauthorized("assign", f"grievance {grievance_id}")

            old_values = {
                "assigned_to": grievance.assigned_to,
                "status": grievance.status,
                "priority": grievance.priority,
            }

            if payload.priority:
                grievance.priority = payload.priority
            if payload.expected_resolution_date:
                grievance.expected_resolution_date = payload.expected_resolution_date

            assignment = self.reassign(
                grievance,
                payload.assigned_to,
                assigned_by=ctx.user_id,
                reason=payload.notes or DEFAULT_REASSIGN_REASON,
                now=now,
                expected_resolution_date=payload.expected_resolution_date,
            )

            if grievance.status == GrievanceStatus.OPEN.value:
                grievance.status = GrievanceStatus.IN_PROGRESS.value
            self.db.flush()

            new_values = {
                "assigned_to": grievance.assigned_to,
                "status": grievance.status,
                "priority": grievance.priority,
            }

            # Activity log failure does not fail the update
            self.activities.log(
                grievance.id,
                "grievance_assigned",
                f"Grievance assigned to {admin.name}",
                actor_id=ctx.user_id,
                actor_name=ctx.email or "Admin",
                visibility=ActivityVisibility.PUBLIC.value,
                details={"notes": payload.notes, "new_history_row": assignment is not None},
                old_values=old_values,
                new_values=new_values,
                is_milestone=True,
            )

            self._commit()
            self.db.refresh(grievance)

            message = "Grievance assigned successfully" if assignment else "Grievance already assigned to this admin"
            return ServiceResult.success(grievance, message=message)

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "assign grievance", grievance_id)

    def bulk_assign(
        self,
        payload: BulkAssignRequest,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Assign many grievances; each id succeeds or fails on its own.
        """
        results: List[Dict[str, Any]] = []
        errors: List[Dict[str, Any]] = []

        for grievance_id in payload.grievance_ids:
            result = self.assign(
                grievance_id,
                AssignGrievanceRequest(
                    assigned_to=payload.assigned_to,
                    priority=payload.priority,
                    notes=payload.notes or "Bulk assignment",
                ),
                ctx,
                now=now,
            )
            if result.is_success:
                results.append({"grievance_id": grievance_id, "status": result.data.status})
            else:
                errors.append({"grievance_id": grievance_id, "error": result.message})

        logger.info(
            f"Bulk assignment to {payload.assigned_to}: "
            f"{len(results)} assigned, {len(errors)} failed"
        )
        return ServiceResult.success(
            {
                "assigned": len(results),
                "failed": len(errors),
                "results": results,
                "errors": errors,
            },
            message=f"Assigned {len(results)} of {len(payload.grievance_ids)} grievances",
        )

    def history(self, grievance_id: str) -> List[GrievanceAssignment]:
        return self.repository.find_by_grievance(grievance_id)
