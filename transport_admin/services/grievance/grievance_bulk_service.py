"""
Bulk grievance actions and their history.

Each grievance id is handled on its own: a missing grievance, a refused
permission or an invalid transition is reported in ``errors`` while the
remaining ids carry on. Every successful id is committed separately.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.config.settings import settings
from transport_admin.core.security import RequestContext
from transport_admin.models.base.enums import (
    ActivityVisibility,
    BulkAction,
    GrievancePriority,
    GrievanceStatus,
)
from transport_admin.models.base.types import utcnow
from transport_admin.models.grievance.grievance import Grievance
from transport_admin.repositories.grievance import (
    GrievanceActivityRepository,
    GrievanceAssignmentRepository,
    GrievanceRepository,
)
from transport_admin.repositories.transport import AdminUserRepository
from transport_admin.schemas.grievance import AssignmentResponse, BulkActionRequest, GrievanceResponse
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.grievance.grievance_access import admin_can_modify
from transport_admin.services.grievance.grievance_activity_service import (
    GrievanceActivityService,
    format_activity,
)
from transport_admin.services.grievance.grievance_assignment_service import GrievanceAssignmentService
from transport_admin.services.grievance.grievance_metrics import union_tags
from transport_admin.services.grievance.grievance_service import stamp_resolution

logger = logging.getLogger(__name__)

BULK_ACTIVITY_PREFIX = "bulk_"
BULK_ASSIGNMENT_REASON = "Bulk assignment"
DEFAULT_BULK_CLOSURE_REASON = "Bulk closure"
HISTORY_DEFAULT_LIMIT = 50

_STATUSES = {s.value for s in GrievanceStatus}
_PRIORITIES = {p.value for p in GrievancePriority}


class GrievanceBulkService(BaseService[Grievance, GrievanceRepository]):
    """Apply one action to many grievances and list what bulk actions did."""

    def __init__(self, db: Session):
        super().__init__(GrievanceRepository(db), db)
        self.admins = AdminUserRepository(db)
        self.assignment_history = GrievanceAssignmentRepository(db)
        self.activity_log = GrievanceActivityRepository(db)
        self.assignments = GrievanceAssignmentService(db)
        self.activities = GrievanceActivityService(db)

    # -------------------------------------------------------------------------
    # Apply
    # -------------------------------------------------------------------------

    def apply(
        self,
        payload: BulkActionRequest,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Run ``payload.action`` against every listed grievance.

        Action data is validated once up front; an invalid payload fails the
        whole request. Duplicate ids are processed once.
        """
        now = now or utcnow()
        action = payload.parsed_action
        if action is None:
            return ServiceResult.validation_failure(
                "Invalid action",
                field="action",
                details={"valid_actions": [a.value for a in BulkAction]},
            )

        try:
            params = self._plan(action, payload.data)
        except SQLAlchemyError as e:
            return self._handle_exception(e, f"plan bulk {action.value}")
        if isinstance(params, ServiceResult):
            return params

        applied: List[Grievance] = []
        errors: List[Dict[str, Any]] = []
        grievance_ids = list(dict.fromkeys(payload.grievance_ids))

        for grievance_id in grievance_ids:
            try:
                grievance = self.repository.find_by_id(grievance_id)
                if not grievance:
                    error = f"Grievance {grievance_id} not found"
                elif not admin_can_modify(grievance, ctx):
                    error = f"Not permitted to update grievance {grievance_id}"
                else:
                    error = self._apply_one(action, grievance, params, ctx, now)
                if error:
                    errors.append({"grievance_id": grievance_id, "error": error})
                    continue
                self._commit()
                applied.append(grievance)
            except SQLAlchemyError as e:
                self._rollback()
                failure = self._handle_exception(e, f"bulk {action.value}", grievance_id)
                errors.append({"grievance_id": grievance_id, "error": failure.message})

        logger.info(
            f"Bulk {action.value} by {ctx.user_id}: {len(applied)} applied, {len(errors)} failed"
        )
        return ServiceResult.success(
            {
                "action": action.value,
                "affected_count": len(applied),
                "grievances": [GrievanceResponse.model_validate(g).model_dump(mode="json") for g in applied],
                "errors": errors,
            },
            message=f"Bulk {action.value} applied to {len(applied)} of {len(grievance_ids)} grievances",
        )

    def _plan(self, action: BulkAction, data: Dict[str, Any]) -> Union[Dict[str, Any], ServiceResult]:
        """Normalized action parameters, or the failure that rejects the request."""
        if action == BulkAction.ASSIGN:
            assigned_to = data.get("assigned_to")
            if not assigned_to:
                return ServiceResult.validation_failure(
                    "assigned_to is required for assign", field="data.assigned_to"
                )
            admin = self.admins.find_active(assigned_to)
            if not admin:
                return ServiceResult.not_found("Admin", assigned_to)
            return {"admin": admin}

        if action == BulkAction.UPDATE_STATUS:
            status = data.get("status")
            if status not in _STATUSES:
                return ServiceResult.validation_failure("A valid status is required", field="data.status")
            return {"status": status}

        if action == BulkAction.RESOLVE:
            resolution = (data.get("resolution") or "").strip()
            if not resolution:
                return ServiceResult.validation_failure(
                    "resolution is required for resolve", field="data.resolution"
                )
            return {"resolution": resolution, "resolution_category": data.get("resolution_category")}

        if action == BulkAction.CLOSE:
            return {"closure_reason": data.get("closure_reason") or DEFAULT_BULK_CLOSURE_REASON}

        if action == BulkAction.UPDATE_PRIORITY:
            priority = data.get("priority")
            urgency = data.get("urgency")
            if priority not in _PRIORITIES:
                return ServiceResult.validation_failure("A valid priority is required", field="data.priority")
            if urgency is not None and urgency not in _PRIORITIES:
                return ServiceResult.validation_failure("A valid urgency is required", field="data.urgency")
            return {"priority": priority, "urgency": urgency}

        tags = data.get("tags")
        if not isinstance(tags, list) or not tags or not all(isinstance(t, str) and t.strip() for t in tags):
            return ServiceResult.validation_failure("tags must be a non-empty list", field="data.tags")
        return {"tags": [t.strip() for t in tags]}

    def _apply_one(
        self,
        action: BulkAction,
        grievance: Grievance,
        params: Dict[str, Any],
        ctx: RequestContext,
        now: datetime,
    ) -> Optional[str]:
        """Mutate one grievance and log it; returns an error message instead when the action does not apply."""
        old_status = grievance.status

        if action == BulkAction.ASSIGN:
            admin = params["admin"]
            old_values = {"assigned_to": grievance.assigned_to, "status": old_status}
            self.assignments.reassign(
                grievance, admin.id, assigned_by=ctx.user_id, reason=BULK_ASSIGNMENT_REASON, now=now,
            )
            if grievance.status == GrievanceStatus.OPEN.value:
                grievance.status = GrievanceStatus.IN_PROGRESS.value
            activity = ("bulk_assigned", f"Grievance assigned to {admin.name} in bulk")
            new_values = {"assigned_to": grievance.assigned_to, "status": grievance.status}

        elif action == BulkAction.UPDATE_STATUS:
            status = params["status"]
            if old_status == status:
                return f"Grievance {grievance.id} is already {status}"
            grievance.status = status
            if status == GrievanceStatus.RESOLVED.value:
                stamp_resolution(grievance, now)
            elif status == GrievanceStatus.CLOSED.value:
                grievance.closed_at = now
            activity = ("bulk_status_changed", f"Status changed from {old_status} to {status} in bulk")
            old_values, new_values = {"status": old_status}, {"status": status}

        elif action == BulkAction.RESOLVE:
            if old_status == GrievanceStatus.RESOLVED.value:
                return f"Grievance {grievance.id} is already resolved"
            grievance.status = GrievanceStatus.RESOLVED.value
            grievance.resolution = params["resolution"]
            if params["resolution_category"]:
                grievance.resolution_category = params["resolution_category"]
            stamp_resolution(grievance, now)
            activity = ("bulk_resolved", "Grievance resolved in bulk")
            old_values = {"status": old_status}
            new_values = {"status": grievance.status, "resolution": grievance.resolution}

        elif action == BulkAction.CLOSE:
            if old_status == GrievanceStatus.CLOSED.value:
                return f"Grievance {grievance.id} is already closed"
            grievance.status = GrievanceStatus.CLOSED.value
            grievance.closure_reason = params["closure_reason"]
            grievance.closed_at = now
            if grievance.resolved_at is None:
                grievance.resolved_at = now
            activity = ("bulk_closed", f"Grievance closed in bulk: {grievance.closure_reason}")
            old_values, new_values = {"status": old_status}, {"status": grievance.status}

        elif action == BulkAction.UPDATE_PRIORITY:
            old_values = {"priority": grievance.priority, "urgency": grievance.urgency}
            grievance.priority = params["priority"]
            if params["urgency"]:
                grievance.urgency = params["urgency"]
            activity = (
                "bulk_priority_changed",
                f"Priority changed from {old_values['priority']} to {grievance.priority} in bulk",
            )
            new_values = {"priority": grievance.priority, "urgency": grievance.urgency}

        else:
            old_values = {"tags": list(grievance.tags or [])}
            grievance.tags = union_tags(grievance.tags, params["tags"])
            activity = ("bulk_tags_added", f"Tags added in bulk: {', '.join(params['tags'])}")
            new_values = {"tags": grievance.tags}

        grievance.updated_at = now
        self.db.flush()

        # Activity log failure does not fail the update
        activity_type, description = activity
        self.activities.log(
            grievance.id,
            activity_type,
            description,
            actor_id=ctx.user_id,
            actor_name=ctx.email or "Admin",
            visibility=ActivityVisibility.PRIVATE.value,
            details={"bulk_operation": True, "action": action.value},
            old_values=old_values,
            new_values=new_values,
            is_milestone=action in (BulkAction.RESOLVE, BulkAction.CLOSE),
        )
        return None

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def history(self, limit: Optional[int] = None, offset: int = 0) -> ServiceResult[Dict[str, Any]]:
        """Bulk activity entries and bulk assignment rows, newest first."""
        limit = min(limit or HISTORY_DEFAULT_LIMIT, settings.MAX_PAGE_SIZE)
        offset = max(offset, 0)
        try:
            actions = self.activity_log.find_by_type_prefix(BULK_ACTIVITY_PREFIX, limit, offset)
            assignments = self.assignment_history.find_by_reason("bulk", limit, offset)
            total = self.activity_log.count_by_type_prefix(BULK_ACTIVITY_PREFIX)
            return ServiceResult.success({
                "actions": [format_activity(a) for a in actions],
                "assignments": [AssignmentResponse.model_validate(a).model_dump(mode="json") for a in assignments],
                "pagination": {"limit": limit, "offset": offset, "total": total},
            })
        except SQLAlchemyError as e:
            return self._handle_exception(e, "fetch bulk history")
