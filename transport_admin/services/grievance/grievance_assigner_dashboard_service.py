"""
Assigner dashboard: the unassigned queue, team workload and assignment
recommendations for the admin who hands out grievances.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.security import RequestContext
from transport_admin.models.base.enums import ActivityVisibility, GrievancePriority, GrievanceStatus
from transport_admin.models.base.types import utcnow
from transport_admin.models.grievance.grievance import Grievance
from transport_admin.models.transport.admin_user import AdminUser
from transport_admin.repositories.grievance import GrievanceAssignmentRepository, GrievanceRepository
from transport_admin.repositories.transport import AdminUserRepository
from transport_admin.schemas.grievance import AssignerAssignRequest, AssignmentResponse, GrievanceResponse
from transport_admin.schemas.grievance.grievance_actions import AssignmentItem
from transport_admin.schemas.grievance.grievance_response import AdminBrief
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.grievance.grievance_activity_service import GrievanceActivityService
from transport_admin.services.grievance.grievance_assignment_service import GrievanceAssignmentService
from transport_admin.services.grievance.grievance_metrics import (
    CAN_TAKE_MORE_BELOW,
    MAX_CAPACITY,
    assignee_performance,
    assignment_trend,
    count_by,
    is_overdue,
    priority_distribution,
    recommendation_score,
    time_range_days,
    workload_percentage,
)

logger = logging.getLogger(__name__)

RECOMMENDED_GRIEVANCES = 10
RECOMMENDATIONS_PER_GRIEVANCE = 3
RECENT_ASSIGNMENTS_LIMIT = 20
DEFAULT_ASSIGNMENT_REASON = "Assigned from assigner dashboard"

_FINISHED = (GrievanceStatus.RESOLVED.value, GrievanceStatus.CLOSED.value)
_ACTIVE = (GrievanceStatus.OPEN.value, GrievanceStatus.IN_PROGRESS.value)


class GrievanceAssignerDashboardService(BaseService[Grievance, GrievanceRepository]):
    """System-wide assignment view and per-item assignment submission."""

    def __init__(self, db: Session):
        super().__init__(GrievanceRepository(db), db)
        self.admins = AdminUserRepository(db)
        self.assignment_history = GrievanceAssignmentRepository(db)
        self.assignments = GrievanceAssignmentService(db)
        self.activities = GrievanceActivityService(db)

    # -------------------------------------------------------------------------
    # Dashboard
    # -------------------------------------------------------------------------

    def get_dashboard(
        self,
        admin_id: str,
        time_range: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Queue, team and analytics blocks for ``admin_id``.

        The unassigned queue holds grievances with no assignee that are
        neither resolved nor closed. ``time_range`` follows the assignee
        dashboard: ``1d``, ``7d`` (default) or ``30d``.
        """
        now = now or utcnow()
        time_range = time_range or "7d"
        days = time_range_days(time_range)

        try:
            admin = self.admins.find_by_id(admin_id)
            if not admin:
                return ServiceResult.not_found("Admin", admin_id)

            grievances = self.repository.find_all_with_relations()
            staff = self.admins.find_all_active()
            history = self.assignment_history.find_since(now - timedelta(days=days))

            queue = [g for g in grievances if not g.assigned_to and g.status not in _FINISHED]
            performance = assignee_performance(grievances, now)
            workload = self._workload(staff, grievances)
            resolved = len([g for g in grievances if g.status == GrievanceStatus.RESOLVED.value])
            total = len(grievances)

            data = {
                "admin_info": AdminBrief.model_validate(admin).model_dump(mode="json"),
                "system_metrics": {
                    "total_grievances": total,
                    "unassigned_grievances": len(queue),
                    "assigned_grievances": len([g for g in grievances if g.assigned_to]),
                    "resolved_grievances": resolved,
                    "overdue_grievances": len([g for g in grievances if is_overdue(g, now)]),
                    "urgent_grievances": len([g for g in grievances if g.priority == GrievancePriority.URGENT.value]),
                    "high_priority_grievances": len(
                        [g for g in grievances if g.priority == GrievancePriority.HIGH.value]
                    ),
                    "resolution_rate": round(resolved / total * 100) if total else 0,
                },
                "unassigned_grievances": len(queue),
                "unassigned_grievances_data": [
                    GrievanceResponse.model_validate(g).model_dump(mode="json") for g in queue
                ],
                "team_overview": [
                    {
                        **AdminBrief.model_validate(member).model_dump(mode="json"),
                        "performance": performance.get(member.id, {
                            "total": 0, "open": 0, "in_progress": 0, "resolved": 0, "overdue": 0, "avg_response_time": 0,
                        }),
                    }
                    for member in staff
                ],
                "workload_distribution": workload,
                "recent_assignments": [
                    AssignmentResponse.model_validate(a).model_dump(mode="json")
                    for a in history if a.assigned_by == admin_id
                ][:RECENT_ASSIGNMENTS_LIMIT],
                "assignment_recommendations": [
                    self._recommend(g, workload) for g in queue[:RECOMMENDED_GRIEVANCES]
                ],
                "analytics": {
                    "trend_data": assignment_trend(grievances, history, days, now),
                    "priority_distribution": priority_distribution(queue),
                    "category_distribution": count_by(grievances, "category"),
                    "assignment_history": [
                        AssignmentResponse.model_validate(a).model_dump(mode="json") for a in history
                    ],
                },
                "time_range": time_range,
                "last_updated": now.isoformat(),
            }
            return ServiceResult.success(data)

        except SQLAlchemyError as e:
            return self._handle_exception(e, "fetch assigner dashboard", admin_id)

    @staticmethod
    def _workload(staff: List[AdminUser], grievances: List[Grievance]) -> List[Dict[str, Any]]:
        active = {}
        for grievance in grievances:
            if grievance.assigned_to and grievance.status in _ACTIVE:
                active[grievance.assigned_to] = active.get(grievance.assigned_to, 0) + 1

        distribution = []
        for member in staff:
            current = active.get(member.id, 0)
            percentage = workload_percentage(current)
            distribution.append({
                "id": member.id,
                "name": member.name,
                "role": member.role,
                "current_workload": current,
                "max_capacity": MAX_CAPACITY,
                "workload_percentage": percentage,
                "can_take_more": percentage < CAN_TAKE_MORE_BELOW,
            })
        return distribution

    @staticmethod
    def _recommend(grievance: Grievance, workload: List[Dict[str, Any]]) -> Dict[str, Any]:
        candidates = sorted(
            (
                {
                    "admin_id": member["id"],
                    "admin_name": member["name"],
                    "match_score": recommendation_score(member["role"], member["workload_percentage"]),
                    "recommendation_reason": f"{member['role']} with {member['workload_percentage']}% workload",
                }
                for member in workload if member["can_take_more"]
            ),
            key=lambda c: c["match_score"],
            reverse=True,
        )
        return {
            "grievance_id": grievance.id,
            "subject": grievance.subject,
            "priority": grievance.priority,
            "category": grievance.category,
            "created_at": grievance.created_at.isoformat(),
            "recommendations": candidates[:RECOMMENDATIONS_PER_GRIEVANCE],
        }

    # -------------------------------------------------------------------------
    # Assign
    # -------------------------------------------------------------------------

    def assign(
        self,
        payload: AssignerAssignRequest,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Assign unassigned grievances item by item.

        Only the named assigner or an elevated admin may submit. Grievances
        that already have an assignee are refused rather than reassigned.
        """
        now = now or utcnow()
        if not (ctx.is_elevated or (ctx.is_admin and ctx.user_id == payload.admin_id)):
            return ServiceResult.unauthorized("assign", "grievances on behalf of another admin")

        results: List[Dict[str, Any]] = []
        errors: List[Dict[str, Any]] = []
        for item in payload.assignments:
            try:
                error = self._assign_one(item, payload, ctx, now)
                if error:
                    errors.append({"grievance_id": item.grievance_id, "error": error})
                    continue
                self._commit()
                results.append({"grievance_id": item.grievance_id, "assigned_to": item.assigned_to})
            except SQLAlchemyError as e:
                self._rollback()
                failure = self._handle_exception(e, "assign from assigner dashboard", item.grievance_id)
                errors.append({"grievance_id": item.grievance_id, "error": failure.message})

        if errors:
            message = f"{len(results)} assignments completed, {len(errors)} failed"
        else:
            message = "All assignments completed successfully"
        logger.info(f"Assigner {payload.admin_id}: {message}")
        return ServiceResult.success(
            {
                "total_assignments": len(payload.assignments),
                "successful": len(results),
                "failed": len(errors),
                "results": results,
                "errors": errors,
            },
            message=message,
        )

    def _assign_one(
        self,
        item: AssignmentItem,
        payload: AssignerAssignRequest,
        ctx: RequestContext,
        now: datetime,
    ) -> Optional[str]:
        grievance = self.repository.find_by_id(item.grievance_id)
        if not grievance:
            return f"Grievance {item.grievance_id} not found"
        if grievance.assigned_to:
            return f"Grievance {item.grievance_id} is already assigned"
        assignee = self.admins.find_active(item.assigned_to)
        if not assignee:
            return f"Assignee {item.assigned_to} not found or inactive"

        old_values = {"assigned_to": None, "status": grievance.status, "priority": grievance.priority}
        if item.priority:
            grievance.priority = item.priority
        if item.deadline:
            grievance.expected_resolution_date = item.deadline
        self.assignments.reassign(
            grievance,
            assignee.id,
            assigned_by=payload.admin_id,
            reason=item.reason or DEFAULT_ASSIGNMENT_REASON,
            now=now,
            expected_resolution_date=item.deadline,
        )
        if grievance.status == GrievanceStatus.OPEN.value:
            grievance.status = GrievanceStatus.IN_PROGRESS.value
        grievance.updated_at = now
        self.db.flush()

        # Activity log failure does not fail the update
        self.activities.log(
            grievance.id,
            "grievance_assigned",
            f"Grievance assigned to {assignee.name}",
            actor_id=ctx.user_id,
            actor_name=ctx.email or "Admin",
            visibility=ActivityVisibility.PUBLIC.value,
            details={"reason": item.reason, "assignment_type": payload.assignment_type},
            old_values=old_values,
            new_values={"assigned_to": assignee.id, "status": grievance.status, "priority": grievance.priority},
            is_milestone=True,
        )
        return None
