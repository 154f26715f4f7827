"""
Assignee dashboard: per-admin workload view and quick actions.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.security import RequestContext
from transport_admin.models.base.enums import (
    ActivityVisibility,
    AssigneeAction,
    GrievancePriority,
    GrievanceStatus,
)
from transport_admin.models.base.types import utcnow
from transport_admin.models.grievance.grievance import Grievance
from transport_admin.repositories.grievance import GrievanceActivityRepository, GrievanceRepository
from transport_admin.repositories.transport import AdminUserRepository
from transport_admin.schemas.grievance import AssigneeActionRequest, GrievanceResponse
from transport_admin.schemas.grievance.grievance_response import AdminBrief
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.grievance.grievance_access import admin_is_assignee
from transport_admin.services.grievance.grievance_activity_service import (
    GrievanceActivityService,
    format_activity,
)
from transport_admin.services.grievance.grievance_metrics import (
    average,
    count_by,
    daily_trend,
    hours_between,
    is_overdue,
    priority_distribution,
    response_time_hours,
    time_range_days,
    workload_comparison,
)
from transport_admin.services.grievance.grievance_service import stamp_resolution

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5
UPCOMING_DEADLINES_LIMIT = 10

_datetime_adapter = TypeAdapter(datetime)


class GrievanceDashboardService(BaseService[Grievance, GrievanceRepository]):
    """Workload summary and quick actions for the admin a grievance is assigned to."""

    def __init__(self, db: Session):
        super().__init__(GrievanceRepository(db), db)
        self.admins = AdminUserRepository(db)
        self.activity_log = GrievanceActivityRepository(db)
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
        Summary, enriched grievances and performance series for one admin.

        ``time_range`` is ``1d``, ``7d`` or ``30d``; it defaults to ``7d``
        and any other value is treated as one day.
        """
        now = now or utcnow()
        time_range = time_range or "7d"
        days = time_range_days(time_range)
        window_start = now - timedelta(days=days)

        try:
            admin = self.admins.find_by_id(admin_id)
            if not admin:
                return ServiceResult.not_found("Admin", admin_id)

            grievances = self.repository.find_by_assignee(admin_id)
            enriched = [self._enrich(g, now) for g in grievances]

            resolved = [g for g in grievances if g.status == GrievanceStatus.RESOLVED.value]
            response_times = [
                t for t in (response_time_hours(g) for g in resolved) if t is not None
            ]
            total = len(grievances)

            pending_deadlines = sorted(
                (
                    (g.expected_resolution_date, entry) for entry, g in zip(enriched, grievances)
                    if g.expected_resolution_date and g.status != GrievanceStatus.RESOLVED.value
                ),
                key=lambda pair: pair[0],
            )
            upcoming = [entry for _, entry in pending_deadlines[:UPCOMING_DEADLINES_LIMIT]]

            summary = {
                "total_grievances": total,
                "open_grievances": len([g for g in grievances if g.status == GrievanceStatus.OPEN.value]),
                "in_progress_grievances": len(
                    [g for g in grievances if g.status == GrievanceStatus.IN_PROGRESS.value]
                ),
                "resolved_grievances": len(resolved),
                "overdue_grievances": len([g for g in grievances if is_overdue(g, now)]),
                "urgent_grievances": len(
                    [g for g in grievances if g.priority == GrievancePriority.URGENT.value]
                ),
                "avg_response_time_hours": round(average(response_times)),
                "resolution_rate": round(len(resolved) / total * 100) if total else 0,
            }

            data = {
                "admin_info": AdminBrief.model_validate(admin).model_dump(mode="json"),
                "summary": summary,
                "grievances": enriched,
                "recent_grievances": [
                    entry for entry, g in zip(enriched, grievances) if g.created_at >= window_start
                ],
                "performance": {
                    "trend_data": daily_trend(grievances, days, now),
                    "workload_comparison": workload_comparison(self.repository.workload_rows(), admin_id),
                    "priority_distribution": priority_distribution(grievances),
                    "category_distribution": count_by(grievances, "category"),
                    "upcoming_deadlines": upcoming,
                },
                "time_range": time_range,
                "last_updated": now.isoformat(),
            }
            return ServiceResult.success(data)

        except SQLAlchemyError as e:
            return self._handle_exception(e, "fetch assignee dashboard", admin_id)

    def _enrich(self, grievance: Grievance, now: datetime) -> Dict[str, Any]:
        entry = GrievanceResponse.model_validate(grievance).model_dump(mode="json")
        entry["recent_activity"] = self._recent_activity(grievance.id)
        entry["age_hours"] = int(hours_between(grievance.created_at, now))
        entry["is_overdue"] = is_overdue(grievance, now)
        entry["response_time"] = response_time_hours(grievance)
        return entry

    def _recent_activity(self, grievance_id: str) -> List[Dict[str, Any]]:
        # A failed enrichment query degrades to an empty list for this grievance
        try:
            entries = self.activity_log.find_by_grievance(grievance_id, limit=RECENT_ACTIVITY_LIMIT)
        except SQLAlchemyError as e:
            logger.warning(f"Recent activity unavailable for grievance {grievance_id}: {e}")
            return []
        return [format_activity(a) for a in entries]

    # -------------------------------------------------------------------------
    # Quick actions
    # -------------------------------------------------------------------------

    def apply_action(
        self,
        payload: AssigneeActionRequest,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Run one dashboard action on a grievance assigned to ``payload.admin_id``.

        ``add_note`` only records an activity; every other action updates the
        grievance first.
        """
        now = now or utcnow()
        action = payload.parsed_action
        if action is None:
            return ServiceResult.validation_failure("Invalid action", field="action")

        try:
            grievance = self.repository.find_by_id(payload.grievance_id)
            if not grievance:
                return ServiceResult.not_found("Grievance", payload.grievance_id)

            acting_for_self = ctx.user_id == payload.admin_id and admin_is_assignee(grievance, ctx)
            if not (ctx.is_elevated or acting_for_self):
                return ServiceResult.unauthorized("update", f"grievance {payload.grievance_id}")

            planned = self._plan_action(action, grievance, payload.data, now)
            if isinstance(planned, ServiceResult):
                return planned
            activity_type, description, updates = planned

            if action != AssigneeAction.ADD_NOTE:
                for key, value in updates.items():
                    setattr(grievance, key, value)
                if action == AssigneeAction.RESOLVE:
                    stamp_resolution(grievance, now)
                    updates["resolved_at"] = grievance.resolved_at
                grievance.updated_at = now
                updates["updated_at"] = now
                self.db.flush()

            # Activity log failure does not fail the update
            self.activities.log(
                grievance.id,
                activity_type,
                description,
                actor_id=ctx.user_id,
                actor_name=ctx.email or "Admin",
                visibility=ActivityVisibility.PUBLIC.value,
                details=payload.data or {},
            )

            self._commit()
            logger.info(f"Assignee action {action.value} applied to grievance {grievance.id}")
            return ServiceResult.success(
                {
                    "action": action.value,
                    "grievanceId": grievance.id,
                    "updates": {
                        key: value.isoformat() if isinstance(value, datetime) else value
                        for key, value in updates.items()
                    },
                },
                message="Grievance updated successfully",
            )

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "apply assignee action", payload.grievance_id)

    @staticmethod
    def _plan_action(action: AssigneeAction, grievance: Grievance, data: Dict[str, Any], now: datetime):
        """(activity type, description, column updates) or a validation failure."""
        if action == AssigneeAction.START_PROGRESS:
            return (
                "grievance_status_changed",
                "Started working on grievance",
                {"status": GrievanceStatus.IN_PROGRESS.value},
            )

        if action == AssigneeAction.RESOLVE:
            if grievance.status == GrievanceStatus.RESOLVED.value:
                return ServiceResult.validation_failure("Grievance is already resolved", field="status")
            updates: Dict[str, Any] = {"status": GrievanceStatus.RESOLVED.value}
            if data.get("resolution"):
                updates["resolution"] = data["resolution"]
            return "grievance_resolved", "Grievance resolved", updates

        if action == AssigneeAction.UPDATE_PRIORITY:
            priority = data.get("priority")
            if priority not in {p.value for p in GrievancePriority}:
                return ServiceResult.validation_failure("A valid priority is required", field="data.priority")
            return (
                "grievance_priority_changed",
                f"Priority changed from {grievance.priority} to {priority}",
                {"priority": priority},
            )

        if action == AssigneeAction.SET_DEADLINE:
            try:
                deadline = _datetime_adapter.validate_python(data.get("deadline"))
            except PydanticValidationError:
                return ServiceResult.validation_failure("A valid deadline is required", field="data.deadline")
            return (
                "deadline_updated",
                f"Deadline set to {data['deadline']}",
                {"expected_resolution_date": deadline},
            )

        note = (data.get("note") or "").strip()
        if not note:
            return ServiceResult.validation_failure("A note is required", field="data.note")
        return "system_note_added", f"Added note: {note}", {}
