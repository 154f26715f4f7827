"""
System-wide grievance analytics.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.models.base.enums import GrievancePriority, GrievanceStatus
from transport_admin.models.base.types import utcnow
from transport_admin.models.grievance.grievance import Grievance
from transport_admin.repositories.grievance import GrievanceActivityRepository, GrievanceRepository
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.grievance.grievance_activity_service import format_activity
from transport_admin.services.grievance.grievance_metrics import (
    average,
    count_by,
    daily_trend,
    hours_between,
    is_overdue_by_sla,
    monthly_trend,
)

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30
RECENT_ACTIVITY_LIMIT = 10


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _day_end(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def assignee_breakdown(grievances: List[Grievance]) -> List[Dict[str, Any]]:
    """Per-assignee totals keyed by admin name, in first-seen order."""
    breakdown: Dict[str, Dict[str, Any]] = {}
    for grievance in grievances:
        assignee = grievance.assignee
        if assignee is None:
            continue
        entry = breakdown.setdefault(
            assignee.name,
            {"name": assignee.name, "role": assignee.role, "total": 0, "resolved": 0, "pending": 0},
        )
        entry["total"] += 1
        if grievance.status == GrievanceStatus.RESOLVED.value:
            entry["resolved"] += 1
        elif grievance.status in (GrievanceStatus.OPEN.value, GrievanceStatus.IN_PROGRESS.value):
            entry["pending"] += 1
    return list(breakdown.values())


class GrievanceAnalyticsService(BaseService[Grievance, GrievanceRepository]):

    def __init__(self, db: Session):
        super().__init__(GrievanceRepository(db), db)
        self.activity_log = GrievanceActivityRepository(db)

    def get_analytics(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        assigned_to: Optional[str] = None,
        unassigned: bool = False,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Overall counts, breakdowns, resolution time and trends.

        The window covers grievances created from the start of ``date_from``
        (default thirty days ago) to the end of ``date_to`` (default today).
        """
        now = now or utcnow()
        date_from = date_from or (now - timedelta(days=DEFAULT_WINDOW_DAYS)).date()
        date_to = date_to or now.date()
        if date_from > date_to:
            return ServiceResult.validation_failure("date_from must not be after date_to", field="date_from")

        try:
            grievances = self.repository.find_for_analytics(
                _day_start(date_from),
                _day_end(date_to),
                assigned_to=assigned_to,
                unassigned=unassigned,
            )
            recent = self.activity_log.find_recent(RECENT_ACTIVITY_LIMIT)
        except SQLAlchemyError as e:
            return self._handle_exception(e, "fetch grievance analytics")

        total = len(grievances)
        statuses = count_by(grievances, "status")
        resolved = statuses.get(GrievanceStatus.RESOLVED.value, 0)
        resolution_times = [
            hours_between(g.created_at, g.resolved_at) for g in grievances if g.resolved_at
        ]
        trend_end = min(now, _day_end(date_to))

        analytics = {
            "overall": {
                "total": total,
                "open": statuses.get(GrievanceStatus.OPEN.value, 0),
                "inProgress": statuses.get(GrievanceStatus.IN_PROGRESS.value, 0),
                "resolved": resolved,
                "closed": statuses.get(GrievanceStatus.CLOSED.value, 0),
                "unassigned": len([g for g in grievances if not g.assigned_to]),
                "urgent": len([g for g in grievances if g.priority == GrievancePriority.URGENT.value]),
                "high": len([g for g in grievances if g.priority == GrievancePriority.HIGH.value]),
                "overdue": len([g for g in grievances if is_overdue_by_sla(g, now)]),
                "resolutionRate": resolved / total * 100 if total else 0,
            },
            "breakdown": {
                "category": count_by(grievances, "category"),
                "priority": count_by(grievances, "priority"),
                "status": statuses,
                "assignee": assignee_breakdown(grievances),
            },
            "resolutionTime": {
                "average": average(resolution_times),
                "samples": len(resolution_times),
            },
            "trends": {
                "daily": daily_trend(grievances, (date_to - date_from).days + 1, trend_end),
                "monthly": monthly_trend(grievances, now),
            },
            "recentActivity": [format_activity(a) for a in recent],
            "dateRange": {"from": date_from.isoformat(), "to": date_to.isoformat()},
        }
        logger.debug(f"Analytics computed over {total} grievances")
        return ServiceResult.success(analytics)
