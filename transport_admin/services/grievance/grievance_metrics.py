"""
Pure aggregation helpers for grievance dashboards, analytics and tracking.

Every function takes the already loaded rows and an explicit ``now`` so
results are reproducible.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from transport_admin.models.base.enums import GrievancePriority, GrievanceStatus

RESOLVED = GrievanceStatus.RESOLVED.value
CLOSED = GrievanceStatus.CLOSED.value
OPEN = GrievanceStatus.OPEN.value
IN_PROGRESS = GrievanceStatus.IN_PROGRESS.value

# Hours past creation after which an unresolved grievance counts as overdue
# in system analytics
ANALYTICS_OVERDUE_HOURS = 72

TRACKING_BASE_HOURS = 24
PRIORITY_MULTIPLIERS = {
    GrievancePriority.URGENT.value: 0.5,
    GrievancePriority.HIGH.value: 1,
    GrievancePriority.MEDIUM.value: 2,
    GrievancePriority.LOW.value: 3,
}

STATUS_DISPLAY = {
    OPEN: "Submitted - Awaiting Assignment",
    IN_PROGRESS: "In Progress - Being Worked On",
    RESOLVED: "Resolved - Completed",
    CLOSED: "Closed - No Further Action",
}

TIME_RANGE_DAYS = {"30d": 30, "7d": 7, "1d": 1}


def format_hours(hours: float) -> str:
    """Render fractional hours the way resolution times are stored."""
    return f"{hours:.2f} hours"


def format_sla(sla_hours: int) -> str:
    return f"{sla_hours} hours"


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def time_range_days(time_range: Optional[str]) -> int:
    """Days covered by a dashboard time range; unknown values mean one day."""
    return TIME_RANGE_DAYS.get(time_range or "7d", 1)


def is_overdue(grievance, now: datetime) -> bool:
    """Past its expected resolution date and not resolved."""
    return bool(
        grievance.expected_resolution_date
        and grievance.expected_resolution_date < now
        and grievance.status != RESOLVED
    )


def is_overdue_by_sla(grievance, now: datetime, hours: int = ANALYTICS_OVERDUE_HOURS) -> bool:
    """Open longer than ``hours`` and neither resolved nor closed."""
    if grievance.status in (RESOLVED, CLOSED):
        return False
    return hours_between(grievance.created_at, now) > hours


def response_time_hours(grievance) -> Optional[int]:
    """Whole hours from creation to resolution, None while unresolved."""
    if not grievance.resolved_at:
        return None
    return int(hours_between(grievance.created_at, grievance.resolved_at))


def average(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def priority_distribution(grievances: Iterable) -> Dict[str, int]:
    counts = Counter(g.priority for g in grievances)
    return {priority.value: counts.get(priority.value, 0) for priority in (
        GrievancePriority.URGENT,
        GrievancePriority.HIGH,
        GrievancePriority.MEDIUM,
        GrievancePriority.LOW,
    )}


def count_by(grievances: Iterable, attribute: str) -> Dict[str, int]:
    return dict(Counter(getattr(g, attribute) for g in grievances))


def daily_trend(grievances: Sequence, days: int, now: datetime) -> List[Dict[str, Any]]:
    """
    Day buckets, oldest first, ending today.

    For each day: grievances created that day, how many of those were also
    resolved that day, and how many of those remain unresolved.
    """
    trend = []
    for offset in range(days - 1, -1, -1):
        day = (now - timedelta(days=offset)).date()
        created = [g for g in grievances if g.created_at.date() == day]
        resolved = [g for g in created if g.resolved_at and g.resolved_at.date() == day]
        trend.append({
            "date": day.isoformat(),
            "created": len(created),
            "resolved": len(resolved),
            "pending": len([g for g in created if g.status != RESOLVED]),
        })
    return trend


def monthly_trend(grievances: Sequence, now: datetime, months: int = 12) -> List[Dict[str, Any]]:
    """Calendar-month buckets for the last ``months`` months, oldest first."""
    trend = []
    for offset in range(months - 1, -1, -1):
        year, month = _shift_month(now.year, now.month, -offset)
        in_month = [
            g for g in grievances
            if g.created_at.year == year and g.created_at.month == month
        ]
        trend.append({
            "month": datetime(year, month, 1).strftime("%b %Y"),
            "total": len(in_month),
            "resolved": len([g for g in in_month if g.status == RESOLVED]),
            "pending": len([g for g in in_month if g.status in (OPEN, IN_PROGRESS)]),
        })
    return trend


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def workload_comparison(rows: Iterable[Tuple[str, str]], admin_id: str) -> Dict[str, Any]:
    """
    Compare an admin's workload against the average of every other assignee.

    ``rows`` are (assigned_to, status) pairs for all assigned grievances.
    The percentile is 100 when there is nobody to compare against.
    """
    workload: Dict[str, Dict[str, int]] = {}
    for assigned_to, status in rows:
        entry = workload.setdefault(assigned_to, {"total": 0, "open": 0, "in_progress": 0})
        entry["total"] += 1
        if status == OPEN:
            entry["open"] += 1
        elif status == IN_PROGRESS:
            entry["in_progress"] += 1

    mine = workload.get(admin_id, {"total": 0, "open": 0, "in_progress": 0})
    others = [w["total"] for assignee, w in workload.items() if assignee != admin_id]
    team_avg = average(others)

    return {
        "my_total": mine["total"],
        "my_active": mine["open"] + mine["in_progress"],
        "team_avg": round(team_avg),
        "percentile": round(mine["total"] / team_avg * 100) if team_avg > 0 else 100,
    }


def estimate_resolution(grievance) -> Optional[Dict[str, Any]]:
    """Student-facing estimate from priority; None once resolved."""
    if grievance.status == RESOLVED:
        return None
    hours = TRACKING_BASE_HOURS * PRIORITY_MULTIPLIERS.get(grievance.priority, 2)
    return {
        "estimated_hours": hours,
        "estimated_date": (grievance.created_at + timedelta(hours=hours)).isoformat(),
        "confidence": "high" if grievance.assigned_to else "medium",
    }


def status_display(status: str) -> str:
    return STATUS_DISPLAY.get(status, status)


def union_tags(existing: Optional[List[str]], new: Iterable[str]) -> List[str]:
    """Set union that keeps first-seen order."""
    merged: List[str] = []
    for tag in list(existing or []) + list(new):
        if tag not in merged:
            merged.append(tag)
    return merged


# Assigner dashboard capacity and recommendation scoring
MAX_CAPACITY = 25
CAN_TAKE_MORE_BELOW = 80
RECOMMENDATION_BASE_SCORE = 50
ROLE_SCORE_BONUS = {"super_admin": 15, "operations_admin": 10, "transport_manager": 8}


def workload_percentage(current: int, capacity: int = MAX_CAPACITY) -> int:
    return round(current / capacity * 100)


def recommendation_score(role: Optional[str], percentage: int) -> int:
    """Match score for suggesting an admin; lighter workloads and senior roles score higher."""
    score = RECOMMENDATION_BASE_SCORE
    if percentage < 50:
        score += 20
    elif percentage < 70:
        score += 10
    score += ROLE_SCORE_BONUS.get(role or "", 0)
    return min(score, 100)


def assignee_performance(grievances: Iterable, now: datetime) -> Dict[str, Dict[str, Any]]:
    """Per-assignee counts and average response hours over resolved grievances."""
    performance: Dict[str, Dict[str, Any]] = {}
    response_times: Dict[str, List[int]] = {}
    for grievance in grievances:
        if not grievance.assigned_to:
            continue
        entry = performance.setdefault(grievance.assigned_to, {
            "total": 0, "open": 0, "in_progress": 0, "resolved": 0, "overdue": 0, "avg_response_time": 0,
        })
        entry["total"] += 1
        if grievance.status in (OPEN, IN_PROGRESS, RESOLVED):
            entry[grievance.status] += 1
        if is_overdue(grievance, now):
            entry["overdue"] += 1
        hours = response_time_hours(grievance)
        if hours is not None:
            response_times.setdefault(grievance.assigned_to, []).append(hours)

    for assignee, times in response_times.items():
        performance[assignee]["avg_response_time"] = round(average(times))
    return performance


def assignment_trend(
    grievances: Sequence,
    assignments: Sequence,
    days: int,
    now: datetime,
) -> List[Dict[str, Any]]:
    """
    Day buckets, oldest first, ending today.

    ``assigned`` counts grievances with an assignment row dated that day;
    ``resolved`` counts resolutions that day whatever the creation date.
    """
    trend = []
    for offset in range(days - 1, -1, -1):
        day = (now - timedelta(days=offset)).date()
        created = [g for g in grievances if g.created_at.date() == day]
        trend.append({
            "date": day.isoformat(),
            "created": len(created),
            "assigned": len({a.grievance_id for a in assignments if a.assigned_at.date() == day}),
            "resolved": len([g for g in grievances if g.resolved_at and g.resolved_at.date() == day]),
            "unassigned": len([g for g in created if not g.assigned_to]),
        })
    return trend
