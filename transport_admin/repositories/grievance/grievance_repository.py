"""
Grievance repository with filtering, search and workload queries.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import cast, func, or_, select
from sqlalchemy.dialects.postgresql import JSONB, array
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from transport_admin.models.base.enums import GrievanceStatus
from transport_admin.models.grievance.grievance import Grievance
from transport_admin.repositories.base.base_repository import BaseRepository
from transport_admin.schemas.grievance.grievance_filters import (
    SEARCH_FIELDS,
    DateRangeBucket,
    GrievanceFilters,
)


def date_range_start(bucket: Optional[str], now: datetime) -> Optional[datetime]:
    """
    Start of a canned date-range bucket.

    today: midnight of ``now``; week: seven days back; month: first day of
    the month; quarter: first day of the calendar quarter.
    """
    if bucket is None or bucket == DateRangeBucket.ALL.value:
        return None
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if bucket == DateRangeBucket.TODAY.value:
        return midnight
    if bucket == DateRangeBucket.WEEK.value:
        return now - timedelta(days=7)
    if bucket == DateRangeBucket.MONTH.value:
        return midnight.replace(day=1)
    if bucket == DateRangeBucket.QUARTER.value:
        quarter_month = ((now.month - 1) // 3) * 3 + 1
        return midnight.replace(month=quarter_month, day=1)
    return None


class GrievanceRepository(BaseRepository[Grievance]):
    """Grievance persistence and list queries."""

    def __init__(self, session: Session):
        super().__init__(Grievance, session)

    # ==================== Single Lookups ====================

    def find_with_relations(self, grievance_id: str) -> Optional[Grievance]:
        """Load a grievance with student, route, assignee and history eagerly."""
        return (
            self.db.query(Grievance)
            .options(
                joinedload(Grievance.student),
                joinedload(Grievance.route),
                joinedload(Grievance.assignee),
                joinedload(Grievance.escalation_target),
                selectinload(Grievance.communications),
                selectinload(Grievance.assignments),
            )
            .filter(Grievance.id == grievance_id)
            .first()
        )

    # ==================== List & Search ====================

    def search(
        self,
        filters: GrievanceFilters,
        offset: int,
        limit: int,
        now: datetime,
    ) -> Tuple[List[Grievance], int]:
        """
        Filter, sort and page grievances.

        Returns:
            (page of grievances, total matching count)
        """
        query = self._base_list_query(filters.include_comments)
        query = self.apply_filters(query, filters, now)

        sort_column = getattr(Grievance, filters.sort_by)
        if filters.sort_order == "asc":
            query = query.order_by(sort_column.asc(), Grievance.id.asc())
        else:
            query = query.order_by(sort_column.desc(), Grievance.id.desc())

        return self.paginate_query(query, offset, limit)

    def apply_filters(self, query: Query, filters: GrievanceFilters, now: datetime) -> Query:
        if filters.status:
            query = query.filter(Grievance.status == filters.status)
        elif not filters.include_resolved:
            query = query.filter(
                Grievance.status.notin_([GrievanceStatus.RESOLVED.value, GrievanceStatus.CLOSED.value])
            )

        if filters.category:
            query = query.filter(Grievance.category == filters.category)
        if filters.grievance_type:
            query = query.filter(Grievance.grievance_type == filters.grievance_type)
        if filters.priority:
            query = query.filter(Grievance.priority == filters.priority)
        if filters.urgency:
            query = query.filter(Grievance.urgency == filters.urgency)
        if filters.assigned_to:
            query = query.filter(Grievance.assigned_to == filters.assigned_to)
        if filters.unassigned:
            query = query.filter(Grievance.assigned_to.is_(None))

        if filters.date_from:
            query = query.filter(Grievance.created_at >= filters.date_from)
        if filters.date_to:
            query = query.filter(Grievance.created_at <= filters.date_to)
        range_start = date_range_start(filters.date_range, now)
        if range_start:
            query = query.filter(Grievance.created_at >= range_start)

        if filters.tags:
            query = query.filter(self._tags_overlap(filters.tags))

        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(
                or_(*[getattr(Grievance, field).ilike(pattern) for field in SEARCH_FIELDS])
            )

        return query

    def _base_list_query(self, include_communications: bool = False) -> Query:
        options = [
            joinedload(Grievance.student),
            joinedload(Grievance.route),
            joinedload(Grievance.assignee),
            joinedload(Grievance.escalation_target),
        ]
        if include_communications:
            options.append(selectinload(Grievance.communications))
        return self.db.query(Grievance).options(*options)

    def _tags_overlap(self, tags: List[str]):
        """Grievances whose JSON tag array holds any of ``tags``."""
        if self.db.get_bind().dialect.name == "postgresql":
            return cast(Grievance.tags, JSONB).has_any(array(tags))
        members = func.json_each(Grievance.tags).table_valued("value")
        return select(members.c.value).where(members.c.value.in_(tags)).exists()

    # ==================== Scoped Queries ====================

    def find_by_assignee(self, admin_id: str) -> List[Grievance]:
        """All grievances assigned to an admin, newest first."""
        return (
            self.db.query(Grievance)
            .options(joinedload(Grievance.student), joinedload(Grievance.route))
            .filter(Grievance.assigned_to == admin_id)
            .order_by(Grievance.created_at.desc())
            .all()
        )

    def find_by_student(self, student_id: str, grievance_id: Optional[str] = None) -> List[Grievance]:
        query = (
            self.db.query(Grievance)
            .options(joinedload(Grievance.assignee), joinedload(Grievance.route))
            .filter(Grievance.student_id == student_id)
        )
        if grievance_id:
            query = query.filter(Grievance.id == grievance_id)
        return query.order_by(Grievance.created_at.desc()).all()

    def find_all_with_relations(self) -> List[Grievance]:
        """Every grievance with student and route loaded, newest first."""
        return (
            self.db.query(Grievance)
            .options(joinedload(Grievance.student), joinedload(Grievance.route))
            .order_by(Grievance.created_at.desc())
            .all()
        )

    def workload_rows(self) -> List[Tuple[str, str]]:
        """(assigned_to, status) for every assigned grievance."""
        return (
            self.db.query(Grievance.assigned_to, Grievance.status)
            .filter(Grievance.assigned_to.isnot(None))
            .all()
        )

    def find_for_analytics(
        self,
        date_from: datetime,
        date_to: datetime,
        assigned_to: Optional[str] = None,
        unassigned: bool = False,
    ) -> List[Grievance]:
        query = (
            self.db.query(Grievance)
            .options(joinedload(Grievance.assignee))
            .filter(Grievance.created_at >= date_from, Grievance.created_at <= date_to)
        )
        if assigned_to:
            query = query.filter(Grievance.assigned_to == assigned_to)
        if unassigned:
            query = query.filter(Grievance.assigned_to.is_(None))
        return query.all()
