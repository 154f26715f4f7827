"""
Grievance assignment history repository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from transport_admin.models.base.types import utcnow
from transport_admin.models.grievance.grievance_assignment import GrievanceAssignment
from transport_admin.repositories.base.base_repository import BaseRepository


class GrievanceAssignmentRepository(BaseRepository[GrievanceAssignment]):
    """
    Assignment history with the single-active-row rule.

    Writes here never commit; the calling service commits the grievance
    update and the history rows together.
    """

    def __init__(self, session: Session):
        super().__init__(GrievanceAssignment, session)

    # ==================== CRUD Operations ====================

    def create_assignment(
        self,
        grievance_id: str,
        assigned_to: str,
        assigned_by: Optional[str] = None,
        assignment_reason: Optional[str] = None,
        priority: Optional[str] = None,
        expected_resolution_date: Optional[datetime] = None,
        assigned_at: Optional[datetime] = None,
    ) -> GrievanceAssignment:
        """Insert a new active assignment row (flush only)."""
        assignment = GrievanceAssignment(
            grievance_id=grievance_id,
            assigned_to=assigned_to,
            assigned_by=assigned_by,
            assigned_at=assigned_at or utcnow(),
            assignment_reason=assignment_reason,
            priority=priority,
            expected_resolution_date=expected_resolution_date,
            is_active=True,
        )
        return self.create(assignment, commit=False)

    def deactivate_active(
        self,
        grievance_id: str,
        reason: str,
        at: Optional[datetime] = None,
    ) -> Optional[GrievanceAssignment]:
        """Close the current active row for a grievance, if any (flush only)."""
        active = self.find_active(grievance_id)
        if active is None:
            return None
        active.deactivate(reason, at)
        self.db.flush()
        return active

    # ==================== Query Operations ====================

    def find_active(self, grievance_id: str) -> Optional[GrievanceAssignment]:
        return (
            self.db.query(GrievanceAssignment)
            .filter(
                GrievanceAssignment.grievance_id == grievance_id,
                GrievanceAssignment.is_active.is_(True),
            )
            .first()
        )

    def find_by_grievance(self, grievance_id: str) -> List[GrievanceAssignment]:
        return (
            self.db.query(GrievanceAssignment)
            .filter(GrievanceAssignment.grievance_id == grievance_id)
            .order_by(GrievanceAssignment.assigned_at.asc())
            .all()
        )

    def count_active(self, grievance_id: str) -> int:
        return self.count({"grievance_id": grievance_id, "is_active": True})

    def find_by_reason(self, keyword: str, limit: int, offset: int = 0) -> List[GrievanceAssignment]:
        """Rows whose assignment reason mentions ``keyword`` (case-insensitive), newest first."""
        return (
            self.db.query(GrievanceAssignment)
            .filter(GrievanceAssignment.assignment_reason.ilike(f"%{keyword}%"))
            .order_by(GrievanceAssignment.assigned_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def find_since(self, since: datetime) -> List[GrievanceAssignment]:
        return (
            self.db.query(GrievanceAssignment)
            .filter(GrievanceAssignment.assigned_at >= since)
            .order_by(GrievanceAssignment.assigned_at.desc())
            .all()
        )
