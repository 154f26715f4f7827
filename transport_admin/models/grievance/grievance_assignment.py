"""
Grievance assignment history model.

One row per assignment event. Superseded rows are deactivated with an
unassignment reason and a validity end, never deleted.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.mixins import TimestampMixin
from transport_admin.models.base.types import UTCDateTime, utcnow

if TYPE_CHECKING:
    from transport_admin.models.grievance.grievance import Grievance

__all__ = ["GrievanceAssignment"]


class GrievanceAssignment(BaseModel, TimestampMixin):
    """
    Grievance assignment history tracking.

    Attributes:
        grievance_id: Associated grievance
        assigned_to: Admin receiving the grievance
        assigned_by: Admin who performed the assignment
        assigned_at: Start of the assignment
        valid_to: End of the assignment, null while active
        is_active: Whether this is the current assignment
        assignment_reason: Why the assignment was made
        unassigned_at: When the assignment was superseded
        unassignment_reason: Why it was superseded
    """

    __tablename__ = "grievance_assignments"
    __table_args__ = (
        Index("ix_grievance_assignments_grievance_id", "grievance_id"),
        Index("ix_grievance_assignments_assigned_to", "assigned_to"),
        # At most one active assignment per grievance
        Index(
            "ix_grievance_assignments_unique_active",
            "grievance_id",
            unique=True,
            postgresql_where=text("is_active = true"),
            sqlite_where=text("is_active = 1"),
        ),
        CheckConstraint(
            "unassigned_at IS NULL OR unassigned_at >= assigned_at",
            name="check_unassigned_after_assigned",
        ),
        {"comment": "Grievance assignment history"},
    )

    grievance_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("grievances.id", ondelete="CASCADE"),
        nullable=False,
        comment="Associated grievance identifier",
    )
    assigned_to: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        comment="Admin ID of assignee",
    )
    assigned_by: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="Admin ID who performed the assignment",
    )
    assigned_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )
    valid_to: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
        comment="End of validity, null while the assignment is current",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    assignment_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    unassigned_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    unassignment_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    priority: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Grievance priority at assignment time",
    )
    expected_resolution_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    grievance: Mapped["Grievance"] = relationship(
        "Grievance",
        back_populates="assignments",
    )

    def __repr__(self) -> str:
        return (
            f"<GrievanceAssignment(id={self.id}, "
            f"grievance_id={self.grievance_id}, "
            f"assigned_to={self.assigned_to}, "
            f"is_active={self.is_active})>"
        )

    def deactivate(self, reason: str, at: Optional[datetime] = None) -> None:
        """Close this assignment."""
        at = at or utcnow()
        self.is_active = False
        self.unassigned_at = at
        self.valid_to = at
        self.unassignment_reason = reason
