"""
Core grievance model with lifecycle, SLA and escalation tracking.

A grievance is never hard-deleted; soft deletion moves it to ``closed``
with a closure reason.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.enums import GrievancePriority, GrievanceStatus
from transport_admin.models.base.mixins import TimestampMixin
from transport_admin.models.base.types import JSONType, UTCDateTime

if TYPE_CHECKING:
    from transport_admin.models.grievance.grievance_activity_log import GrievanceActivityLog
    from transport_admin.models.grievance.grievance_assignment import GrievanceAssignment
    from transport_admin.models.grievance.grievance_communication import GrievanceCommunication
    from transport_admin.models.transport.admin_user import AdminUser
    from transport_admin.models.transport.route import Route
    from transport_admin.models.transport.student import Student

__all__ = ["Grievance"]


class Grievance(BaseModel, TimestampMixin):
    """
    Student grievance tracked through its status lifecycle.

    Attributes:
        student_id: Student who raised the grievance
        category: Grievance category (drives SLA lookup)
        grievance_type: Sub-type, defaults to service_complaint
        status: Current lifecycle status
        assigned_to: Admin currently responsible (mirrors the active assignment row)
        escalated_to: Escalation target admin
        tags: JSON list of distinct tag strings, null when empty
        estimated_resolution_time: Human readable SLA, e.g. "72 hours"
        actual_resolution_time: Elapsed hours at resolution, e.g. "5.25 hours"
        resolved_at: Set once on first transition into resolved
        closed_at: Set when the grievance is closed by soft deletion
    """

    __tablename__ = "grievances"
    __table_args__ = (
        Index("ix_grievances_status", "status"),
        Index("ix_grievances_assigned_to", "assigned_to"),
        Index("ix_grievances_student_id", "student_id"),
        Index("ix_grievances_category", "category"),
        Index("ix_grievances_status_priority", "status", "priority"),
        CheckConstraint(
            "satisfaction_rating IS NULL OR (satisfaction_rating >= 1 AND satisfaction_rating <= 5)",
            name="check_satisfaction_rating_range",
        ),
        {"comment": "Student grievances"},
    )

    student_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Student who raised the grievance",
    )
    route_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("routes.id", ondelete="SET NULL"),
        nullable=True,
    )

    category: Mapped[str] = mapped_column(String(100), nullable=False)
    grievance_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="service_complaint",
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=GrievancePriority.MEDIUM.value,
    )
    urgency: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=GrievancePriority.MEDIUM.value,
    )
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Incident details
    driver_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    vehicle_registration: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    location_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    incident_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=GrievanceStatus.OPEN.value,
    )

    # Assignment and escalation
    assigned_to: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("admin_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    escalated_to: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("admin_users.id", ondelete="SET NULL"),
        nullable=True,
    )
    escalated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    escalation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # SLA
    expected_resolution_date: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
        comment="Deadline derived from SLA or set by the assignee",
    )
    estimated_resolution_time: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    actual_resolution_time: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Resolution
    resolution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolution_category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    public_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    closure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # Feedback
    satisfaction_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    satisfaction_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tags: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    follow_up_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    follow_up_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="grievances")
    route: Mapped[Optional["Route"]] = relationship("Route")
    assignee: Mapped[Optional["AdminUser"]] = relationship(
        "AdminUser",
        foreign_keys=[assigned_to],
    )
    escalation_target: Mapped[Optional["AdminUser"]] = relationship(
        "AdminUser",
        foreign_keys=[escalated_to],
    )
    assignments: Mapped[List["GrievanceAssignment"]] = relationship(
        "GrievanceAssignment",
        back_populates="grievance",
        order_by="GrievanceAssignment.assigned_at",
        cascade="all, delete-orphan",
    )
    communications: Mapped[List["GrievanceCommunication"]] = relationship(
        "GrievanceCommunication",
        back_populates="grievance",
        order_by="GrievanceCommunication.created_at",
        cascade="all, delete-orphan",
    )
    activities: Mapped[List["GrievanceActivityLog"]] = relationship(
        "GrievanceActivityLog",
        back_populates="grievance",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<Grievance(id={self.id}, status={self.status}, "
            f"assigned_to={self.assigned_to})>"
        )
