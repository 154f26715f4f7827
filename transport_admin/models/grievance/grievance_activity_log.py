"""
Grievance activity log model (append-only).

Entries drive both the admin audit trail and the student timeline, filtered
by their own visibility independent of any communication flag.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.enums import ActivityVisibility
from transport_admin.models.base.mixins import CreatedAtMixin
from transport_admin.models.base.types import JSONType

if TYPE_CHECKING:
    from transport_admin.models.grievance.grievance import Grievance

__all__ = ["GrievanceActivityLog"]


class GrievanceActivityLog(BaseModel, CreatedAtMixin):
    """One state-changing or communicative event on a grievance."""

    __tablename__ = "grievance_activity_logs"
    __table_args__ = (
        Index("ix_grievance_activity_logs_grievance_created", "grievance_id", "created_at"),
        {"comment": "Append-only grievance activity trail"},
    )

    grievance_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("grievances.id", ondelete="CASCADE"),
        nullable=False,
    )
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    visibility: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ActivityVisibility.PUBLIC.value,
    )
    actor_type: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    actor_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    action_description: Mapped[str] = mapped_column(Text, nullable=False)
    action_details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    old_values: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    new_values: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    is_milestone: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    grievance: Mapped["Grievance"] = relationship(
        "Grievance",
        back_populates="activities",
    )

    def __repr__(self) -> str:
        return (
            f"<GrievanceActivityLog(id={self.id}, type={self.activity_type}, "
            f"visibility={self.visibility})>"
        )


@event.listens_for(GrievanceActivityLog, "before_update")
def _reject_activity_update(mapper, connection, target):
    raise ValueError("Grievance activity log entries are append-only")
