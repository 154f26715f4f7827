"""
Grievance communication model.

Messages between students, admins and the system. Internal messages are
never exposed on the student-facing view.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.enums import CommunicationType
from transport_admin.models.base.mixins import TimestampMixin
from transport_admin.models.base.types import JSONType, UTCDateTime

if TYPE_CHECKING:
    from transport_admin.models.grievance.grievance import Grievance

__all__ = ["GrievanceCommunication"]


class GrievanceCommunication(BaseModel, TimestampMixin):
    """Message exchanged about a grievance."""

    __tablename__ = "grievance_communications"
    __table_args__ = (
        Index("ix_grievance_communications_grievance_created", "grievance_id", "created_at"),
        {"comment": "Grievance messages"},
    )

    grievance_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("grievances.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_type: Mapped[str] = mapped_column(String(20), nullable=False)
    sender_id: Mapped[str] = mapped_column(String(36), nullable=False)
    recipient_type: Mapped[str] = mapped_column(String(20), nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(36), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    communication_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=CommunicationType.COMMENT.value,
    )
    is_internal: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Hidden from the student-facing view",
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    read_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    attachments: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)

    grievance: Mapped["Grievance"] = relationship(
        "Grievance",
        back_populates="communications",
    )

    def __repr__(self) -> str:
        return (
            f"<GrievanceCommunication(id={self.id}, grievance_id={self.grievance_id}, "
            f"is_internal={self.is_internal})>"
        )
