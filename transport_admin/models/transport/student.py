"""
Student model.

Students raise grievances and read their own tracking timeline.
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.mixins import TimestampMixin

if TYPE_CHECKING:
    from transport_admin.models.grievance.grievance import Grievance

__all__ = ["Student"]


class Student(BaseModel, TimestampMixin):
    """Student enrolled in the transport service."""

    __tablename__ = "students"
    __table_args__ = (
        Index("ix_students_roll_number", "roll_number"),
        {"comment": "Students using the transport service"},
    )

    student_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Full name",
    )
    roll_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Institutional roll number",
    )
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    mobile: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    grievances: Mapped[List["Grievance"]] = relationship(
        "Grievance",
        back_populates="student",
        lazy="select",
    )
