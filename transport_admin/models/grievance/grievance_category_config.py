"""
Per-category grievance configuration (SLA and auto-assignment).
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.mixins import TimestampMixin

__all__ = ["GrievanceCategoryConfig"]


class GrievanceCategoryConfig(BaseModel, TimestampMixin):
    """SLA hours and optional auto-assignee for a category and type."""

    __tablename__ = "grievance_category_configs"
    __table_args__ = (
        UniqueConstraint("category", "grievance_type", name="uq_grievance_category_type"),
    )

    category: Mapped[str] = mapped_column(String(100), nullable=False)
    grievance_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="service_complaint",
    )
    sla_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=72)
    auto_assign_to: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
