"""
Admin user model.

Admins are assignees and escalation targets for grievances.
"""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.mixins import TimestampMixin

__all__ = ["AdminUser"]


class AdminUser(BaseModel, TimestampMixin):
    """Administrative staff member."""

    __tablename__ = "admin_users"
    __table_args__ = ({"comment": "Administrative staff"},)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="admin",
        comment="Role name, e.g. super_admin, transport_manager, admin",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
