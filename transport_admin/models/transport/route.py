"""
Transport route model.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.mixins import TimestampMixin

__all__ = ["Route"]


class Route(BaseModel, TimestampMixin):
    """Bus route a grievance may refer to."""

    __tablename__ = "routes"

    route_name: Mapped[str] = mapped_column(String(255), nullable=False)
    route_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
