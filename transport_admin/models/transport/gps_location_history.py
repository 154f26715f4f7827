"""
GPS location history model (append-only trail of readings).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.mixins import CreatedAtMixin
from transport_admin.models.base.types import UTCDateTime

__all__ = ["GpsLocationHistory"]


class GpsLocationHistory(BaseModel, CreatedAtMixin):
    """One reading written to the canonical record."""

    __tablename__ = "gps_location_history"
    __table_args__ = (
        Index("ix_gps_location_history_vehicle_recorded", "vehicle_id", "recorded_at"),
    )

    vehicle_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
    )
    gps_device_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("gps_devices.id", ondelete="SET NULL"),
        nullable=True,
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    heading: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    accuracy: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    source: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="vendor, sms or manual",
    )
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
