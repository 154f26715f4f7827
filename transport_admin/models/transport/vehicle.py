"""
Vehicle model holding the canonical location record.

The current_* / gps_* columns are written last-write-wins by whichever
ingestion source reported most recently. Staleness is never stored here.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.mixins import TimestampMixin
from transport_admin.models.base.types import UTCDateTime

if TYPE_CHECKING:
    from transport_admin.models.transport.gps_device import GpsDevice
    from transport_admin.models.transport.route import Route

__all__ = ["Vehicle"]


class Vehicle(BaseModel, TimestampMixin):
    """Bus or van with its latest known location."""

    __tablename__ = "vehicles"

    registration_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    vehicle_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    route_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("routes.id", ondelete="SET NULL"),
        nullable=True,
    )
    gps_device_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("gps_devices.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        comment="Fitted GPS device",
    )
    live_tracking_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    current_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    current_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    gps_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    gps_heading: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    gps_accuracy: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_gps_update: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
        comment="Timestamp of the last canonical location write",
    )

    gps_device: Mapped[Optional["GpsDevice"]] = relationship(
        "GpsDevice",
        back_populates="vehicle",
    )
    route: Mapped[Optional["Route"]] = relationship("Route")
