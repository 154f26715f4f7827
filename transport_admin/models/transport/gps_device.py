"""
GPS device model.

A physical tracker fitted to a vehicle. Devices are reached either through
the vendor API or over SMS via their SIM number.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.enums import DeviceStatus
from transport_admin.models.base.mixins import TimestampMixin
from transport_admin.models.base.types import UTCDateTime

if TYPE_CHECKING:
    from transport_admin.models.transport.vehicle import Vehicle

__all__ = ["GpsDevice"]


class GpsDevice(BaseModel, TimestampMixin):
    """
    GPS tracking device.

    Attributes:
        device_id: External device identifier (unique)
        device_name: Human readable name, matched against vendor vehicle names
        sim_number: SIM phone number used for SMS polling
        imei: Hardware IMEI
        notes: Free text; vendor-managed devices mention the vendor here
        last_heartbeat: Last time any source reported for this device
    """

    __tablename__ = "gps_devices"
    __table_args__ = (
        Index("ix_gps_devices_sim_number", "sim_number"),
        {"comment": "GPS tracking devices"},
    )

    device_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="External device identifier",
    )
    device_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sim_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    imei: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    device_model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DeviceStatus.ACTIVE.value,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_heartbeat: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime,
        nullable=True,
        comment="Last report from any source",
    )

    vehicle: Mapped[Optional["Vehicle"]] = relationship(
        "Vehicle",
        back_populates="gps_device",
        uselist=False,
    )
