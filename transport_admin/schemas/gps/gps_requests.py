"""
Request payloads for GPS ingestion endpoints.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from transport_admin.schemas.common.base import BaseSchema

__all__ = [
    "VendorSyncRequest",
    "ManualLocationRequest",
    "SmsLocateRequest",
    "RealtimeTrackingRequest",
    "InboundSmsRequest",
]


class VendorSyncRequest(BaseSchema):
    action: Literal["test", "sync"]


class ManualLocationRequest(BaseSchema):
    """Coordinates are range checked by the manual source."""

    device_id: str = Field(..., min_length=1)
    latitude: float
    longitude: float
    speed: Optional[float] = None
    heading: Optional[float] = None
    accuracy: Optional[float] = Field(None, ge=0)
    timestamp: Optional[datetime] = None


class SmsLocateRequest(BaseSchema):
    device_id: str = Field(..., min_length=1)


class RealtimeTrackingRequest(BaseSchema):
    device_id: str = Field(..., min_length=1)
    interval_seconds: int = Field(30, ge=10, le=999)


class InboundSmsRequest(BaseSchema):
    """Provider webhook body for a device reply."""

    sender: str = Field(..., alias="from", min_length=1)
    body: str = ""
