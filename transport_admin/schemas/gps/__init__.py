from transport_admin.schemas.gps.gps_requests import (
    InboundSmsRequest,
    ManualLocationRequest,
    RealtimeTrackingRequest,
    SmsLocateRequest,
    VendorSyncRequest,
)

__all__ = [
    "InboundSmsRequest",
    "ManualLocationRequest",
    "RealtimeTrackingRequest",
    "SmsLocateRequest",
    "VendorSyncRequest",
]
