"""
GPS ingestion endpoints: vendor sync, manual entry, SMS polling and the
inbound SMS webhook.
"""

from functools import partial

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from transport_admin.api import deps
from transport_admin.api.utils import envelope, unwrap_result
from transport_admin.core.security import RequestContext
from transport_admin.schemas.gps import (
    InboundSmsRequest,
    ManualLocationRequest,
    RealtimeTrackingRequest,
    SmsLocateRequest,
    VendorSyncRequest,
)
from transport_admin.services.audit import AuditLogService, AuditRequestInfo
from transport_admin.services.gps import GpsVendorSyncService, LocationIngestionService, SmsTrackingService
from transport_admin.services.gps.sms_source import SmsLocationSource
from transport_admin.services.gps.vendor_source import VendorLocationSource

router = APIRouter(prefix="/admin/gps", tags=["GPS"])


# --- Vendor -----------------------------------------------------------------------

@router.get("/mercyda-sync")
def vendor_vehicles(
    ctx: RequestContext = Depends(deps.require_admin),
    source: VendorLocationSource = Depends(deps.get_vendor_source),
    db: Session = Depends(deps.get_db),
):
    readings = unwrap_result(GpsVendorSyncService(db, source=source).fetch_vehicles())
    return envelope(readings, f"Fetched {len(readings)} vehicles from MERCYDA")


@router.post("/mercyda-sync")
def vendor_sync(
    payload: VendorSyncRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    source: VendorLocationSource = Depends(deps.get_vendor_source),
    db: Session = Depends(deps.get_db),
):
    service = GpsVendorSyncService(db, source=source)
    if payload.action == "test":
        result = service.test_connection()
        return envelope(unwrap_result(result), result.message)

    result = service.sync()
    data = unwrap_result(result)
    # Audit failure does not fail the request
    AuditLogService(db).record(
        "gps.vendor_synced",
        "gps_device",
        ctx=ctx,
        request_info=info,
        metadata={"updated": data["updated"], "errors": len(data["errors"])},
    )
    return envelope(data, result.message)


# --- Canonical locations -------------------------------------------------------

@router.get("/location")
def list_locations(
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    return envelope(unwrap_result(LocationIngestionService(db).list_locations()))


@router.post("/location")
def manual_location(
    payload: ManualLocationRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = LocationIngestionService(db).record_manual(payload)
    data = unwrap_result(result)
    # Audit failure does not fail the request
    AuditLogService(db).record(
        "gps.manual_location",
        "vehicle",
        ctx=ctx,
        request_info=info,
        resource_id=data["vehicle_id"],
        resource_name=data["registration_number"],
        changes={"latitude": payload.latitude, "longitude": payload.longitude},
    )
    return envelope(data, result.message)


# --- SMS --------------------------------------------------------------------------

def _sms_service(db: Session, client: httpx.Client) -> SmsTrackingService:
    return SmsTrackingService(db, source_factory=partial(SmsLocationSource.from_settings, client=client))


@router.post("/sms/locate")
def sms_locate(
    payload: SmsLocateRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    client: httpx.Client = Depends(deps.get_sms_client),
    db: Session = Depends(deps.get_db),
):
    result = _sms_service(db, client).locate(payload.device_id)
    return envelope(unwrap_result(result), result.message)


@router.post("/sms/realtime")
def sms_realtime(
    payload: RealtimeTrackingRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    client: httpx.Client = Depends(deps.get_sms_client),
    db: Session = Depends(deps.get_db),
):
    result = _sms_service(db, client).enable_realtime(payload.device_id, payload.interval_seconds)
    return envelope(unwrap_result(result), result.message)


@router.post("/sms/inbound")
def sms_inbound(
    payload: InboundSmsRequest,
    db: Session = Depends(deps.get_db),
):
    """Provider webhook; authenticated by the provider, not by a bearer token."""
    result = SmsTrackingService(db).handle_inbound(payload.sender, payload.body)
    return envelope(unwrap_result(result), "Location stored")
