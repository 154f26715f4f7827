"""
GPS ingestion.

Sources (vendor API, SMS tracker polling, manual entry) share the
``LocationSource`` capability and all write through
``LocationIngestionService``.
"""

from transport_admin.services.gps.location_ingestion_service import LocationIngestionService
from transport_admin.services.gps.sms_tracking_service import SmsTrackingService
from transport_admin.services.gps.vendor_sync_service import GpsVendorSyncService

__all__ = ["GpsVendorSyncService", "LocationIngestionService", "SmsTrackingService"]
