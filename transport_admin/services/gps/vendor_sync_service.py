"""
Vendor (MERCYDA) probe and synchronization.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.exceptions import ConfigurationError, GPSVendorError
from transport_admin.core.logging import get_struct_logger
from transport_admin.models.base.types import utcnow
from transport_admin.models.transport.gps_device import GpsDevice
from transport_admin.repositories.transport import GpsDeviceRepository
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.gps.location_ingestion_service import LocationIngestionService
from transport_admin.services.gps.location_source import LocationReading, LocationSource
from transport_admin.services.gps.vendor_source import match_vendor_vehicle

log = get_struct_logger(__name__)

# Devices managed by the vendor mention it in their notes
VENDOR_MARKER = "mercyda"
NO_VENDOR_DATA_MESSAGE = "No vehicle data received from MERCYDA service"


class GpsVendorSyncService(BaseService[GpsDevice, GpsDeviceRepository]):

    def __init__(self, db: Session, source: LocationSource):
        super().__init__(GpsDeviceRepository(db), db)
        self.source = source
        self.ingestion = LocationIngestionService(db)

    def _fetch(self) -> List[LocationReading]:
        return self.source.fetch_locations()

    def fetch_vehicles(self) -> ServiceResult[List[Dict[str, Any]]]:
        """Normalized vendor vehicles without touching the database."""
        try:
            readings = self._fetch()
        except ConfigurationError as e:
            return ServiceResult.configuration_failure(e.message, config_key=e.details.get("config_key"))
        except GPSVendorError as e:
            log.warning("vendor_fetch_failed", error=e.message)
            return ServiceResult.external_failure(e.message, service="mercyda")
        return ServiceResult.success([r.to_dict() for r in readings])

    def test_connection(self) -> ServiceResult[Dict[str, Any]]:
        try:
            probe = self.source.probe()
        except ConfigurationError as e:
            return ServiceResult.configuration_failure(e.message, config_key=e.details.get("config_key"))

        log.info("vendor_probe", success=probe.success, steps=probe.debug.get("steps"))
        if not probe.success:
            return ServiceResult.external_failure(probe.message, service="mercyda", details={"debug": probe.debug})
        return ServiceResult.success(probe.to_dict(), message=probe.message)

    def sync(self, now: Optional[datetime] = None) -> ServiceResult[Dict[str, Any]]:
        """
        Write vendor positions onto every vendor-managed device's vehicle.

        Failures are collected per device; one bad device never stops the
        rest of the batch.
        """
        now = now or utcnow()
        try:
            readings = self._fetch()
        except ConfigurationError as e:
            return ServiceResult.configuration_failure(e.message, config_key=e.details.get("config_key"))
        except GPSVendorError as e:
            log.warning("vendor_sync_failed", error=e.message)
            return ServiceResult.external_failure(e.message, service="mercyda")

        if not readings:
            return ServiceResult.success(
                {"success": False, "updated": 0, "errors": [NO_VENDOR_DATA_MESSAGE]},
                message=NO_VENDOR_DATA_MESSAGE,
            )

        try:
            devices = self.repository.find_vendor_managed(VENDOR_MARKER)
        except SQLAlchemyError as e:
            return self._handle_exception(e, "load vendor GPS devices")

        updated = 0
        errors: List[str] = []
        for device in devices:
            reading = match_vendor_vehicle(device.device_name, device.notes, readings)
            if reading is None:
                continue

            vehicle = device.vehicle
            if not vehicle:
                errors.append(f"Vehicle not found for GPS device {device.device_name}")
                continue
            if not vehicle.live_tracking_enabled:
                errors.append(f"Live tracking not enabled for vehicle {vehicle.registration_number}")
                continue

            result = self.ingestion.ingest(device, reading, vehicle=vehicle, now=now)
            if result.is_success:
                updated += 1
            else:
                errors.append(f"Failed to update {device.device_name}: {result.message}")

        log.info("vendor_sync_completed", devices=len(devices), updated=updated, errors=len(errors))
        return ServiceResult.success(
            {"success": True, "updated": updated, "errors": errors},
            message=f"Sync completed. Updated {updated} devices.",
        )
