"""
Canonical location writes and the live location view.

Every source funnels into ``LocationIngestionService.ingest``. The vehicle's
current_* columns are overwritten unconditionally by whichever source wrote
last; no ordering between sources is attempted.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.exceptions import ValidationError
from transport_admin.models.base.enums import DeviceStatus, StalenessStatus
from transport_admin.models.base.types import utcnow
from transport_admin.models.transport.gps_device import GpsDevice
from transport_admin.models.transport.gps_location_history import GpsLocationHistory
from transport_admin.models.transport.vehicle import Vehicle
from transport_admin.repositories.transport import (
    GpsDeviceRepository,
    GpsLocationHistoryRepository,
    VehicleRepository,
)
from transport_admin.schemas.gps import ManualLocationRequest
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.gps.location_source import LocationReading
from transport_admin.services.gps.manual_source import ManualLocationSource
from transport_admin.services.gps.staleness import classify

logger = logging.getLogger(__name__)


def vehicle_location(vehicle: Vehicle, now: datetime) -> Dict[str, Any]:
    """Canonical location of a vehicle with its read-time staleness."""
    staleness = classify(vehicle.last_gps_update, now)
    device = vehicle.gps_device
    route = vehicle.route
    return {
        "vehicle_id": vehicle.id,
        "registration_number": vehicle.registration_number,
        "vehicle_name": vehicle.vehicle_name,
        "live_tracking_enabled": vehicle.live_tracking_enabled,
        "route": {
            "id": route.id,
            "route_name": route.route_name,
            "route_number": route.route_number,
        } if route else None,
        "gps_device": {
            "id": device.id,
            "device_id": device.device_id,
            "device_name": device.device_name,
            "status": device.status,
        } if device else None,
        "latitude": vehicle.current_latitude,
        "longitude": vehicle.current_longitude,
        "speed": vehicle.gps_speed,
        "heading": vehicle.gps_heading,
        "accuracy": vehicle.gps_accuracy,
        "last_gps_update": vehicle.last_gps_update.isoformat() if vehicle.last_gps_update else None,
        "status": staleness.status.value,
        "minutes_ago": staleness.minutes_ago,
        "last_seen": staleness.last_seen,
    }


class LocationIngestionService(BaseService[Vehicle, VehicleRepository]):

    def __init__(self, db: Session):
        super().__init__(VehicleRepository(db), db)
        self.devices = GpsDeviceRepository(db)
        self.history = GpsLocationHistoryRepository(db)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def ingest(
        self,
        device: GpsDevice,
        reading: LocationReading,
        vehicle: Optional[Vehicle] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Write ``reading`` as the vehicle's current location.

        The history row is best effort: a failed insert is logged and the
        canonical write still commits. The device heartbeat is refreshed.
        """
        now = now or utcnow()
        try:
            vehicle = vehicle or device.vehicle or self.repository.find_by_device(device.id)
            if not vehicle:
                return ServiceResult.not_found("Vehicle with this GPS device", device.device_id)

            vehicle.current_latitude = reading.latitude
            vehicle.current_longitude = reading.longitude
            vehicle.gps_speed = reading.speed
            vehicle.gps_heading = reading.heading
            vehicle.gps_accuracy = reading.accuracy
            vehicle.last_gps_update = reading.timestamp

            self._append_history(vehicle, device, reading)

            device.last_heartbeat = now
            device.status = DeviceStatus.ACTIVE.value
            self._commit()

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "store GPS location", device.device_id)

        logger.info(
            f"Location for vehicle {vehicle.registration_number} updated from {reading.source.value} "
            f"({reading.latitude}, {reading.longitude})"
        )
        return ServiceResult.success({
            "vehicle_id": vehicle.id,
            "registration_number": vehicle.registration_number,
            "latitude": reading.latitude,
            "longitude": reading.longitude,
            "speed": reading.speed,
            "heading": reading.heading,
            "accuracy": reading.accuracy,
            "source": reading.source.value,
            "timestamp": reading.timestamp.isoformat(),
        })

    def _append_history(self, vehicle: Vehicle, device: GpsDevice, reading: LocationReading) -> None:
        try:
            with self.db.begin_nested():
                self.db.add(
                    GpsLocationHistory(
                        vehicle_id=vehicle.id,
                        gps_device_id=device.id,
                        latitude=reading.latitude,
                        longitude=reading.longitude,
                        speed=reading.speed,
                        heading=reading.heading,
                        accuracy=reading.accuracy,
                        source=reading.source.value,
                        recorded_at=reading.timestamp,
                    )
                )
        except SQLAlchemyError as e:
            logger.warning(f"Location history not recorded for vehicle {vehicle.id}: {e}")

    def record_manual(
        self,
        payload: ManualLocationRequest,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """Validate and store an admin-entered location."""
        now = now or utcnow()
        try:
            source = ManualLocationSource(
                payload.latitude,
                payload.longitude,
                speed=payload.speed,
                heading=payload.heading,
                accuracy=payload.accuracy,
                timestamp=payload.timestamp or now,
            )
        except ValidationError as e:
            return ServiceResult.validation_failure(e.message, field="latitude", details=e.details)

        try:
            device = self.devices.find_by_device_id(payload.device_id)
            if not device:
                return ServiceResult.not_found("GPS device", payload.device_id)
            if not device.is_active or device.status != DeviceStatus.ACTIVE.value:
                return ServiceResult.validation_failure("GPS device is not active", field="device_id")

            vehicle = device.vehicle or self.repository.find_by_device(device.id)
            if not vehicle:
                return ServiceResult.not_found("Vehicle with this GPS device", payload.device_id)
            if not vehicle.live_tracking_enabled:
                return ServiceResult.validation_failure(
                    "Live tracking is not enabled for this vehicle",
                    field="device_id",
                )
        except SQLAlchemyError as e:
            return self._handle_exception(e, "look up GPS device", payload.device_id)

        reading = source.fetch_locations()[0]
        result = self.ingest(device, reading, vehicle=vehicle, now=now)
        if result.is_success:
            result.message = "GPS location updated successfully"
        return result

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_locations(self, now: Optional[datetime] = None) -> ServiceResult[Dict[str, Any]]:
        """All tracked vehicles with staleness computed against ``now``."""
        now = now or utcnow()
        try:
            vehicles = self.repository.find_tracked()
        except SQLAlchemyError as e:
            return self._handle_exception(e, "list GPS locations")

        locations = [vehicle_location(v, now) for v in vehicles]
        summary = {"total": len(locations)}
        for status in StalenessStatus:
            summary[status.value] = len([loc for loc in locations if loc["status"] == status.value])

        return ServiceResult.success({
            "vehicles": locations,
            "summary": summary,
            "last_updated": now.isoformat(),
        })
