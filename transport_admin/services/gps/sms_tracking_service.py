"""
SMS location requests, realtime tracking commands and inbound device replies.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.exceptions import ConfigurationError, SMSServiceError
from transport_admin.models.base.types import utcnow
from transport_admin.models.transport.gps_device import GpsDevice
from transport_admin.repositories.transport import GpsDeviceRepository
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.gps.location_ingestion_service import LocationIngestionService
from transport_admin.services.gps.sms_parser import parse_sms_location
from transport_admin.services.gps.sms_source import SmsLocationSource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[str], SmsLocationSource]


class SmsTrackingService(BaseService[GpsDevice, GpsDeviceRepository]):

    def __init__(self, db: Session, source_factory: Optional[SourceFactory] = None):
        super().__init__(GpsDeviceRepository(db), db)
        self.source_factory = source_factory or SmsLocationSource.from_settings
        self.ingestion = LocationIngestionService(db)

    def _device_with_sim(self, device_id: str):
        """(device, failure) for a device that can be reached by SMS."""
        device = self.repository.find_by_device_id(device_id)
        if not device:
            return None, ServiceResult.not_found("GPS device", device_id)
        if not device.sim_number:
            return None, ServiceResult.validation_failure(
                "No SIM number configured for this device",
                field="sim_number",
            )
        return device, None

    def locate(self, device_id: str, now: Optional[datetime] = None) -> ServiceResult[Dict[str, Any]]:
        """
        Poll a device over SMS and store the reply.

        A missing or unparseable reply is a successful call with
        ``located: false``; only provider failures are errors.
        """
        now = now or utcnow()
        try:
            device, failure = self._device_with_sim(device_id)
        except SQLAlchemyError as e:
            return self._handle_exception(e, "look up GPS device", device_id)
        if failure is not None:
            return failure

        source = self.source_factory(device.sim_number)
        try:
            result = source.request_location()
        except ConfigurationError as e:
            return ServiceResult.configuration_failure(e.message, config_key=e.details.get("config_key"))
        except SMSServiceError as e:
            return ServiceResult.external_failure(e.message, service="sms", details=e.details)
        finally:
            source.close()

        if not result.success:
            logger.info(f"No location from device {device.device_id}: {result.message}")
            return ServiceResult.success(
                {"located": False, "device_id": device.device_id, "raw_response": result.raw or None},
                message=result.message,
            )

        stored = self.ingestion.ingest(device, result.reading, now=now)
        if not stored.is_success:
            return stored
        return ServiceResult.success(
            {"located": True, "device_id": device.device_id, "raw_response": result.raw, **stored.data},
            message=result.message,
        )

    def enable_realtime(self, device_id: str, interval_seconds: int = 30) -> ServiceResult[Dict[str, Any]]:
        try:
            device, failure = self._device_with_sim(device_id)
        except SQLAlchemyError as e:
            return self._handle_exception(e, "look up GPS device", device_id)
        if failure is not None:
            return failure

        source = self.source_factory(device.sim_number)
        try:
            sent = source.enable_realtime(interval_seconds)
        except ConfigurationError as e:
            return ServiceResult.configuration_failure(e.message, config_key=e.details.get("config_key"))
        except SMSServiceError as e:
            return ServiceResult.external_failure(e.message, service="sms", details=e.details)
        finally:
            source.close()

        logger.info(f"Realtime tracking every {interval_seconds}s requested for {device.device_id}")
        return ServiceResult.success(
            {"device_id": device.device_id, "interval_seconds": interval_seconds, **sent},
            message="Realtime tracking command sent",
        )

    def handle_inbound(
        self,
        sender: str,
        body: str,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """Store a device reply delivered by the SMS provider webhook."""
        now = now or utcnow()
        try:
            device = self.repository.find_by_sim_number(sender)
        except SQLAlchemyError as e:
            return self._handle_exception(e, "look up GPS device by SIM", sender)
        if not device:
            return ServiceResult.not_found("GPS device", sender)

        parsed = parse_sms_location(body, now=now)
        if not parsed.success:
            logger.info(f"Unparseable SMS from {sender}: {body!r}")
            return ServiceResult.validation_failure(parsed.message, field="body", details={"raw": body})

        return self.ingestion.ingest(device, parsed.reading, now=now)
