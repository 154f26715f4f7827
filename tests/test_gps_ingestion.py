"""
Tests for canonical location writes from the vendor, SMS and manual sources
"""
from datetime import timedelta

import httpx
import pytest

from transport_admin.core.exceptions import GPSVendorError, MissingConfigurationError
from transport_admin.models import GpsDevice, Vehicle
from transport_admin.models.base.enums import LocationSourceKind
from transport_admin.repositories.transport import GpsLocationHistoryRepository
from transport_admin.schemas.gps import ManualLocationRequest
from transport_admin.services.base import ErrorCode
from transport_admin.services.gps import GpsVendorSyncService, LocationIngestionService, SmsTrackingService
from transport_admin.services.gps.location_source import LocationReading, LocationSource, ProbeResult
from transport_admin.services.gps.sms_source import LocalGatewayProvider, SmsLocationSource

from tests.conftest import NOW

GATEWAY = "http://gateway.local"


def reading(lat, lon, at, source=LocationSourceKind.VENDOR, **kwargs):
    return LocationReading(latitude=lat, longitude=lon, timestamp=at, source=source, **kwargs)


class StaticVendorSource(LocationSource):
    """Vendor stand-in returning fixed readings or raising a fixed error"""

    kind = LocationSourceKind.VENDOR

    def __init__(self, readings=None, error=None):
        self.readings = readings or []
        self.error = error

    def probe(self):
        if self.error:
            raise self.error
        return ProbeResult(True, f"Found {len(self.readings)} vehicles", readings=self.readings)

    def fetch_locations(self):
        if self.error:
            raise self.error
        return self.readings


@pytest.fixture
def ingestion(db_session):
    return LocationIngestionService(db_session)


class TestIngest:

    def test_writes_canonical_location_and_history(self, db_session, ingestion, device, vehicle):
        result = ingestion.ingest(device, reading(13.08, 80.27, NOW, speed=30.0, accuracy=10.0), now=NOW)

        assert result.is_success
        assert result.data['source'] == 'vendor'
        stored = db_session.get(Vehicle, vehicle.id)
        assert (stored.current_latitude, stored.current_longitude) == (13.08, 80.27)
        assert stored.gps_speed == 30.0
        assert stored.last_gps_update == NOW
        assert db_session.get(GpsDevice, device.id).last_heartbeat == NOW
        assert len(GpsLocationHistoryRepository(db_session).find_recent(vehicle.id)) == 1

    def test_last_write_wins_across_sources(self, db_session, ingestion, device, vehicle):
        ingestion.ingest(device, reading(13.08, 80.27, NOW, source=LocationSourceKind.SMS), now=NOW)
        older = NOW - timedelta(minutes=10)
        ingestion.ingest(device, reading(12.90, 80.10, older, source=LocationSourceKind.MANUAL), now=NOW)

        stored = db_session.get(Vehicle, vehicle.id)
        assert stored.current_latitude == 12.90
        assert stored.last_gps_update == older
        sources = [h.source for h in GpsLocationHistoryRepository(db_session).find_recent(vehicle.id)]
        assert sorted(sources) == ['manual', 'sms']

    def test_device_without_vehicle(self, ingestion, device):
        result = ingestion.ingest(device, reading(13.0, 80.0, NOW))
        assert result.error.code == ErrorCode.NOT_FOUND


class TestListLocations:

    def test_staleness_is_computed_at_read_time(self, db_session, ingestion, device, vehicle):
        ingestion.ingest(device, reading(13.08, 80.27, NOW - timedelta(seconds=90)), now=NOW)

        online = ingestion.list_locations(now=NOW).data
        assert online['summary'] == {'total': 1, 'online': 1, 'recent': 0, 'offline': 0}
        entry = online['vehicles'][0]
        assert entry['registration_number'] == 'TN09AB1234'
        assert entry['route']['route_number'] == 'R12'
        assert entry['gps_device']['device_id'] == 'GPS-001'

        later = ingestion.list_locations(now=NOW + timedelta(minutes=4)).data
        assert later['vehicles'][0]['status'] == 'recent'

    def test_never_reported_vehicle_is_offline(self, ingestion, vehicle):
        entry = ingestion.list_locations(now=NOW).data['vehicles'][0]
        assert entry['status'] == 'offline'
        assert entry['last_seen'] == 'Never'


class TestManualEntry:

    def _request(self, **overrides):
        payload = dict(device_id='GPS-001', latitude=13.05, longitude=80.25, speed=12.0)
        payload.update(overrides)
        return ManualLocationRequest(**payload)

    def test_records_location(self, db_session, ingestion, vehicle):
        result = ingestion.record_manual(self._request(), now=NOW)

        assert result.message == 'GPS location updated successfully'
        assert result.data['source'] == 'manual'
        assert db_session.get(Vehicle, vehicle.id).current_latitude == 13.05

    @pytest.mark.parametrize('lat,lon', [(95.0, 80.0), (13.0, -181.0)])
    def test_invalid_coordinates(self, ingestion, vehicle, lat, lon):
        result = ingestion.record_manual(self._request(latitude=lat, longitude=lon))

        assert result.error.code == ErrorCode.VALIDATION_ERROR
        assert result.message == 'Invalid GPS coordinates'

    def test_unknown_device(self, ingestion, vehicle):
        assert ingestion.record_manual(self._request(device_id='GPS-404')).error.code == ErrorCode.NOT_FOUND

    def test_inactive_device(self, db_session, ingestion, device, vehicle):
        device.status = 'maintenance'
        db_session.commit()

        result = ingestion.record_manual(self._request())
        assert result.message == 'GPS device is not active'

    def test_live_tracking_disabled(self, db_session, ingestion, vehicle):
        vehicle.live_tracking_enabled = False
        db_session.commit()

        result = ingestion.record_manual(self._request())
        assert result.message == 'Live tracking is not enabled for this vehicle'


class TestVendorSync:

    @pytest.fixture
    def fleet(self, db_session, device, vehicle):
        """Vendor device with a vehicle, one without, and one with tracking disabled"""
        orphan = GpsDevice(device_id='GPS-002', device_name='BUS14', notes='mercyda', status='active')
        paused_device = GpsDevice(device_id='GPS-003', device_name='BUS20', notes='MERCYDA fleet', status='active')
        db_session.add_all([orphan, paused_device])
        db_session.flush()
        db_session.add(Vehicle(
            registration_number='TN09AB2020', gps_device_id=paused_device.id, live_tracking_enabled=False,
        ))
        db_session.commit()

    def test_sync_collects_per_device_errors(self, db_session, fleet, vehicle):
        source = StaticVendorSource([
            reading(13.08, 80.27, NOW, name='BUS12 Tambaram', external_id='7781'),
            reading(12.90, 80.10, NOW, name='BUS14', external_id='7782'),
            reading(12.80, 80.00, NOW, name='BUS20', external_id='7783'),
        ])

        result = GpsVendorSyncService(db_session, source=source).sync(now=NOW)

        assert result.message == 'Sync completed. Updated 1 devices.'
        assert result.data['updated'] == 1
        assert sorted(result.data['errors']) == [
            'Live tracking not enabled for vehicle TN09AB2020',
            'Vehicle not found for GPS device BUS14',
        ]
        assert db_session.get(Vehicle, vehicle.id).current_latitude == 13.08

    def test_empty_vendor_response(self, db_session, vehicle):
        result = GpsVendorSyncService(db_session, source=StaticVendorSource([])).sync()

        assert result.is_success
        assert result.data == {
            'success': False, 'updated': 0, 'errors': ['No vehicle data received from MERCYDA service'],
        }

    def test_vendor_failure_is_external(self, db_session):
        source = StaticVendorSource(error=GPSVendorError("Failed to authenticate with MERCYDA service"))
        result = GpsVendorSyncService(db_session, source=source).sync()
        assert result.error.code == ErrorCode.EXTERNAL_SERVICE_ERROR

    def test_missing_credentials_is_configuration(self, db_session):
        source = StaticVendorSource(error=MissingConfigurationError("MERCYDA credentials not configured"))
        result = GpsVendorSyncService(db_session, source=source).test_connection()
        assert result.error.code == ErrorCode.CONFIGURATION_ERROR

    def test_fetch_vehicles_does_not_write(self, db_session, vehicle):
        source = StaticVendorSource([reading(13.08, 80.27, NOW, name='BUS12')])

        result = GpsVendorSyncService(db_session, source=source).fetch_vehicles()

        assert result.data[0]['name'] == 'BUS12'
        assert db_session.get(Vehicle, vehicle.id).current_latitude is None


class TestSmsTracking:

    def _service(self, db_session, replies):
        def gateway(request: httpx.Request) -> httpx.Response:
            if request.url.path == '/inbox':
                reply = replies.pop(0) if replies else None
                return httpx.Response(200, json=[reply] if reply else [])
            return httpx.Response(200, json={'queued': True})

        def factory(sim_number):
            return SmsLocationSource(
                sim_number,
                providers=[LocalGatewayProvider(GATEWAY)],
                client=httpx.Client(transport=httpx.MockTransport(gateway)),
                sleep=lambda seconds: None,
            )

        return SmsTrackingService(db_session, source_factory=factory)

    def test_locate_stores_reply(self, db_session, vehicle):
        result = self._service(db_session, ['Lat:13.0827,Lon:80.2707,Speed:20km/h']).locate('GPS-001', now=NOW)

        assert result.data['located'] is True
        assert result.data['source'] == 'sms'
        assert db_session.get(Vehicle, vehicle.id).current_longitude == 80.2707

    def test_locate_without_reply(self, db_session, vehicle):
        result = self._service(db_session, []).locate('GPS-001')

        assert result.is_success
        assert result.data['located'] is False
        assert db_session.get(Vehicle, vehicle.id).current_latitude is None

    def test_device_without_sim(self, db_session, device, vehicle):
        device.sim_number = None
        db_session.commit()

        result = self._service(db_session, []).locate('GPS-001')
        assert result.error.code == ErrorCode.VALIDATION_ERROR

    def test_enable_realtime(self, db_session, vehicle):
        result = self._service(db_session, []).enable_realtime('GPS-001', 45)
        assert result.data['command'] == 'T045S***'

    def test_inbound_reply(self, db_session, device, vehicle):
        result = self._service(db_session, []).handle_inbound(
            device.sim_number, 'http://maps.google.com/maps?q=12.97,77.59', now=NOW,
        )

        assert result.is_success
        assert db_session.get(Vehicle, vehicle.id).last_gps_update == NOW

    def test_inbound_from_unknown_sim(self, db_session, vehicle):
        result = self._service(db_session, []).handle_inbound('+10000000000', '12.97,77.59')
        assert result.error.code == ErrorCode.NOT_FOUND

    def test_inbound_unparseable(self, db_session, device, vehicle):
        result = self._service(db_session, []).handle_inbound(device.sim_number, 'GPS not fixed')
        assert result.error.code == ErrorCode.VALIDATION_ERROR
