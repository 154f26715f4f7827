"""
HTTP tests: authentication, error mapping, grievance routes, GPS routes and
audit logs
"""
import pytest
from fastapi.testclient import TestClient

from transport_admin.core.security import UserType
from transport_admin.main import create_app
from transport_admin.services.audit.audit_log_service import client_ip
from transport_admin.services.gps.vendor_source import VendorLocationSource

from tests.conftest import bearer
from tests.test_vendor_source import FakeVendor, make_source as make_vendor_source


@pytest.fixture
def grievance_payload(student):
    return {
        'student_id': student.id,
        'category': 'transport',
        'subject': 'Driver on phone while driving',
        'description': 'Seen on route R12 this morning.',
        'priority': 'high',
        'tags': ['driver', 'safety'],
    }


def create_grievance(client, headers, payload):
    response = client.post('/api/admin/grievances', json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()['data']


class TestAuthentication:

    def test_health_needs_no_token(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'

    def test_missing_token(self, client):
        response = client.get('/api/admin/grievances')

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'AUTHENTICATION_FAILED'

    def test_invalid_token(self, client):
        response = client.get('/api/admin/grievances', headers={'Authorization': 'Bearer not-a-jwt'})
        assert response.status_code == 401

    def test_student_cannot_use_admin_routes(self, client, student_headers):
        assert client.get('/api/admin/grievances', headers=student_headers).status_code == 403

    def test_admin_cannot_post_as_student(self, client, admin_headers, student):
        response = client.post(
            '/api/student/grievances/tracking',
            json={'studentId': student.id, 'grievanceId': 'g', 'type': 'feedback', 'message': 'hi'},
            headers=admin_headers,
        )
        assert response.status_code == 403


class TestGrievanceRoutes:

    def test_create_and_fetch(self, client, admin_headers, grievance_payload):
        created = create_grievance(client, admin_headers, grievance_payload)

        assert created['status'] == 'open'
        assert created['estimated_resolution_time'] == '72 hours'

        response = client.get(f"/api/admin/grievances/{created['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()['data']['subject'] == 'Driver on phone while driving'

    def test_missing_fields_are_400(self, client, admin_headers, student):
        response = client.post('/api/admin/grievances', json={'student_id': student.id}, headers=admin_headers)

        assert response.status_code == 400
        body = response.json()['error']
        assert body['code'] == 'VALIDATION_ERROR'
        assert 'subject' in body['details']['field_errors']

    def test_unknown_student_is_404(self, client, admin_headers, grievance_payload):
        grievance_payload['student_id'] = 'missing'
        response = client.post('/api/admin/grievances', json=grievance_payload, headers=admin_headers)
        assert response.status_code == 404

    def test_unknown_grievance_is_404(self, client, admin_headers):
        assert client.get('/api/admin/grievances/missing', headers=admin_headers).status_code == 404

    def test_invalid_sort_field_is_400(self, client, admin_headers):
        response = client.get('/api/admin/grievances?sort_by=password', headers=admin_headers)
        assert response.status_code == 400

    def test_list_filters_and_pagination(self, client, admin_headers, grievance_payload):
        create_grievance(client, admin_headers, grievance_payload)
        create_grievance(client, admin_headers, {**grievance_payload, 'subject': 'Bus late', 'tags': ['timing']})

        response = client.get('/api/admin/grievances?tags=timing,other&limit=10', headers=admin_headers)

        body = response.json()
        assert body['success'] is True
        assert [g['subject'] for g in body['grievances']] == ['Bus late']
        assert body['pagination']['total'] == 1

    def test_soft_delete_hides_from_default_list(self, client, admin_headers, grievance_payload):
        created = create_grievance(client, admin_headers, grievance_payload)

        response = client.delete(
            f"/api/admin/grievances?id={created['id']}&reason=Duplicate", headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()['data']['status'] == 'closed'

        listed = client.get('/api/admin/grievances', headers=admin_headers).json()
        assert listed['grievances'] == []
        closed = client.get('/api/admin/grievances?status=closed', headers=admin_headers).json()
        assert len(closed['grievances']) == 1

    def test_assign_resolve_reopen(self, client, admin_headers, admin, grievance_payload):
        created = create_grievance(client, admin_headers, grievance_payload)
        base = f"/api/admin/grievances/{created['id']}"

        assigned = client.post(f'{base}/assign', json={'assigned_to': admin.id}, headers=admin_headers)
        assert assigned.json()['data']['status'] == 'in_progress'

        resolved = client.post(f'{base}/resolve', json={'resolution': 'Driver suspended'}, headers=admin_headers)
        assert resolved.json()['data']['status'] == 'resolved'

        again = client.post(f'{base}/resolve', json={'resolution': 'Again'}, headers=admin_headers)
        assert again.status_code == 400

        reopened = client.post(f'{base}/reopen', json={'reason': 'Seen again'}, headers=admin_headers)
        assert reopened.json()['data']['status'] == 'in_progress'

        activities = client.get(f'{base}/activities', headers=admin_headers).json()['data']
        assert 'grievance_reopened' in {a['type'] for a in activities}

    def test_dashboard_action_by_other_admin_is_403(
        self, client, admin_headers, admin, other_admin, grievance_payload,
    ):
        created = create_grievance(client, admin_headers, {**grievance_payload, 'assigned_to': admin.id})
        other_headers = bearer(other_admin.id, UserType.ADMIN, role=other_admin.role)

        response = client.put(
            '/api/admin/grievances/assignee-dashboard',
            json={'adminId': other_admin.id, 'grievanceId': created['id'], 'action': 'start_progress'},
            headers=other_headers,
        )
        assert response.status_code == 403

    def test_dashboard_defaults_to_caller(self, client, admin_headers, admin):
        response = client.get('/api/admin/grievances/assignee-dashboard', headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['data']['admin_info']['id'] == admin.id

    def test_analytics_rejects_inverted_range(self, client, admin_headers):
        response = client.get(
            '/api/admin/grievances/analytics?date_from=2025-02-01&date_to=2025-01-01', headers=admin_headers,
        )
        assert response.status_code == 400

    def test_internal_messages_hidden_from_student(
        self, client, admin_headers, student_headers, admin, student, grievance_payload,
    ):
        created = create_grievance(client, admin_headers, grievance_payload)
        client.post(
            f"/api/admin/grievances/{created['id']}/communications",
            json={'sender_id': admin.id, 'recipient_id': admin.id, 'message': 'internal', 'is_internal': True},
            headers=admin_headers,
        )

        tracking = client.get(
            f'/api/student/grievances/tracking?studentId={student.id}&includeHistory=true', headers=student_headers,
        )
        assert tracking.status_code == 200
        assert tracking.json()['data']['grievances'][0]['communications'] == []

    def test_student_cannot_track_another_student(self, client, student_headers, other_student):
        response = client.get(
            f'/api/student/grievances/tracking?studentId={other_student.id}', headers=student_headers,
        )
        assert response.status_code == 403


class TestGpsRoutes:

    def test_manual_location(self, client, admin_headers, vehicle):
        response = client.post(
            '/api/admin/gps/location',
            json={'device_id': 'GPS-001', 'latitude': 13.05, 'longitude': 80.25},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()['message'] == 'GPS location updated successfully'

        locations = client.get('/api/admin/gps/location', headers=admin_headers).json()['data']
        assert locations['summary']['online'] == 1

    def test_manual_location_out_of_range(self, client, admin_headers, vehicle):
        response = client.post(
            '/api/admin/gps/location',
            json={'device_id': 'GPS-001', 'latitude': 123.0, 'longitude': 80.25},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()['error']['message'] == 'Invalid GPS coordinates'

    def test_manual_location_unknown_device(self, client, admin_headers):
        response = client.post(
            '/api/admin/gps/location',
            json={'device_id': 'GPS-404', 'latitude': 13.0, 'longitude': 80.0},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_vendor_sync_without_credentials(self, client, admin_headers):
        client.app.state.vendor_source = VendorLocationSource('https://vendor.test', None, None)

        response = client.post('/api/admin/gps/mercyda-sync', json={'action': 'sync'}, headers=admin_headers)
        assert response.status_code == 503

    def test_vendor_test_result_is_reused_by_sync(self, client, admin_headers, vehicle):
        vendor = FakeVendor(accepted_method='form')
        source = make_vendor_source(vendor)
        client.app.state.vendor_source = source

        tested = client.post('/api/admin/gps/mercyda-sync', json={'action': 'test'}, headers=admin_headers)
        assert tested.status_code == 200
        vendor.requests.clear()

        synced = client.post('/api/admin/gps/mercyda-sync', json={'action': 'sync'}, headers=admin_headers)

        assert synced.status_code == 200
        assert synced.json()['data']['updated'] == 1
        assert vendor.requests == [('POST', '/api/auth/login'), ('GET', '/vehicles')]
        assert source.working_auth_method == 'form'

    def test_vendor_sync_rejects_unknown_action(self, client, admin_headers):
        response = client.post('/api/admin/gps/mercyda-sync', json={'action': 'purge'}, headers=admin_headers)
        assert response.status_code == 400

    def test_realtime_interval_bounds(self, client, admin_headers):
        response = client.post(
            '/api/admin/gps/sms/realtime', json={'device_id': 'GPS-001', 'interval_seconds': 5}, headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.parametrize('path,extra', [
        ('/api/admin/gps/sms/locate', {}),
        ('/api/admin/gps/sms/realtime', {'interval_seconds': 30}),
    ])
    def test_sms_unknown_device(self, client, admin_headers, path, extra):
        response = client.post(path, json={'device_id': 'GPS-404', **extra}, headers=admin_headers)

        assert response.status_code == 404
        assert response.json()['error']['code'] == 'RESOURCE_NOT_FOUND'

    def test_sms_device_without_sim(self, client, admin_headers, db_session, device, vehicle):
        device.sim_number = None
        db_session.commit()

        response = client.post('/api/admin/gps/sms/locate', json={'device_id': 'GPS-001'}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()['error']['message'] == 'No SIM number configured for this device'

    def test_http_clients_closed_on_shutdown(self):
        app = create_app(initialize_database=False)
        with TestClient(app):
            assert not app.state.sms_client.is_closed

        assert app.state.sms_client.is_closed

    def test_inbound_sms_needs_no_token(self, client, device, vehicle):
        response = client.post(
            '/api/admin/gps/sms/inbound', json={'from': device.sim_number, 'body': 'Lat:13.08,Lon:80.27'},
        )
        assert response.status_code == 200
        assert response.json()['data']['source'] == 'sms'

    def test_inbound_sms_unknown_sender(self, client):
        response = client.post('/api/admin/gps/sms/inbound', json={'from': '+10000000000', 'body': '13.0,80.0'})
        assert response.status_code == 404


class TestAuditLogs:

    def test_client_ip_precedence(self):
        assert client_ip({'x-forwarded-for': '203.0.113.5, 10.0.0.1', 'x-real-ip': '10.0.0.2'}) == '203.0.113.5'
        assert client_ip({'x-real-ip': '10.0.0.2'}) == '10.0.0.2'
        assert client_ip({'x-client-ip': '10.0.0.3'}) == '10.0.0.3'
        assert client_ip({}) == 'unknown'

    def test_mutations_are_audited(self, client, admin_headers, admin, grievance_payload):
        headers = {**admin_headers, 'X-Forwarded-For': '203.0.113.5, 10.0.0.1', 'User-Agent': 'pytest'}
        create_grievance(client, headers, grievance_payload)

        response = client.get('/api/admin/audit-logs?action=grievances.created', headers=admin_headers)

        logs = response.json()['logs']
        assert len(logs) == 1
        assert logs[0]['user_id'] == admin.id
        assert logs[0]['user_email'] == admin.email
        assert logs[0]['ip_address'] == '203.0.113.5'
        assert logs[0]['user_agent'] == 'pytest'

    def test_create_list_delete(self, client, admin_headers):
        created = client.post(
            '/api/admin/audit-logs',
            json={'action': 'reports.exported', 'resource_type': 'report', 'metadata': {'format': 'csv'}},
            headers=admin_headers,
        )
        assert created.status_code == 201
        entry = created.json()['data']
        assert entry['metadata'] == {'format': 'csv'}
        assert entry['severity'] == 'info'

        deleted = client.delete(f"/api/admin/audit-logs?ids={entry['id']}", headers=admin_headers)
        assert deleted.json()['data'] == {'deleted_count': 1}

        remaining = client.get('/api/admin/audit-logs', headers=admin_headers).json()['logs']
        assert [log['action'] for log in remaining] == ['audit_logs.deleted']
        assert remaining[0]['severity'] == 'warning'

    def test_delete_requires_a_selector(self, client, admin_headers):
        assert client.delete('/api/admin/audit-logs', headers=admin_headers).status_code == 400


class TestConfiguration:

    def test_missing_database_is_configuration_error(self, monkeypatch):
        from transport_admin.config import database
        from transport_admin.config.settings import settings
        from transport_admin.core.exceptions import MissingConfigurationError

        monkeypatch.setattr(settings, 'DATABASE_URL', None)
        monkeypatch.setattr(database, '_engine', None)
        monkeypatch.setattr(database, '_session_factory', None)

        with pytest.raises(MissingConfigurationError):
            with database.get_db_context():
                pass

    def test_unconfigured_database_is_503(self, admin_headers, monkeypatch):
        from fastapi.testclient import TestClient

        from transport_admin.config import database
        from transport_admin.config.settings import settings
        from transport_admin.main import create_app

        monkeypatch.setattr(settings, 'DATABASE_URL', None)
        monkeypatch.setattr(database, '_engine', None)
        monkeypatch.setattr(database, '_session_factory', None)

        with TestClient(create_app(initialize_database=False)) as bare_client:
            response = bare_client.get('/api/admin/grievances', headers=admin_headers)

        assert response.status_code == 503
        assert response.json()['error']['code'] == 'MISSING_CONFIGURATION'
