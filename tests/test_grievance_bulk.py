"""
Tests for bulk grievance actions, bulk history and the assigner dashboard
"""
from datetime import timedelta

import pytest

from transport_admin.core.security import UserType
from transport_admin.models import Grievance
from transport_admin.schemas.grievance import (
    AssignerAssignRequest,
    BulkActionRequest,
    GrievanceCreate,
)
from transport_admin.services.base import ErrorCode
from transport_admin.services.grievance import (
    GrievanceAssignerDashboardService,
    GrievanceBulkService,
    GrievanceService,
)
from transport_admin.services.grievance.grievance_metrics import recommendation_score, workload_percentage

from tests.conftest import NOW, admin_context, bearer


@pytest.fixture
def make_grievance(db_session, student, admin_ctx):
    service = GrievanceService(db_session)

    def create(subject, **fields):
        return service.create_grievance(
            GrievanceCreate(
                student_id=student.id,
                category=fields.pop('category', 'transport'),
                subject=subject,
                description=f'{subject} near the campus gate',
                **fields,
            ),
            admin_ctx,
            now=NOW,
        ).data

    return create


def bulk(db_session, ctx, action, grievances, now=NOW, **data):
    ids = [g if isinstance(g, str) else g.id for g in grievances]
    payload = BulkActionRequest(action=action, grievance_ids=ids, data=data)
    return GrievanceBulkService(db_session).apply(payload, ctx, now=now)


class TestBulkActions:

    def test_close_reports_each_id(self, db_session, admin_ctx, make_grievance):
        first = make_grievance('Bus late')
        second = make_grievance('AC broken')

        result = bulk(db_session, admin_ctx, 'close', [first, 'missing', second])

        assert result.data['affected_count'] == 2
        assert result.data['errors'] == [{'grievance_id': 'missing', 'error': 'Grievance missing not found'}]
        stored = db_session.get(Grievance, first.id)
        assert stored.status == 'closed'
        assert stored.closure_reason == 'Bulk closure'
        assert stored.closed_at == NOW

    def test_resolve_stamps_resolution_and_skips_resolved(self, db_session, admin_ctx, make_grievance):
        pending = make_grievance('Bus late')
        done = make_grievance('Wrong stop')
        bulk(db_session, admin_ctx, 'resolve', [done], now=NOW + timedelta(hours=2), resolution='Stop moved')

        result = bulk(
            db_session, admin_ctx, 'resolve', [pending, done], now=NOW + timedelta(hours=6),
            resolution='Timetable fixed', resolution_category='schedule',
        )

        assert result.data['affected_count'] == 1
        assert result.data['errors'][0]['error'] == f'Grievance {done.id} is already resolved'
        assert db_session.get(Grievance, pending.id).actual_resolution_time == '6.00 hours'
        assert db_session.get(Grievance, pending.id).resolution_category == 'schedule'
        assert db_session.get(Grievance, done.id).resolved_at == NOW + timedelta(hours=2)

    def test_update_status_into_resolved(self, db_session, admin_ctx, make_grievance):
        grievance = make_grievance('Bus late')

        bulk(db_session, admin_ctx, 'update_status', [grievance], now=NOW + timedelta(hours=3), status='resolved')

        stored = db_session.get(Grievance, grievance.id)
        assert stored.resolved_at == NOW + timedelta(hours=3)
        assert stored.actual_resolution_time == '3.00 hours'

    def test_update_status_to_current_status_is_an_error(self, db_session, admin_ctx, make_grievance):
        grievance = make_grievance('Bus late')
        result = bulk(db_session, admin_ctx, 'update_status', [grievance], status='open')

        assert result.data['affected_count'] == 0
        assert result.data['errors'][0]['error'] == f'Grievance {grievance.id} is already open'

    def test_update_priority_and_urgency(self, db_session, admin_ctx, make_grievance):
        grievance = make_grievance('Rash driving')

        bulk(db_session, admin_ctx, 'update_priority', [grievance], priority='urgent', urgency='high')

        stored = db_session.get(Grievance, grievance.id)
        assert (stored.priority, stored.urgency) == ('urgent', 'high')

    def test_add_tags_merges(self, db_session, admin_ctx, make_grievance):
        grievance = make_grievance('Rash driving', tags=['driver', 'safety'])

        bulk(db_session, admin_ctx, 'add_tags', [grievance], tags=['safety', 'night'])

        assert db_session.get(Grievance, grievance.id).tags == ['driver', 'safety', 'night']

    def test_assign_uses_history_and_starts_progress(self, db_session, admin_ctx, other_admin, make_grievance):
        grievance = make_grievance('Bus late')

        result = bulk(db_session, admin_ctx, 'assign', [grievance], assigned_to=other_admin.id)

        assert result.data['grievances'][0]['status'] == 'in_progress'
        assert result.data['grievances'][0]['assigned_to'] == other_admin.id
        assert grievance.assignments[-1].assignment_reason == 'Bulk assignment'

    def test_assign_to_unknown_admin_fails_whole_request(self, db_session, admin_ctx, make_grievance):
        result = bulk(db_session, admin_ctx, 'assign', [make_grievance('Bus late')], assigned_to='ghost')
        assert result.error.code == ErrorCode.NOT_FOUND

    def test_grievance_owned_by_another_admin(self, db_session, admin_ctx, other_admin, make_grievance):
        theirs = make_grievance('Bus late', assigned_to=other_admin.id)
        result = bulk(db_session, admin_ctx, 'close', [theirs])

        assert result.data['affected_count'] == 0
        assert result.data['errors'][0]['error'] == f'Not permitted to update grievance {theirs.id}'
        assert db_session.get(Grievance, theirs.id).status == 'in_progress'

    def test_duplicate_ids_processed_once(self, db_session, admin_ctx, make_grievance):
        grievance = make_grievance('Bus late')
        result = bulk(db_session, admin_ctx, 'add_tags', [grievance, grievance], tags=['late'])

        assert result.data['affected_count'] == 1
        assert result.data['errors'] == []

    @pytest.mark.parametrize('action,data', [
        ('archive', {}),
        ('update_status', {'status': 'done'}),
        ('resolve', {'resolution': ' '}),
        ('update_priority', {'priority': 'critical'}),
        ('update_priority', {'priority': 'low', 'urgency': 'whenever'}),
        ('add_tags', {'tags': []}),
        ('add_tags', {'tags': 'late'}),
        ('assign', {}),
    ])
    def test_invalid_payloads(self, db_session, admin_ctx, make_grievance, action, data):
        grievance = make_grievance('Bus late')
        result = bulk(db_session, admin_ctx, action, [grievance], **data)

        assert result.error.code == ErrorCode.VALIDATION_ERROR
        assert db_session.get(Grievance, grievance.id).status == 'open'


class TestBulkHistory:

    def test_lists_bulk_actions_and_assignments(self, db_session, admin_ctx, other_admin, make_grievance):
        first = make_grievance('Bus late')
        second = make_grievance('AC broken')
        make_grievance('Rash driving', assigned_to=other_admin.id)
        bulk(db_session, admin_ctx, 'add_tags', [first, second], tags=['late'])
        bulk(db_session, admin_ctx, 'assign', [first], assigned_to=other_admin.id)

        data = GrievanceBulkService(db_session).history().data

        assert {a['type'] for a in data['actions']} == {'bulk_tags_added', 'bulk_assigned'}
        assert data['pagination'] == {'limit': 50, 'offset': 0, 'total': 3}
        assert [a['grievance_id'] for a in data['assignments']] == [first.id]

    def test_limit_and_offset(self, db_session, admin_ctx, make_grievance):
        grievances = [make_grievance(f'Complaint {n}') for n in range(3)]
        bulk(db_session, admin_ctx, 'add_tags', grievances, tags=['batch'])

        data = GrievanceBulkService(db_session).history(limit=2, offset=2).data

        assert len(data['actions']) == 1
        assert data['pagination']['total'] == 3


class TestRecommendationScoring:

    @pytest.mark.parametrize('role,percentage,score', [
        ('super_admin', 10, 85),
        ('operations_admin', 60, 70),
        ('transport_manager', 75, 58),
        ('transport_admin', 40, 70),
        (None, 79, 50),
    ])
    def test_scores(self, role, percentage, score):
        assert recommendation_score(role, percentage) == score

    def test_workload_percentage_of_capacity(self):
        assert workload_percentage(0) == 0
        assert workload_percentage(20) == 80
        assert workload_percentage(30) == 120


class TestAssignerDashboard:

    def test_queue_team_and_recommendations(
        self, db_session, admin, super_admin, admin_ctx, make_grievance,
    ):
        queued = make_grievance('Bus late', priority='urgent')
        make_grievance('Rash driving', assigned_to=admin.id)
        closed = make_grievance('AC broken')
        bulk(db_session, admin_ctx, 'close', [closed])

        data = GrievanceAssignerDashboardService(db_session).get_dashboard(super_admin.id, now=NOW).data

        assert data['admin_info']['id'] == super_admin.id
        assert data['system_metrics']['total_grievances'] == 3
        assert data['system_metrics']['assigned_grievances'] == 1
        assert data['system_metrics']['urgent_grievances'] == 1
        assert data['unassigned_grievances'] == 1
        assert data['unassigned_grievances_data'][0]['id'] == queued.id
        assert data['unassigned_grievances_data'][0]['student']['id'] == queued.student_id
        assert data['analytics']['priority_distribution']['urgent'] == 1

        workload = {w['id']: w for w in data['workload_distribution']}
        assert workload[admin.id]['current_workload'] == 1
        assert workload[admin.id]['workload_percentage'] == 4
        assert workload[admin.id]['can_take_more'] is True

        team = {member['id']: member for member in data['team_overview']}
        assert team[admin.id]['performance']['in_progress'] == 1
        assert team[super_admin.id]['performance']['total'] == 0

        recommendation = data['assignment_recommendations'][0]
        assert recommendation['grievance_id'] == queued.id
        assert recommendation['recommendations'][0] == {
            'admin_id': super_admin.id,
            'admin_name': super_admin.name,
            'match_score': 85,
            'recommendation_reason': 'super_admin with 0% workload',
        }

    def test_trend_counts_assignments_per_day(self, db_session, admin, make_grievance):
        make_grievance('Bus late', assigned_to=admin.id)
        make_grievance('AC broken')

        data = GrievanceAssignerDashboardService(db_session).get_dashboard(admin.id, '1d', now=NOW).data

        assert data['analytics']['trend_data'] == [
            {'date': NOW.date().isoformat(), 'created': 2, 'assigned': 1, 'resolved': 0, 'unassigned': 1},
        ]
        assert len(data['analytics']['assignment_history']) == 1

    def test_overloaded_admin_not_recommended(self, db_session, admin, other_admin, make_grievance):
        for n in range(20):
            make_grievance(f'Complaint {n}', assigned_to=admin.id)
        make_grievance('Waiting')

        data = GrievanceAssignerDashboardService(db_session).get_dashboard(admin.id, now=NOW).data

        suggested = {r['admin_id'] for r in data['assignment_recommendations'][0]['recommendations']}
        assert admin.id not in suggested
        assert other_admin.id in suggested

    def test_unknown_admin(self, db_session):
        result = GrievanceAssignerDashboardService(db_session).get_dashboard('ghost')
        assert result.error.code == ErrorCode.NOT_FOUND


class TestAssignerAssignments:

    def _request(self, admin, *items):
        return AssignerAssignRequest(adminId=admin.id, assignments=[
            {'grievanceId': grievance_id, 'assignedTo': assignee, 'reason': 'Route expert'}
            for grievance_id, assignee in items
        ])

    def test_each_item_succeeds_or_fails_alone(self, db_session, admin, other_admin, admin_ctx, make_grievance):
        free = make_grievance('Bus late')
        taken = make_grievance('AC broken', assigned_to=admin.id)
        also_free = make_grievance('Wrong stop')

        result = GrievanceAssignerDashboardService(db_session).assign(
            self._request(
                admin,
                (free.id, other_admin.id),
                ('missing', other_admin.id),
                (taken.id, other_admin.id),
                (also_free.id, 'ghost'),
            ),
            admin_ctx,
            now=NOW,
        )

        assert result.data['successful'] == 1
        assert [e['error'] for e in result.data['errors']] == [
            'Grievance missing not found',
            f'Grievance {taken.id} is already assigned',
            'Assignee ghost not found or inactive',
        ]
        assert result.message == '1 assignments completed, 3 failed'
        stored = db_session.get(Grievance, free.id)
        assert (stored.assigned_to, stored.status) == (other_admin.id, 'in_progress')
        assert stored.assignments[-1].assignment_reason == 'Route expert'
        assert stored.assignments[-1].assigned_by == admin.id

    def test_all_succeeding(self, db_session, admin, other_admin, admin_ctx, make_grievance):
        grievance = make_grievance('Bus late')
        result = GrievanceAssignerDashboardService(db_session).assign(
            self._request(admin, (grievance.id, other_admin.id)), admin_ctx,
        )
        assert result.message == 'All assignments completed successfully'

    def test_cannot_assign_as_another_admin(self, db_session, admin, other_admin, make_grievance):
        grievance = make_grievance('Bus late')
        result = GrievanceAssignerDashboardService(db_session).assign(
            self._request(admin, (grievance.id, other_admin.id)), admin_context(other_admin),
        )
        assert result.error.code == ErrorCode.UNAUTHORIZED


class TestRoutes:

    def test_bulk_action_is_audited(self, client, admin_headers, make_grievance):
        grievance = make_grievance('Bus late')

        response = client.post(
            '/api/admin/grievances/bulk',
            json={'action': 'close', 'grievance_ids': [grievance.id, 'missing'], 'data': {}},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()['data']['affected_count'] == 1
        logs = client.get('/api/admin/audit-logs?action=grievances.bulk_close', headers=admin_headers).json()['logs']
        assert len(logs) == 1

    def test_bulk_unknown_action_is_400(self, client, admin_headers, make_grievance):
        response = client.post(
            '/api/admin/grievances/bulk',
            json={'action': 'archive', 'grievance_ids': [make_grievance('Bus late').id]},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_bulk_history(self, client, admin_headers, make_grievance):
        grievance = make_grievance('Bus late')
        client.post(
            '/api/admin/grievances/bulk',
            json={'action': 'add_tags', 'grievance_ids': [grievance.id], 'data': {'tags': ['late']}},
            headers=admin_headers,
        )

        response = client.get('/api/admin/grievances/bulk?limit=10', headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['data']['actions'][0]['type'] == 'bulk_tags_added'

    def test_assigner_dashboard_defaults_to_caller(self, client, admin_headers, admin):
        response = client.get('/api/admin/grievances/assigner-dashboard?timeRange=30d', headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['data']['admin_info']['id'] == admin.id
        assert len(response.json()['data']['analytics']['trend_data']) == 30

    def test_assigner_post_reports_partial_failure(self, client, admin_headers, admin, other_admin, make_grievance):
        grievance = make_grievance('Bus late')

        response = client.post(
            '/api/admin/grievances/assigner-dashboard',
            json={
                'adminId': admin.id,
                'assignments': [
                    {'grievanceId': grievance.id, 'assignedTo': other_admin.id},
                    {'grievanceId': 'missing', 'assignedTo': other_admin.id},
                ],
            },
            headers=admin_headers,
        )

        body = response.json()
        assert response.status_code == 200
        assert body['success'] is False
        assert body['data']['successful'] == 1
        assert body['message'] == '1 assignments completed, 1 failed'

    def test_assigner_post_for_another_admin_is_403(self, client, admin, other_admin):
        headers = bearer(other_admin.id, UserType.ADMIN, role=other_admin.role)
        response = client.post(
            '/api/admin/grievances/assigner-dashboard',
            json={'adminId': admin.id, 'assignments': [{'grievanceId': 'g', 'assignedTo': admin.id}]},
            headers=headers,
        )
        assert response.status_code == 403
