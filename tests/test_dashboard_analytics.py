"""
Tests for the assignee dashboard, its quick actions and system analytics
"""
from datetime import date, timedelta

import pytest

from transport_admin.models import Grievance
from transport_admin.schemas.grievance import (
    AssigneeActionRequest,
    GrievanceCreate,
    ResolveGrievanceRequest,
)
from transport_admin.services.base import ErrorCode
from transport_admin.services.grievance import (
    GrievanceAnalyticsService,
    GrievanceDashboardService,
    GrievanceService,
)
from transport_admin.services.grievance.grievance_metrics import time_range_days, workload_comparison

from tests.conftest import NOW, admin_context


@pytest.fixture
def grievances(db_session, student, admin, admin_ctx):
    """One unassigned, one assigned to ``admin`` and one resolved after two hours"""
    service = GrievanceService(db_session)

    def create(subject, priority='medium', assigned_to=None):
        return service.create_grievance(
            GrievanceCreate(
                student_id=student.id,
                category='transport',
                subject=subject,
                description=f'{subject} on route R12',
                priority=priority,
                assigned_to=assigned_to,
            ),
            admin_ctx,
            now=NOW,
        ).data

    unassigned = create('Bus late')
    assigned = create('Rash driving', priority='urgent', assigned_to=admin.id)
    resolved = create('AC not working', 'low')
    service.resolve_grievance(
        resolved.id, ResolveGrievanceRequest(resolution='AC repaired'), admin_ctx, now=NOW + timedelta(hours=2),
    )
    return unassigned, assigned, resolved


def action(admin, grievance, name, **data):
    return AssigneeActionRequest(adminId=admin.id, grievanceId=grievance.id, action=name, data=data)


class TestMetrics:

    def test_time_range_days(self):
        assert time_range_days('30d') == 30
        assert time_range_days(None) == 7
        assert time_range_days('90d') == 1

    def test_workload_comparison(self):
        rows = [('a', 'open'), ('a', 'in_progress'), ('a', 'resolved'), ('b', 'open'), ('c', 'open'), ('c', 'open')]
        result = workload_comparison(rows, 'a')

        assert result == {'my_total': 3, 'my_active': 2, 'team_avg': 2, 'percentile': 200}

    def test_workload_without_peers(self):
        assert workload_comparison([('a', 'open')], 'a')['percentile'] == 100


class TestDashboard:

    def test_summary_for_assignee(self, db_session, admin, grievances):
        result = GrievanceDashboardService(db_session).get_dashboard(admin.id, now=NOW + timedelta(days=4))

        data = result.data
        assert data['time_range'] == '7d'
        assert data['admin_info']['id'] == admin.id
        assert data['summary']['total_grievances'] == 1
        assert data['summary']['urgent_grievances'] == 1
        assert data['summary']['overdue_grievances'] == 1
        assert data['summary']['resolution_rate'] == 0
        entry = data['grievances'][0]
        assert entry['is_overdue'] is True
        assert entry['age_hours'] == 96
        assert entry['recent_activity'][0]['type'] == 'grievance_created'
        assert len(data['performance']['trend_data']) == 7
        assert data['performance']['upcoming_deadlines'][0]['id'] == entry['id']

    def test_unknown_time_range_means_one_day(self, db_session, admin, grievances):
        data = GrievanceDashboardService(db_session).get_dashboard(admin.id, '90d', now=NOW).data
        assert len(data['performance']['trend_data']) == 1

    def test_unknown_admin(self, db_session):
        result = GrievanceDashboardService(db_session).get_dashboard('ghost')
        assert result.error.code == ErrorCode.NOT_FOUND


class TestQuickActions:

    def test_resolve_action(self, db_session, admin, admin_ctx, grievances):
        _, assigned, _ = grievances
        result = GrievanceDashboardService(db_session).apply_action(
            action(admin, assigned, 'resolve', resolution='Driver warned'), admin_ctx, now=NOW + timedelta(hours=5),
        )

        assert result.data['updates']['status'] == 'resolved'
        stored = db_session.get(Grievance, assigned.id)
        assert stored.resolution == 'Driver warned'
        assert stored.actual_resolution_time == '5.00 hours'

    def test_resolve_twice_keeps_first_resolution(self, db_session, admin, admin_ctx, grievances):
        _, assigned, _ = grievances
        service = GrievanceDashboardService(db_session)
        service.apply_action(action(admin, assigned, 'resolve'), admin_ctx, now=NOW + timedelta(hours=5))

        again = service.apply_action(action(admin, assigned, 'resolve'), admin_ctx, now=NOW + timedelta(hours=30))

        assert again.error.code == ErrorCode.VALIDATION_ERROR
        assert again.message == 'Grievance is already resolved'
        stored = db_session.get(Grievance, assigned.id)
        assert stored.actual_resolution_time == '5.00 hours'
        assert stored.resolved_at == NOW + timedelta(hours=5)

    def test_set_deadline(self, db_session, admin, admin_ctx, grievances):
        _, assigned, _ = grievances
        result = GrievanceDashboardService(db_session).apply_action(
            action(admin, assigned, 'set_deadline', deadline='2025-02-01T10:00:00Z'), admin_ctx,
        )

        assert result.data['updates']['expected_resolution_date'] == '2025-02-01T10:00:00+00:00'

    @pytest.mark.parametrize('name,data', [
        ('update_priority', {'priority': 'critical'}),
        ('set_deadline', {'deadline': 'next week'}),
        ('add_note', {'note': '  '}),
        ('archive', {}),
    ])
    def test_invalid_actions(self, db_session, admin, admin_ctx, grievances, name, data):
        _, assigned, _ = grievances
        result = GrievanceDashboardService(db_session).apply_action(action(admin, assigned, name, **data), admin_ctx)
        assert result.error.code == ErrorCode.VALIDATION_ERROR

    def test_add_note_leaves_grievance_unchanged(self, db_session, admin, admin_ctx, grievances):
        _, assigned, _ = grievances
        before = db_session.get(Grievance, assigned.id).updated_at

        result = GrievanceDashboardService(db_session).apply_action(
            action(admin, assigned, 'add_note', note='Called the driver'), admin_ctx,
        )

        assert result.data['updates'] == {}
        assert db_session.get(Grievance, assigned.id).updated_at == before

    def test_only_the_assignee_may_act(self, db_session, admin, other_admin, grievances):
        _, assigned, _ = grievances
        result = GrievanceDashboardService(db_session).apply_action(
            action(other_admin, assigned, 'start_progress'), admin_context(other_admin),
        )
        assert result.error.code == ErrorCode.UNAUTHORIZED

    def test_elevated_admin_may_act_for_assignee(self, db_session, admin, super_admin, grievances):
        _, assigned, _ = grievances
        result = GrievanceDashboardService(db_session).apply_action(
            action(admin, assigned, 'update_priority', priority='low'), admin_context(super_admin),
        )
        assert result.data['updates']['priority'] == 'low'


class TestAnalytics:

    def test_overall_counts(self, db_session, admin, grievances):
        result = GrievanceAnalyticsService(db_session).get_analytics(now=NOW + timedelta(hours=3))

        overall = result.data['overall']
        assert overall['total'] == 3
        assert overall['open'] == 1
        assert overall['inProgress'] == 1
        assert overall['resolved'] == 1
        assert overall['unassigned'] == 2
        assert overall['urgent'] == 1
        assert overall['resolutionRate'] == pytest.approx(100 / 3)

        assert result.data['resolutionTime'] == {'average': 2.0, 'samples': 1}
        assert result.data['breakdown']['assignee'] == [
            {'name': admin.name, 'role': admin.role, 'total': 1, 'resolved': 0, 'pending': 1},
        ]
        assert result.data['trends']['daily'][-1] == {
            'date': NOW.date().isoformat(), 'created': 3, 'resolved': 1, 'pending': 2,
        }
        assert len(result.data['trends']['monthly']) == 12
        assert result.data['recentActivity']

    def test_assignee_filter(self, db_session, admin, grievances):
        result = GrievanceAnalyticsService(db_session).get_analytics(assigned_to=admin.id, now=NOW)
        assert result.data['overall']['total'] == 1

    def test_unassigned_filter(self, db_session, grievances):
        result = GrievanceAnalyticsService(db_session).get_analytics(unassigned=True, now=NOW)
        assert result.data['overall']['total'] == 2
        assert result.data['breakdown']['assignee'] == []

    def test_overdue_after_seventy_two_hours(self, db_session, grievances):
        result = GrievanceAnalyticsService(db_session).get_analytics(now=NOW + timedelta(hours=80))
        assert result.data['overall']['overdue'] == 2

    def test_inverted_date_range(self, db_session):
        result = GrievanceAnalyticsService(db_session).get_analytics(
            date_from=date(2025, 2, 1), date_to=date(2025, 1, 1),
        )
        assert result.error.code == ErrorCode.VALIDATION_ERROR
