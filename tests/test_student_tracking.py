"""
Tests for the student tracking view and student submissions
"""
from datetime import timedelta

import pytest

from transport_admin.models import Grievance
from transport_admin.schemas.grievance import (
    CommunicationCreate,
    GrievanceCreate,
    GrievanceUpdate,
    ResolveGrievanceRequest,
    StudentCommunicationRequest,
)
from transport_admin.services.base import ErrorCode
from transport_admin.services.grievance import (
    GrievanceCommunicationService,
    GrievanceService,
    StudentTrackingService,
)

from tests.conftest import NOW, admin_context, student_context


@pytest.fixture
def grievance(db_session, student, admin, other_admin, admin_ctx):
    """Grievance with one public message, one internal note and a private reassignment"""
    service = GrievanceService(db_session)
    grievance = service.create_grievance(
        GrievanceCreate(
            student_id=student.id,
            category='transport',
            subject='Bus overcrowded',
            description='Route R12 bus is overcrowded every morning.',
            assigned_to=admin.id,
            internal_notes='Check capacity report',
        ),
        admin_ctx,
        now=NOW,
    ).data

    messages = GrievanceCommunicationService(db_session)
    messages.create_message(
        grievance.id,
        CommunicationCreate(sender_id=admin.id, recipient_id=student.id, message='We are looking into it'),
        admin_ctx,
    )
    messages.create_message(
        grievance.id,
        CommunicationCreate(
            sender_id=admin.id, recipient_id=other_admin.id, message='Driver has prior complaints', is_internal=True,
        ),
        admin_ctx,
    )
    service.update_grievance(GrievanceUpdate(id=grievance.id, assigned_to=other_admin.id), admin_ctx)
    return grievance


@pytest.fixture
def tracking(db_session):
    return StudentTrackingService(db_session)


class TestTrackingView:

    def test_student_sees_only_public_entries(self, tracking, student, grievance):
        result = tracking.get_tracking(student.id, student_context(student), include_history=True, now=NOW)

        assert result.is_success
        entry = result.data['grievances'][0]
        assert [c['message'] for c in entry['communications']] == ['We are looking into it']
        timeline_types = {item['type'] for item in entry['activity_timeline']}
        assert 'grievance_created' in timeline_types
        assert 'grievance_reassigned' not in timeline_types
        assert 'communication_added' in timeline_types
        assert len([t for t in entry['activity_timeline'] if t['type'] == 'communication_added']) == 1

    def test_admin_only_fields_are_stripped(self, tracking, student, grievance):
        entry = tracking.get_tracking(student.id, student_context(student), now=NOW).data['grievances'][0]

        assert 'internal_notes' not in entry
        assert 'escalated_to' not in entry
        assert entry['activity_timeline'] == []
        assert entry['status_display'] == 'In Progress - Being Worked On'

    def test_statistics(self, tracking, student, grievance):
        data = tracking.get_tracking(student.id, student_context(student), now=NOW + timedelta(days=4)).data

        assert data['student_info']['id'] == student.id
        assert data['statistics']['total_grievances'] == 1
        assert data['statistics']['in_progress_grievances'] == 1
        assert data['statistics']['overdue_grievances'] == 1
        assert data['statistics']['satisfaction_rating'] is None

    def test_other_student_is_forbidden(self, tracking, student, other_student, grievance):
        result = tracking.get_tracking(student.id, student_context(other_student))
        assert result.error.code == ErrorCode.UNAUTHORIZED

    def test_admin_may_view_any_student(self, tracking, student, grievance, admin_ctx):
        assert tracking.get_tracking(student.id, admin_ctx).is_success

    def test_unknown_student(self, tracking, admin_ctx):
        assert tracking.get_tracking('missing', admin_ctx).error.code == ErrorCode.NOT_FOUND


class TestSubmissions:

    def _request(self, student, grievance, **overrides):
        payload = dict(studentId=student.id, grievanceId=grievance.id, type='feedback', message='Thanks')
        payload.update(overrides)
        return StudentCommunicationRequest(**payload)

    def test_rating_not_written_while_unresolved(self, db_session, tracking, student, grievance):
        result = tracking.submit(
            self._request(student, grievance, type='satisfaction_rating', rating=2),
            student_context(student),
        )

        assert result.is_success
        assert result.data['rating_recorded'] is False
        assert db_session.get(Grievance, grievance.id).satisfaction_rating is None

    def test_rating_written_once_resolved(self, db_session, tracking, student, grievance, other_admin):
        GrievanceService(db_session).resolve_grievance(
            grievance.id, ResolveGrievanceRequest(resolution='Extra bus added'), admin_context(other_admin),
        )

        result = tracking.submit(
            self._request(student, grievance, type='satisfaction_rating', rating=5, message='Much better'),
            student_context(student),
        )

        assert result.data['rating_recorded'] is True
        stored = db_session.get(Grievance, grievance.id)
        assert stored.satisfaction_rating == 5
        assert stored.satisfaction_feedback == 'Much better'

    def test_rating_required_for_satisfaction(self, tracking, student, grievance):
        result = tracking.submit(self._request(student, grievance, type='satisfaction_rating'), student_context(student))
        assert result.error.code == ErrorCode.VALIDATION_ERROR

    def test_message_is_visible_to_student(self, tracking, student, grievance):
        tracking.submit(self._request(student, grievance, type='update_request', message='Any news?'),
                        student_context(student))

        entry = tracking.get_tracking(student.id, student_context(student)).data['grievances'][0]
        assert 'Any news?' in [c['message'] for c in entry['communications']]

    def test_cannot_post_on_another_students_grievance(self, tracking, other_student, grievance):
        result = tracking.submit(self._request(other_student, grievance), student_context(other_student))
        assert result.error.code == ErrorCode.UNAUTHORIZED
