"""
Tests for repository queries: grievance filtering, searching and sorting,
and persistence error mapping
"""
from datetime import datetime, timedelta, timezone

import pytest

from transport_admin.core.exceptions import EntityAlreadyExistsError
from transport_admin.models import Grievance, Route
from transport_admin.repositories.base.base_repository import BaseRepository
from transport_admin.repositories.grievance import GrievanceRepository
from transport_admin.repositories.grievance.grievance_repository import date_range_start
from transport_admin.schemas.grievance.grievance_filters import SEARCH_FIELDS, GrievanceFilters

from tests.conftest import NOW


@pytest.fixture
def repository(db_session):
    return GrievanceRepository(db_session)


@pytest.fixture
def add_grievance(db_session, student):
    def add(subject, **columns):
        grievance = Grievance(
            student_id=student.id,
            category=columns.pop('category', 'transport'),
            subject=subject,
            description=columns.pop('description', 'Reported at the campus gate'),
            created_at=columns.pop('created_at', NOW),
            **columns,
        )
        db_session.add(grievance)
        db_session.commit()
        return grievance

    return add


def subjects(repository, now=NOW, **filters):
    items, total = repository.search(GrievanceFilters(**filters), 0, 50, now)
    assert total == len(items)
    return [g.subject for g in items]


class TestDateRangeStart:

    @pytest.mark.parametrize('bucket,expected', [
        ('today', datetime(2025, 5, 20, tzinfo=timezone.utc)),
        ('week', datetime(2025, 5, 13, 15, 30, tzinfo=timezone.utc)),
        ('month', datetime(2025, 5, 1, tzinfo=timezone.utc)),
        ('quarter', datetime(2025, 4, 1, tzinfo=timezone.utc)),
        ('all', None),
        (None, None),
    ])
    def test_bucket_starts(self, bucket, expected):
        now = datetime(2025, 5, 20, 15, 30, tzinfo=timezone.utc)
        assert date_range_start(bucket, now) == expected

    def test_date_range_filter(self, repository, add_grievance):
        now = datetime(2025, 5, 20, 15, 30, tzinfo=timezone.utc)
        add_grievance('This morning', created_at=now - timedelta(hours=3))
        add_grievance('Five days ago', created_at=now - timedelta(days=5))
        add_grievance('Early May', created_at=datetime(2025, 5, 2, tzinfo=timezone.utc))
        add_grievance('April', created_at=datetime(2025, 4, 10, tzinfo=timezone.utc))
        add_grievance('Last year', created_at=datetime(2024, 12, 30, tzinfo=timezone.utc))

        assert subjects(repository, now, date_range='today') == ['This morning']
        assert len(subjects(repository, now, date_range='week')) == 2
        assert len(subjects(repository, now, date_range='month')) == 3
        assert len(subjects(repository, now, date_range='quarter')) == 4
        assert len(subjects(repository, now, date_range='all')) == 5


class TestSearch:

    @pytest.mark.parametrize('field', SEARCH_FIELDS)
    def test_every_search_field_matches(self, repository, add_grievance, field):
        columns = {'description': 'Plain description'}
        columns[field] = 'Mentions Velachery depot'
        add_grievance('Matching', **columns)
        add_grievance('Other')

        assert subjects(repository, search='velachery') == ['Matching']

    def test_search_finds_nothing(self, repository, add_grievance):
        add_grievance('Bus late')
        assert subjects(repository, search='ticket') == []


class TestFilters:

    def test_unassigned(self, repository, add_grievance, admin):
        add_grievance('Assigned', assigned_to=admin.id)
        add_grievance('Waiting')

        assert subjects(repository, unassigned=True) == ['Waiting']
        assert subjects(repository, assigned_to=admin.id) == ['Assigned']

    def test_resolved_hidden_by_default(self, repository, add_grievance):
        add_grievance('Open one')
        add_grievance('Done', status='resolved')

        assert subjects(repository) == ['Open one']
        assert sorted(subjects(repository, include_resolved=True)) == ['Done', 'Open one']

    def test_tags_match_whole_members(self, repository, add_grievance):
        add_grievance('Timing', tags=['timing', 'route'])
        add_grievance('Partial', tags=['timings'])
        add_grievance('Untagged')

        assert subjects(repository, tags='timing') == ['Timing']

    def test_non_ascii_tags(self, repository, add_grievance):
        add_grievance('Tamil tag', tags=['பேருந்து', 'late'])
        add_grievance('Accented', tags=['café'])

        assert subjects(repository, tags='பேருந்து') == ['Tamil tag']
        assert subjects(repository, tags='café,other') == ['Accented']


class TestSorting:

    def test_sort_order(self, repository, add_grievance):
        add_grievance('Oldest', created_at=NOW - timedelta(days=2))
        add_grievance('Newest', created_at=NOW)
        add_grievance('Middle', created_at=NOW - timedelta(days=1))

        assert subjects(repository) == ['Newest', 'Middle', 'Oldest']
        assert subjects(repository, sort_order='asc') == ['Oldest', 'Middle', 'Newest']

    def test_sort_by_subject(self, repository, add_grievance):
        add_grievance('Bravo')
        add_grievance('Alpha')

        assert subjects(repository, sort_by='subject', sort_order='asc') == ['Alpha', 'Bravo']


class TestRepositoryErrors:

    def test_duplicate_is_entity_already_exists(self, db_session, route):
        repository = BaseRepository(Route, db_session)

        with pytest.raises(EntityAlreadyExistsError) as exc_info:
            repository.create(Route(route_name='Duplicate', route_number=route.route_number))

        assert exc_info.value.status_code == 409
        assert exc_info.value.details['table'] == 'routes'
        assert repository.count({'route_number': route.route_number}) == 1

    def test_missing_row_is_none(self, db_session):
        assert BaseRepository(Route, db_session).find_by_id('missing') is None
