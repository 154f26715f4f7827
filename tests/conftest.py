"""
Transport Admin - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ.pop('DATABASE_URL', None)

from transport_admin.api import deps
from transport_admin.config.database import build_engine
from transport_admin.core.security import RequestContext, TokenManager, UserType
from transport_admin.db.init_db import drop_db, init_db
from transport_admin.main import create_app
from transport_admin.models import (
    AdminUser,
    GpsDevice,
    Route,
    Student,
    Vehicle,
)

NOW = datetime(2025, 1, 22, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """In-memory database shared by every connection of one test"""
    engine = build_engine('sqlite://', poolclass=StaticPool)
    init_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """One session per test, shared with the app under test"""
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def client(db_session):
    """Create test client with database override"""
    app = create_app(initialize_database=False)
    app.dependency_overrides[deps.get_db] = lambda: db_session

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# --- Seed data -----------------------------------------------------------------

@pytest.fixture
def student(db_session) -> Student:
    student = Student(student_name='Asha Raman', roll_number='CS21B001', email='asha@example.edu')
    db_session.add(student)
    db_session.commit()
    return student


@pytest.fixture
def other_student(db_session) -> Student:
    student = Student(student_name='Vikram Das', roll_number='ME21B014')
    db_session.add(student)
    db_session.commit()
    return student


def _admin(db_session, name, email, role='transport_admin'):
    admin = AdminUser(name=name, email=email, role=role, is_active=True)
    db_session.add(admin)
    db_session.commit()
    return admin


@pytest.fixture
def admin(db_session) -> AdminUser:
    return _admin(db_session, 'Priya Menon', 'priya@example.edu')


@pytest.fixture
def other_admin(db_session) -> AdminUser:
    return _admin(db_session, 'Karthik Iyer', 'karthik@example.edu')


@pytest.fixture
def super_admin(db_session) -> AdminUser:
    return _admin(db_session, 'Lakshmi Rao', 'lakshmi@example.edu', role='super_admin')


@pytest.fixture
def route(db_session) -> Route:
    route = Route(route_name='Tambaram - Campus', route_number='R12')
    db_session.add(route)
    db_session.commit()
    return route


@pytest.fixture
def device(db_session) -> GpsDevice:
    device = GpsDevice(
        device_id='GPS-001',
        device_name='BUS12',
        sim_number='+919800000001',
        notes='Managed by MERCYDA, vendor id 7781',
        status='active',
        is_active=True,
    )
    db_session.add(device)
    db_session.commit()
    return device


@pytest.fixture
def vehicle(db_session, device, route) -> Vehicle:
    vehicle = Vehicle(
        registration_number='TN09AB1234',
        vehicle_name='Bus 12',
        route_id=route.id,
        gps_device_id=device.id,
        live_tracking_enabled=True,
    )
    db_session.add(vehicle)
    db_session.commit()
    return vehicle


# --- Caller identity -----------------------------------------------------------

def admin_context(admin: AdminUser) -> RequestContext:
    return RequestContext(user_id=admin.id, user_type=UserType.ADMIN, role=admin.role, email=admin.email)


def student_context(student: Student) -> RequestContext:
    return RequestContext(user_id=student.id, user_type=UserType.STUDENT)


def bearer(subject: str, user_type: UserType, role=None, email=None) -> dict:
    token = TokenManager.create_token(subject, user_type, role=role, email=email)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_ctx(admin) -> RequestContext:
    return admin_context(admin)


@pytest.fixture
def admin_headers(admin) -> dict:
    """Generate authentication headers for a regular admin"""
    return bearer(admin.id, UserType.ADMIN, role=admin.role, email=admin.email)


@pytest.fixture
def super_admin_headers(super_admin) -> dict:
    return bearer(super_admin.id, UserType.ADMIN, role=super_admin.role, email=super_admin.email)


@pytest.fixture
def student_headers(student) -> dict:
    """Generate authentication headers for the seeded student"""
    return bearer(student.id, UserType.STUDENT)
