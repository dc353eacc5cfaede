"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with savepoint isolation (rollback after each test)
- Fixed clock so booking windows and late-cancellation checks are deterministic
- Scheduling fixtures: session type, Monday window, patient
- HTTPX AsyncClient for public and staff endpoints
"""
import os
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Generator
from uuid import uuid4

# Settings are read at import time
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from clinic_api.core.clock import FixedClock
from clinic_api.core.deps import ADMIN_KEY_HEADER, get_clock, get_db
from clinic_api.db.base import Base
from clinic_api.db.enums import AppointmentStatus, DayOfWeek
from clinic_api.db.models import Appointment, AvailabilityWindow, Patient, SessionType
from clinic_api.db.session import SessionLocal
from clinic_api.main import app
from clinic_api.services import appointment_service, payment_service


# Sunday; the next day (2024-01-01) is a Monday
CLOCK_NOW = datetime(2023, 12, 31, 8, 0)
ADMIN_KEY = "test-admin-key"


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

test_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(test_engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINT works under pysqlite
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@event.listens_for(test_engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


Base.metadata.create_all(bind=test_engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session with savepoint for test isolation.

    Service code calls commit() and rollback(); both act on a SAVEPOINT
    inside the outer transaction, which is rolled back at the end.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def clock() -> FixedClock:
    return FixedClock(CLOCK_NOW)


# =============================================================================
# Scheduling Fixtures
# =============================================================================
# Fixtures commit so their rows survive a service-level rollback.

@pytest.fixture(scope="function")
def session_type(db: Session) -> SessionType:
    """50-minute individual session."""
    st = SessionType(
        id=uuid4(),
        name="Individual therapy",
        duration_minutes=50,
        price=Decimal("200.00"),
        is_active=True,
    )
    db.add(st)
    db.commit()
    return st


@pytest.fixture(scope="function")
def monday_window(db: Session) -> AvailabilityWindow:
    """Monday 08:00-12:00."""
    window = AvailabilityWindow(
        id=uuid4(),
        day_of_week=DayOfWeek.MONDAY.value,
        start_time=time(8, 0),
        end_time=time(12, 0),
        is_active=True,
    )
    db.add(window)
    db.commit()
    return window


@pytest.fixture(scope="function")
def patient(db: Session) -> Patient:
    p = Patient(
        id=uuid4(),
        full_name="Ana Souza",
        phone=f"55119{uuid4().int % 10**8:08d}",
        email="ana@example.com",
    )
    db.add(p)
    db.commit()
    return p


@pytest.fixture(scope="function")
def make_appointment(db: Session, patient: Patient, session_type: SessionType):
    """Insert appointments directly, bypassing booking rules."""
    def _make(
        start: datetime,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    ) -> Appointment:
        appt = Appointment(
            id=uuid4(),
            patient=patient,
            session_type=session_type,
            start_datetime=start,
            end_datetime=start + timedelta(minutes=session_type.duration_minutes),
            duration_minutes=session_type.duration_minutes,
            status=status.value,
            cancellation_token=appointment_service.generate_token(),
        )
        db.add(appt)
        payment_service.attach_unpaid_payment(db, appt)
        db.commit()
        return appt

    return _make


# =============================================================================
# HTTP Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def override_deps(db: Session, clock: FixedClock) -> Generator[None, None, None]:
    """Route requests through the test session and fixed clock."""
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(override_deps) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client for the public booking endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


@pytest.fixture(scope="function")
async def admin_client(override_deps) -> AsyncGenerator[AsyncClient, None]:
    """Client carrying the staff API key."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={ADMIN_KEY_HEADER: ADMIN_KEY},
    ) as c:
        yield c
