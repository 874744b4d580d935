"""Shared fixtures: a throwaway SQLite database per test, a seeded business
in America/Bogota and a clock pinned to Sunday 2030-01-06 10:00 local."""
import os

# Must be set before booking_api.config.database creates its module engine
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BOOKING_LOCK_BACKEND", "memory")

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from booking_api.api.dependencies import get_booking_locks, get_clock
from booking_api.config.database import build_engine, get_db
from booking_api.core.locks import booking_scope, InProcessLockProvider
from booking_api.models import (
    Appointment,
    Base,
    Block,
    Business,
    BusinessHours,
    Resource,
    Service,
)
from booking_api.services.appointment.appointment_service import AppointmentService

BOGOTA = ZoneInfo("America/Bogota")

SUNDAY = date(2030, 1, 6)
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
NEXT_SUNDAY = date(2030, 1, 13)

# Sunday 10:00 in Bogota (UTC-5, no DST)
NOW = datetime(2030, 1, 6, 15, 0, tzinfo=timezone.utc)

CUSTOMER_PHONE = "+573001112233"


def local(day: date, hour: int, minute: int = 0) -> datetime:
    """Bogota wall-clock time as an aware UTC instant"""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=BOGOTA).astimezone(timezone.utc)


def local_iso(day: date, hour: int, minute: int = 0) -> str:
    """Naive ISO string, interpreted as business-local by the API"""
    return f"{day.isoformat()}T{hour:02d}:{minute:02d}:00"


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set_local(self, day: date, hour: int, minute: int = 0):
        self.now = local(day, hour, minute)

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def locks():
    return InProcessLockProvider(wait_seconds=5)


@pytest.fixture
def business(db):
    """Open Monday-Saturday 09:00-18:00, closed Sunday"""
    business = Business(
        name="Barberia Centro",
        slug="barberia-centro",
        contact_phone="+576015550000",
        timezone="America/Bogota",
        cancellation_hours=24,
        reschedule_limit=1,
        allow_same_day=True,
    )
    business.hours = [
        BusinessHours(day_of_week=day, open_time="09:00", close_time="18:00")
        for day in range(1, 7)
    ]
    db.add(business)
    db.commit()
    db.refresh(business)
    return business


@pytest.fixture
def resource(db, business):
    r1 = Resource(business_id=business.id, name="Ana")
    db.add(r1)
    db.commit()
    db.refresh(r1)
    return r1


@pytest.fixture
def make_resource(db, business):
    def _make(name: str, is_active: bool = True) -> Resource:
        r = Resource(business_id=business.id, name=name, is_active=is_active)
        db.add(r)
        db.commit()
        db.refresh(r)
        return r

    return _make


@pytest.fixture
def make_service(db, business):
    def _make(name="Corte", duration_minutes=30, allowed=(), is_active=True) -> Service:
        service = Service(
            business_id=business.id,
            name=name,
            duration_minutes=duration_minutes,
            is_active=is_active,
        )
        service.allowed_resources = list(allowed)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    return _make


@pytest.fixture
def service(make_service):
    """30 minutes, any resource"""
    return make_service()


@pytest.fixture
def add_appointment(db, business):
    """Insert an appointment row directly, bypassing the lifecycle checks"""
    def _add(service, resource, start_utc, status="booked", phone=CUSTOMER_PHONE, name="Cliente"):
        resource_id = resource.id if resource is not None else None
        appointment = Appointment(
            business_id=business.id,
            service_id=service.id,
            resource_id=resource_id,
            booking_scope=booking_scope(resource_id),
            customer_name=name,
            customer_phone=phone,
            start_time=start_utc,
            end_time=start_utc + timedelta(minutes=service.duration_minutes),
            status=status,
            reminder_sent_hours=[],
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _add


@pytest.fixture
def add_block(db, business):
    def _add(start_utc, end_utc, resource=None, reason=None):
        block = Block(
            business_id=business.id,
            resource_id=resource.id if resource is not None else None,
            start_time=start_utc,
            end_time=end_utc,
            reason=reason,
        )
        db.add(block)
        db.commit()
        db.refresh(block)
        return block

    return _add


@pytest.fixture
def appointments(db, locks, clock):
    return AppointmentService(db, lock_provider=locks, clock=clock)


@pytest.fixture
def client(session_factory, clock, locks):
    from booking_api.main import create_app

    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_booking_locks] = lambda: locks
    return TestClient(app)
