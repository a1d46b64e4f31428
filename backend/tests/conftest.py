# backend/tests/conftest.py
"""
Shared pytest fixtures for the EV booking service.

Every test gets its own in-memory SQLite database and a frozen clock, so
horizon, cutoff and QR grace checks are deterministic. The frozen instant is
in the future so signed QR tokens are never rejected for real-time reasons.
"""

import os
import sys

# Set test configuration BEFORE any evbooking imports
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["DEFAULT_FACILITY_TIMEZONE"] = "Asia/Colombo"

# Add the backend directory to Python path so imports work
backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterator, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from evbooking.core.enums import ActorRole
from evbooking.database import Base
import evbooking.models  # noqa: F401  (registers tables)
from evbooking.models.station import Station, StationSchedule
from evbooking.principal import ActorPrincipal
from evbooking.services.booking_rules import BookingPolicy, QrPolicy
from evbooking.services.booking_service import BookingService

FACILITY_ZONE = "Asia/Colombo"  # UTC+05:30, no DST
SIGNING_KEY = "test-qr-signing-key-0123456789abcdef"

# 2030-03-10 05:30 local in Colombo
NOW = datetime(2030, 3, 10, 0, 0, tzinfo=timezone.utc)
TODAY = date(2030, 3, 10)
TOMORROW = date(2030, 3, 11)

STATION_ID = "STATION-A"
OTHER_STATION_ID = "STATION-B"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


def local(day: date, hour: int, minute: int = 0) -> datetime:
    """Naive facility wall-clock time."""
    return datetime(day.year, day.month, day.day, hour, minute)


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_station(db: Session) -> Callable[..., Station]:
    def _make(
        station_id: str = STATION_ID,
        total_slots: int = 4,
        time_zone: Optional[str] = None,
        is_active: bool = True,
    ) -> Station:
        station = Station(
            id=station_id,
            name=f"Charger {station_id}",
            total_slots=total_slots,
            time_zone=time_zone,
            is_active=is_active,
        )
        db.add(station)
        db.commit()
        return station

    return _make


@pytest.fixture
def make_schedule(db: Session) -> Callable[..., StationSchedule]:
    def _make(
        station_id: str = STATION_ID,
        schedule_date: date = TODAY,
        open_minutes: int = 360,
        close_minutes: int = 1320,
        max_concurrent: int = 2,
    ) -> StationSchedule:
        schedule = StationSchedule(
            station_id=station_id,
            schedule_date=schedule_date,
            open_minutes=open_minutes,
            close_minutes=close_minutes,
            max_concurrent=max_concurrent,
        )
        db.add(schedule)
        db.commit()
        return schedule

    return _make


@pytest.fixture
def station(make_station, make_schedule) -> Station:
    """Active station open 06:00-22:00 today and tomorrow, two at a time."""
    station = make_station()
    make_schedule(schedule_date=TODAY)
    make_schedule(schedule_date=TOMORROW)
    return station


# ============================================================================
# Policies, clock and services
# ============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def booking_policy() -> BookingPolicy:
    return BookingPolicy(horizon_days=7, cutoff_hours=12, default_time_zone=FACILITY_ZONE)


@pytest.fixture
def qr_policy() -> QrPolicy:
    return QrPolicy(signing_key=SIGNING_KEY)


@pytest.fixture
def booking_service(db, booking_policy, qr_policy, clock) -> BookingService:
    return BookingService(db, policy=booking_policy, qr_policy=qr_policy, clock=clock)


# ============================================================================
# Actors
# ============================================================================


@pytest.fixture
def owner() -> ActorPrincipal:
    return ActorPrincipal(actor_id="199012345678", role=ActorRole.OWNER)


@pytest.fixture
def other_owner() -> ActorPrincipal:
    return ActorPrincipal(actor_id="198877665544", role=ActorRole.OWNER)


@pytest.fixture
def operator() -> ActorPrincipal:
    return ActorPrincipal(
        actor_id="op-1", role=ActorRole.OPERATOR, station_ids=frozenset({STATION_ID})
    )


@pytest.fixture
def foreign_operator() -> ActorPrincipal:
    return ActorPrincipal(
        actor_id="op-2", role=ActorRole.OPERATOR, station_ids=frozenset({OTHER_STATION_ID})
    )


@pytest.fixture
def backoffice() -> ActorPrincipal:
    return ActorPrincipal(actor_id="bo-1", role=ActorRole.BACKOFFICE)
