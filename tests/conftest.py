"""Shared test fixtures and helpers."""

import json
import os
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PENDING_EXPIRY_ENABLED", "false")

from slotbook.app.database import get_db, make_engine  # noqa: E402
from slotbook.app.main import app  # noqa: E402
from slotbook.app.models import Base, Bookings, Providers  # noqa: E402
from slotbook.app.services import events  # noqa: E402
from slotbook.app.services.slots.config import to_utc_iso  # noqa: E402

WEEKDAY_HOURS = {
    "monday": {"start": "09:00", "end": "17:00"},
    "tuesday": {"start": "09:00", "end": "17:00"},
    "wednesday": {"start": "09:00", "end": "17:00"},
    "thursday": {"start": "09:00", "end": "17:00"},
    "friday": {"start": "09:00", "end": "17:00"},
    "saturday": None,
    "sunday": None,
}


class RecordingRedis:
    """Stands in for the Redis client: keeps pushed events in memory."""

    def __init__(self):
        self.lists: dict[str, list[str]] = {}

    def rpush(self, key, *values):
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    def ping(self):
        return True

    def events(self, key: str = events.EVENTS_QUEUE) -> list[dict]:
        return [json.loads(v) for v in self.lists.get(key, [])]


@pytest.fixture(autouse=True)
def redis_events(monkeypatch):
    fake = RecordingRedis()
    monkeypatch.setattr(events, "redis_client", fake)
    return fake


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'slotbook-test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_provider(db, username: str = "acme", **overrides) -> Providers:
    """Insert a provider; schedule fields take the names of the provider columns."""
    values = {
        "username": username,
        "name": "Acme Studio",
        "email": f"{username}@example.com",
        "timezone": "UTC",
        "working_hours": WEEKDAY_HOURS,
        "slot_duration": 30,
        "break_time": 0,
        "booking_delay": 0,
        "multiple_bookings_per_slot": 0,
        "bookings_per_slot": 1,
        "blocked_dates": [],
        "blocked_slots": [],
        "created_at": "2026-01-01T00:00:00.000Z",
        "updated_at": "2026-01-01T00:00:00.000Z",
    }
    values.update(overrides)
    for field in ("working_hours", "blocked_dates", "blocked_slots"):
        if not isinstance(values[field], str):
            values[field] = json.dumps(values[field])
    values["multiple_bookings_per_slot"] = int(bool(values["multiple_bookings_per_slot"]))

    provider = Providers(**values)
    db.add(provider)
    db.commit()
    db.refresh(provider)
    return provider


def make_booking(
    db,
    provider: Providers,
    instant: datetime,
    status: str = "Upcoming",
    slot_ordinal: int | None = 0,
    created_at: datetime | None = None,
) -> Bookings:
    """Insert a booking row directly, bypassing the commit protocol."""
    created = to_utc_iso(created_at or datetime.now(timezone.utc))
    booking = Bookings(
        provider_id=provider.id,
        customer_name="Jane Doe",
        customer_email="jane@example.com",
        customer_phone="+15550100",
        service_type="Online",
        date_time_utc=to_utc_iso(instant),
        status=status,
        slot_ordinal=slot_ordinal,
        created_at=created,
        updated_at=created,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def next_weekday(weekday: int, min_days_ahead: int = 7) -> date:
    """A date at least min_days_ahead from today falling on weekday (0 = Monday)."""
    day = date.today() + timedelta(days=min_days_ahead)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


def utc(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


BOOKING_DETAILS = {
    "customer_name": "Jane Doe",
    "customer_email": "jane@example.com",
    "customer_phone": "+15550100",
    "service_type": "Online",
}
