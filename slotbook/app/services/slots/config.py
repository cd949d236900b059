# slotbook/app/services/slots/config.py
"""
Provider schedule and booking engine configuration.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...config import settings
from ..errors import ConfigurationError


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class BookingConfig:
    """
    Process-wide settings of the booking engine.

    Attributes:
        horizon_days: How many days ahead the calendar shows
        pending_hold_minutes: How long a Pending booking reserves its slot
        commit_attempts: Retries when a concurrent writer takes the same ordinal
    """
    horizon_days: int = 60
    pending_hold_minutes: int = 15
    commit_attempts: int = 3

    def __post_init__(self):
        if self.pending_hold_minutes < 0:
            raise ValueError(f"pending_hold_minutes must be >= 0, got {self.pending_hold_minutes}")
        if self.commit_attempts < 1:
            raise ValueError(f"commit_attempts must be >= 1, got {self.commit_attempts}")


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton, read from settings)."""
    return BookingConfig(
        horizon_days=settings.horizon_days,
        pending_hold_minutes=settings.pending_hold_minutes,
        commit_attempts=settings.commit_attempts,
    )


@dataclass(frozen=True)
class ProviderSchedule:
    """
    The part of provider settings that drives slot availability.

    working_hours maps a weekday name to {"start": "HH:MM", "end": "HH:MM"}
    in the provider's timezone, or to None for a day off.
    """
    timezone: str = "UTC"
    working_hours: dict = field(default_factory=dict)
    slot_duration_minutes: int = 30
    break_minutes: int = 0
    booking_delay_hours: float = 0
    blocked_dates: frozenset = frozenset()
    blocked_slots: frozenset = frozenset()
    multiple_bookings_per_slot: bool = False
    bookings_per_slot_capacity: int = 1

    def __post_init__(self):
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigurationError(f"Unknown timezone: {self.timezone!r}")

        if self.slot_duration_minutes < 1:
            raise ConfigurationError("Slot duration must be at least 1 minute")
        if self.break_minutes < 0:
            raise ConfigurationError("Break time cannot be negative")
        if self.step_minutes < 1:
            raise ConfigurationError("Slot duration plus break must be at least 1 minute")
        if self.booking_delay_hours < 0:
            raise ConfigurationError("Booking delay cannot be negative")
        if self.multiple_bookings_per_slot and self.bookings_per_slot_capacity < 1:
            raise ConfigurationError("Bookings per slot must be at least 1")

        hours = {}
        for day, window in (self.working_hours or {}).items():
            name = str(day).strip().lower()
            if name not in WEEKDAYS:
                raise ConfigurationError(f"Unknown weekday: {day!r}")
            if window is None:
                hours[name] = None
                continue
            start = window.get("start") if isinstance(window, dict) else None
            end = window.get("end") if isinstance(window, dict) else None
            if not (start and end and _TIME_RE.match(start) and _TIME_RE.match(end)):
                raise ConfigurationError(f"Working hours for {name} must be HH:MM start/end")
            hours[name] = {"start": start, "end": end}

        object.__setattr__(self, "working_hours", hours)
        object.__setattr__(self, "blocked_dates", frozenset(self.blocked_dates))
        object.__setattr__(
            self, "blocked_slots", frozenset(to_utc_iso(parse_utc_iso(s)) for s in self.blocked_slots)
        )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def step_minutes(self) -> int:
        return self.slot_duration_minutes + self.break_minutes

    @property
    def capacity(self) -> int:
        return self.bookings_per_slot_capacity if self.multiple_bookings_per_slot else 1

    def hours_for(self, weekday: str) -> dict | None:
        return self.working_hours.get(weekday)


def schedule_from_provider(provider) -> ProviderSchedule:
    """Build a ProviderSchedule from a stored provider row."""
    try:
        working_hours = json.loads(provider.working_hours) if provider.working_hours else {}
        blocked_dates = json.loads(provider.blocked_dates) if provider.blocked_dates else []
        blocked_slots = json.loads(provider.blocked_slots) if provider.blocked_slots else []
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Stored settings of {provider.username} are not valid JSON: {e}")

    try:
        return ProviderSchedule(
            timezone=provider.timezone or "UTC",
            working_hours=working_hours,
            slot_duration_minutes=provider.slot_duration,
            break_minutes=provider.break_time or 0,
            booking_delay_hours=provider.booking_delay or 0,
            blocked_dates=blocked_dates,
            blocked_slots=blocked_slots,
            multiple_bookings_per_slot=bool(provider.multiple_bookings_per_slot),
            bookings_per_slot_capacity=provider.bookings_per_slot or 1,
        )
    except ValueError as e:
        # Unparseable blocked slot instant
        raise ConfigurationError(str(e))


def validate_working_hours(working_hours: dict) -> None:
    """
    Stricter check used when a provider saves settings.

    The grid generator tolerates start >= end (empty day); saving it is refused.
    """
    for day, window in working_hours.items():
        if window is None:
            continue
        if time_str_to_minutes(window["start"]) >= time_str_to_minutes(window["end"]):
            raise ConfigurationError(f"Working hours for {day}: start must be before end")


# ── Helpers ──────────────────────────────────────────────────────────────


def is_date_str(value: str) -> bool:
    """Check a "yyyy-MM-dd" string that is also a real calendar date."""
    if not _DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hour, minute = value.split(":")
    return int(hour) * 60 + int(minute)


def to_utc_iso(instant: datetime) -> str:
    """
    Canonical storage form of an instant: "2026-01-05T09:00:00.000Z".

    Naive datetimes are taken as UTC. Strings sort chronologically.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    instant = instant.astimezone(timezone.utc)
    return instant.strftime("%Y-%m-%dT%H:%M:%S.") + f"{instant.microsecond // 1000:03d}Z"


def parse_utc_iso(value: str) -> datetime:
    """Parse an ISO-8601 instant into an aware UTC datetime."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    instant = datetime.fromisoformat(value)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)
