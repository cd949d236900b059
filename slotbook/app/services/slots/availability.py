# slotbook/app/services/slots/availability.py
"""
Availability filter: which grid instants can be booked right now.

For each candidate instant t (from the time grid):
1. blocked slot          → excluded
2. t <= now              → excluded (past)
3. today and t <= now + booking_delay → excluded (too soon)
4. occupied >= capacity  → excluded (full)

occupied = bookings whose date_time_utc equals t exactly and that
occupy capacity (see occupies_capacity). Pure and idempotent: the same
inputs always give the same slots.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..booking_status import BookingStatus
from ..errors import ConfigurationError, SlotUnavailable
from .calculator import day_bounds_utc, generate_time_grid, local_today, resolve_day, resolve_local_date
from .config import ProviderSchedule, get_booking_config, parse_utc_iso, schedule_from_provider, to_utc_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    """A bookable slot start. Derived on every query, never stored."""
    instant_utc: datetime
    is_booked: bool
    remaining_capacity: int


@dataclass(frozen=True)
class SlotState:
    """Every grid instant of a day as the provider sees it."""
    instant_utc: datetime
    is_blocked: bool
    is_past: bool
    booked_count: int
    remaining_capacity: int
    is_available: bool


def occupies_capacity(booking, now: datetime, pending_hold_minutes: int) -> bool:
    """
    Capacity-counting policy.

    Canceled never counts. Pending counts while it is younger than the
    pending hold (an abandoned payment stops blocking the slot). Everything
    else counts.
    """
    if booking.status == BookingStatus.CANCELED:
        return False
    if booking.status == BookingStatus.PENDING:
        created = parse_utc_iso(booking.created_at)
        return created > now - timedelta(minutes=pending_hold_minutes)
    return True


def count_occupancy(bookings, now: datetime, pending_hold_minutes: int) -> Counter:
    """Map canonical instant string → number of bookings occupying it."""
    counts: Counter = Counter()
    for booking in bookings:
        if occupies_capacity(booking, now, pending_hold_minutes):
            counts[to_utc_iso(parse_utc_iso(booking.date_time_utc))] += 1
    return counts


def filter_available_slots(
    candidates: list[datetime],
    schedule: ProviderSchedule,
    day: date | datetime,
    now: datetime,
    bookings: list,
    pending_hold_minutes: int | None = None,
) -> list[Slot]:
    """
    Keep the bookable candidates, annotated with remaining capacity.

    Args:
        candidates: Output of generate_time_grid for the same day
        schedule: Provider schedule
        day: The provider-local day the candidates belong to
        now: Current instant
        bookings: Bookings on that day (any status; policy applied here)
        pending_hold_minutes: Override of the configured pending hold

    Returns:
        Chronological list of Slot.
    """
    if pending_hold_minutes is None:
        pending_hold_minutes = get_booking_config().pending_hold_minutes
    now = _aware(now)

    counts = count_occupancy(bookings, now, pending_hold_minutes)
    is_today = resolve_day(day, schedule.tz) == local_today(now, schedule.tz)
    capacity = schedule.capacity

    slots = []
    for instant in candidates:
        key = to_utc_iso(instant)
        if _exclusion_reason(instant, key, schedule, now, is_today, counts[key]) is not None:
            continue
        occupied = counts[key]
        slots.append(Slot(
            instant_utc=instant,
            is_booked=occupied > 0,
            remaining_capacity=capacity - occupied,
        ))

    return slots


def check_instant(
    instant: datetime,
    schedule: ProviderSchedule,
    now: datetime,
    bookings: list,
    pending_hold_minutes: int | None = None,
) -> Slot:
    """
    Run the filter for one instant.

    Raises:
        SlotUnavailable: with the reason the instant is not bookable.
    """
    if pending_hold_minutes is None:
        pending_hold_minutes = get_booking_config().pending_hold_minutes
    instant = _aware(instant).astimezone(timezone.utc)
    now = _aware(now)

    local_day = resolve_local_date(instant, schedule.tz)
    key = to_utc_iso(instant)

    if local_day.isoformat() in schedule.blocked_dates:
        raise SlotUnavailable(instant, SlotUnavailable.BLOCKED)
    if key not in {to_utc_iso(t) for t in generate_time_grid(local_day, schedule)}:
        raise SlotUnavailable(instant, SlotUnavailable.OUTSIDE_SCHEDULE)

    counts = count_occupancy(bookings, now, pending_hold_minutes)
    is_today = local_day == local_today(now, schedule.tz)
    reason = _exclusion_reason(instant, key, schedule, now, is_today, counts[key])
    if reason is not None:
        raise SlotUnavailable(instant, reason)

    return Slot(
        instant_utc=instant,
        is_booked=counts[key] > 0,
        remaining_capacity=schedule.capacity - counts[key],
    )


def describe_day(
    day: date | datetime,
    schedule: ProviderSchedule,
    now: datetime,
    bookings: list,
    pending_hold_minutes: int | None = None,
) -> list[SlotState]:
    """Every grid instant with blocked / past / booked flags (slot management view)."""
    if pending_hold_minutes is None:
        pending_hold_minutes = get_booking_config().pending_hold_minutes
    now = _aware(now)

    counts = count_occupancy(bookings, now, pending_hold_minutes)
    is_today = resolve_day(day, schedule.tz) == local_today(now, schedule.tz)
    capacity = schedule.capacity

    states = []
    for instant in generate_time_grid(day, schedule):
        key = to_utc_iso(instant)
        reason = _exclusion_reason(instant, key, schedule, now, is_today, counts[key])
        states.append(SlotState(
            instant_utc=instant,
            is_blocked=key in schedule.blocked_slots,
            is_past=_is_too_soon(instant, schedule, now, is_today),
            booked_count=counts[key],
            remaining_capacity=max(capacity - counts[key], 0),
            is_available=reason is None,
        ))
    return states


def _exclusion_reason(
    instant: datetime,
    key: str,
    schedule: ProviderSchedule,
    now: datetime,
    is_today: bool,
    occupied: int,
) -> str | None:
    if key in schedule.blocked_slots:
        return SlotUnavailable.BLOCKED
    if _is_too_soon(instant, schedule, now, is_today):
        return SlotUnavailable.TOO_SOON
    if occupied >= schedule.capacity:
        return SlotUnavailable.FULL
    return None


def _is_too_soon(instant: datetime, schedule: ProviderSchedule, now: datetime, is_today: bool) -> bool:
    if instant <= now:
        return True
    # Booking delay applies to the provider's current day only
    return is_today and instant <= now + timedelta(hours=schedule.booking_delay_hours)


def _aware(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


# ── Queries ──────────────────────────────────────────────────────────────


def list_available_slots(
    db: Session,
    username: str,
    day: date | datetime,
    now: datetime | None = None,
) -> list[Slot]:
    """
    Available slots of a provider for a day.

    A broken schedule degrades to an empty list; a missing provider raises NotFound.
    """
    from ..booking_store import get_bookings_for_day, get_provider

    now = now or datetime.now(timezone.utc)
    provider = get_provider(db, username)

    try:
        schedule = schedule_from_provider(provider)
    except ConfigurationError as e:
        logger.warning(f"Schedule of provider {username} is misconfigured, no slots offered: {e}")
        return []

    local_day = resolve_day(day, schedule.tz)
    candidates = generate_time_grid(local_day, schedule)
    if not candidates:
        return []

    bookings = get_bookings_for_day(db, provider.id, local_day, schedule.tz)
    return filter_available_slots(candidates, schedule, local_day, now, bookings)


def list_available_days(
    db: Session,
    username: str,
    start_date: date | None = None,
    end_date: date | None = None,
    now: datetime | None = None,
) -> list[tuple[date, int]]:
    """
    Calendar of (date, open_slots_count), clamped to [today, today + horizon].

    Returns an empty calendar for a misconfigured schedule.
    """
    from ..booking_store import get_bookings_between, get_provider

    config = get_booking_config()
    now = now or datetime.now(timezone.utc)
    provider = get_provider(db, username)

    try:
        schedule = schedule_from_provider(provider)
    except ConfigurationError as e:
        logger.warning(f"Schedule of provider {username} is misconfigured, empty calendar: {e}")
        return []

    today = local_today(now, schedule.tz)
    max_date = today + timedelta(days=config.horizon_days)
    start_date = max(start_date or today, today)
    end_date = min(end_date or max_date, max_date)
    if start_date > max_date:
        return []
    if end_date < start_date:
        end_date = start_date

    range_start, _ = day_bounds_utc(start_date, schedule.tz)
    _, range_end = day_bounds_utc(end_date, schedule.tz)
    bookings = get_bookings_between(db, provider.id, range_start, range_end)

    by_day: dict[date, list] = {}
    for booking in bookings:
        booking_day = resolve_local_date(parse_utc_iso(booking.date_time_utc), schedule.tz)
        by_day.setdefault(booking_day, []).append(booking)

    days = []
    current = start_date
    while current <= end_date:
        candidates = generate_time_grid(current, schedule)
        slots = filter_available_slots(
            candidates, schedule, current, now, by_day.get(current, []), config.pending_hold_minutes
        )
        days.append((current, len(slots)))
        current += timedelta(days=1)

    return days
