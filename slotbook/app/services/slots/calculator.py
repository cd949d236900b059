# slotbook/app/services/slots/calculator.py
"""
Time grid: candidate slot starts for one provider-local day.

Produces UTC instants:
  start, start + step, ... while < end
where step = slot_duration + break and start/end are the provider's
working hours for that weekday, resolved in the provider's timezone.

Contains:
✓ working_hours of provider (weekday resolved in provider timezone)
✓ blocked_dates

Does NOT contain:
✗ Blocked slots, booking delay (Availability Filter)
✗ Bookings (Availability Filter)

All instant <-> provider wall-clock conversions live in this module.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from .config import WEEKDAYS, ProviderSchedule, time_str_to_minutes


def generate_time_grid(day: date | datetime, schedule: ProviderSchedule) -> list[datetime]:
    """
    Candidate slot starts for a day.

    Args:
        day: Provider-local calendar date, or an instant whose provider-local
             date is used.
        schedule: Provider schedule.

    Returns:
        Chronological list of aware UTC datetimes. Empty list = day off.
    """
    local_day = resolve_day(day, schedule.tz)

    # Step 1: Day off or blocked day
    if local_day.isoformat() in schedule.blocked_dates:
        return []

    hours = schedule.hours_for(weekday_name(local_day))
    if not hours:
        return []

    # Step 2: Working window as absolute instants
    start = local_time_to_utc(local_day, hours["start"], schedule.tz)
    end = local_time_to_utc(local_day, hours["end"], schedule.tz)
    if start >= end:
        return []

    # Step 3: Walk the grid; a trailing slot may run past the end of the window
    step = timedelta(minutes=schedule.step_minutes)
    slots: list[datetime] = []

    current = start
    while current < end:
        slots.append(current)
        current += step

    return slots


# ── Timezone helpers ─────────────────────────────────────────────────────


def resolve_day(day: date | datetime, tz: ZoneInfo) -> date:
    """Provider-local calendar date for a date or an instant."""
    if isinstance(day, datetime):
        return resolve_local_date(day, tz)
    return day


def resolve_local_date(instant: datetime, tz: ZoneInfo) -> date:
    """Provider-local calendar date containing a UTC instant."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz).date()


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def local_time_to_utc(day: date, time_str: str, tz: ZoneInfo) -> datetime:
    """Provider wall-clock "HH:MM" on a date as an aware UTC datetime."""
    minutes = time_str_to_minutes(time_str)
    local = datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=tz)
    return local.astimezone(timezone.utc)


def day_bounds_utc(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """
    UTC range [start, end) covering the provider-local day.

    Built from local midnights, so DST days are 23 or 25 hours long.
    """
    start = datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz).astimezone(timezone.utc)
    return start, end


def local_today(now: datetime, tz: ZoneInfo) -> date:
    return resolve_local_date(now, tz)
