# slotbook/app/services/booking_status.py

from datetime import datetime, timezone
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "Pending"
    UPCOMING = "Upcoming"
    COMPLETED = "Completed"
    CANCELED = "Canceled"
    NOT_COMPLETED = "Not Completed"


# Statuses a booking can be moved to another instant from
RESCHEDULABLE = {BookingStatus.PENDING, BookingStatus.UPCOMING}


def effective_status(booking, now: datetime | None = None) -> str:
    """
    Status as shown to the provider.

    An Upcoming booking whose time has passed without being marked
    Completed reads as Not Completed. Nothing is written back.
    """
    from .slots.config import parse_utc_iso

    now = now or datetime.now(timezone.utc)
    if booking.status == BookingStatus.UPCOMING and parse_utc_iso(booking.date_time_utc) < now:
        return BookingStatus.NOT_COMPLETED.value
    return booking.status
