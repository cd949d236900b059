# slotbook/app/services/errors.py
"""
Booking engine errors.

ConfigurationError: provider schedule is unusable (fatal, not retryable)
SlotUnavailable: instant cannot be booked right now (retryable)
NotFound: provider or booking does not exist (fatal precondition)
BookingStateError: booking status does not allow the operation
"""

from datetime import datetime


class BookingError(Exception):
    """Base class for booking engine errors."""


class ConfigurationError(BookingError):
    pass


class SlotUnavailable(BookingError):
    """The chosen instant is blocked, too soon, outside the schedule or full."""

    BLOCKED = "blocked"
    TOO_SOON = "too_soon"
    FULL = "full"
    OUTSIDE_SCHEDULE = "outside_schedule"

    def __init__(self, instant: datetime, reason: str):
        self.instant = instant
        self.reason = reason
        super().__init__(f"Slot {instant.isoformat()} is unavailable ({reason})")


class NotFound(BookingError):
    pass


class BookingStateError(BookingError):
    pass
