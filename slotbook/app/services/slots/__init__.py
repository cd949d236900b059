# slotbook/app/services/slots/__init__.py
"""
Availability engine.

Time grid: candidate slot starts of a provider-local day (calculator)
Filter: blocked / too soon / full candidates removed (availability)
"""

from .config import BookingConfig, ProviderSchedule, get_booking_config, schedule_from_provider
from .calculator import generate_time_grid, resolve_local_date
from .availability import (
    Slot,
    SlotState,
    check_instant,
    describe_day,
    filter_available_slots,
    list_available_days,
    list_available_slots,
)

__all__ = [
    "BookingConfig",
    "ProviderSchedule",
    "get_booking_config",
    "schedule_from_provider",
    "generate_time_grid",
    "resolve_local_date",
    "Slot",
    "SlotState",
    "check_instant",
    "describe_day",
    "filter_available_slots",
    "list_available_days",
    "list_available_slots",
]
