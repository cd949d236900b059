"""
Pydantic schemas for slots API.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class SlotRead(BaseModel):
    """A bookable slot start."""
    instant_utc: datetime
    is_booked: bool
    remaining_capacity: int

    model_config = {"from_attributes": True}


class SlotsDayResponse(BaseModel):
    """Available slots of a provider for one local day."""
    username: str
    date: date
    timezone: str
    slots: list[SlotRead]


class SlotsDayStatus(BaseModel):
    """Status of a single day in calendar."""
    date: date
    has_slots: bool
    open_slots_count: int = 0


class SlotsCalendarResponse(BaseModel):
    """Response with calendar of available days (dates are None when it is empty)."""
    username: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days: list[SlotsDayStatus]

    # Metadata
    horizon_days: int


class SlotStateRead(BaseModel):
    """One grid instant in the slot management view."""
    instant_utc: datetime
    is_blocked: bool
    is_past: bool
    booked_count: int
    remaining_capacity: int
    is_available: bool

    model_config = {"from_attributes": True}


class SlotsGridResponse(BaseModel):
    """Every grid instant of a day, bookable or not."""
    username: str
    date: date
    slots: list[SlotStateRead]
    total_slots: int


class BlockedSlotsUpdate(BaseModel):
    slots: list[datetime] = Field(min_length=1, description="Slot starts, ISO-8601 instants")


class BlockedDatesUpdate(BaseModel):
    dates: list[str] = Field(min_length=1, description="Provider-local dates, yyyy-MM-dd")


class BlockedSlotsResponse(BaseModel):
    username: str
    blocked_slots: list[str]


class BlockedDatesResponse(BaseModel):
    username: str
    blocked_dates: list[str]
