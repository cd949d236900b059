# slotbook/app/routers/slots.py
"""
Slots API endpoints.

GET /providers/{username}/slots/day      - Bookable slots of a day (booking form, reschedule dialog)
GET /providers/{username}/slots/calendar - Days with open slots
GET /providers/{username}/slots/grid     - Every grid slot with flags (slot management)
POST/DELETE .../slots/blocked, .../dates/blocked - Provider exclusions
"""

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.slots import (
    BlockedDatesResponse,
    BlockedDatesUpdate,
    BlockedSlotsResponse,
    BlockedSlotsUpdate,
    SlotRead,
    SlotsCalendarResponse,
    SlotsDayResponse,
    SlotsDayStatus,
    SlotsGridResponse,
    SlotStateRead,
)
from ..services import blocking
from ..services.booking_store import get_bookings_for_day, get_provider, get_provider_schedule
from ..services.slots import describe_day, get_booking_config, list_available_days, list_available_slots


router = APIRouter(prefix="/providers/{username}", tags=["slots"])


@router.get("/slots/day", response_model=SlotsDayResponse)
def get_slots_day(
    username: str,
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    """Bookable slots for a provider-local day."""
    provider = get_provider(db, username)
    slots = list_available_slots(db, username, target_date)

    return SlotsDayResponse(
        username=username,
        date=target_date,
        timezone=provider.timezone,
        slots=[SlotRead.model_validate(s) for s in slots],
    )


@router.get("/slots/calendar", response_model=SlotsCalendarResponse)
def get_slots_calendar(
    username: str,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    """Days in [start_date, end_date] (clamped to the booking horizon) with open slot counts."""
    config = get_booking_config()
    days = list_available_days(db, username, start_date, end_date)

    return SlotsCalendarResponse(
        username=username,
        start_date=days[0][0] if days else None,
        end_date=days[-1][0] if days else None,
        days=[
            SlotsDayStatus(date=day, has_slots=count > 0, open_slots_count=count)
            for day, count in days
        ],
        horizon_days=config.horizon_days,
    )


@router.get("/slots/grid", response_model=SlotsGridResponse)
def get_slots_grid(
    username: str,
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    """Slot management view: every grid slot, including blocked, past and full ones."""
    provider = get_provider(db, username)
    schedule = get_provider_schedule(db, username)
    bookings = get_bookings_for_day(db, provider.id, target_date, schedule.tz)
    states = describe_day(target_date, schedule, datetime.now(timezone.utc), bookings)

    return SlotsGridResponse(
        username=username,
        date=target_date,
        slots=[SlotStateRead.model_validate(s) for s in states],
        total_slots=len(states),
    )


@router.post("/slots/blocked", response_model=BlockedSlotsResponse)
def block_slots(username: str, data: BlockedSlotsUpdate, db: Session = Depends(get_db)):
    return BlockedSlotsResponse(
        username=username,
        blocked_slots=blocking.block_slots(db, username, data.slots),
    )


@router.delete("/slots/blocked", response_model=BlockedSlotsResponse)
def unblock_slots(username: str, data: BlockedSlotsUpdate, db: Session = Depends(get_db)):
    return BlockedSlotsResponse(
        username=username,
        blocked_slots=blocking.unblock_slots(db, username, data.slots),
    )


@router.post("/dates/blocked", response_model=BlockedDatesResponse)
def block_dates(username: str, data: BlockedDatesUpdate, db: Session = Depends(get_db)):
    return BlockedDatesResponse(
        username=username,
        blocked_dates=blocking.block_dates(db, username, data.dates),
    )


@router.delete("/dates/blocked", response_model=BlockedDatesResponse)
def unblock_dates(username: str, data: BlockedDatesUpdate, db: Session = Depends(get_db)):
    return BlockedDatesResponse(
        username=username,
        blocked_dates=blocking.unblock_dates(db, username, data.dates),
    )
