# slotbook/app/routers/providers.py

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import Providers as DBProviders
from ..schemas.providers import ProviderCreate, ProviderRead, ScheduleUpdate
from ..services.booking_store import get_provider, utc_now_iso
from ..services.slots.config import ProviderSchedule, validate_working_hours
from ..services.slug import username_from_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["providers"])

SCHEDULE_FIELDS = (
    "timezone",
    "slot_duration",
    "break_time",
    "booking_delay",
    "multiple_bookings_per_slot",
    "bookings_per_slot",
)


@router.post("/", response_model=ProviderRead, status_code=status.HTTP_201_CREATED)
def create_provider(
    data: ProviderCreate,
    db: Session = Depends(get_db),
):
    username = data.username or username_from_email(data.email)
    if db.query(DBProviders).filter(DBProviders.username == username).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username {username!r} is taken",
        )

    _validate_schedule(data)

    now_iso = utc_now_iso()
    obj = DBProviders(
        username=username,
        name=data.name,
        email=data.email,
        created_at=now_iso,
        updated_at=now_iso,
    )
    _apply_schedule(obj, data)
    db.add(obj)
    db.commit()
    db.refresh(obj)

    logger.info(f"Provider created: username={username}")
    return obj


@router.get("/{username}", response_model=ProviderRead)
def read_provider(username: str, db: Session = Depends(get_db)):
    return get_provider(db, username)


@router.put("/{username}/schedule", response_model=ProviderRead)
def update_schedule(
    username: str,
    data: ScheduleUpdate,
    db: Session = Depends(get_db),
):
    """Replace working hours, slot length, delay and capacity settings."""
    obj = get_provider(db, username)
    _validate_schedule(data)

    _apply_schedule(obj, data)
    obj.updated_at = utc_now_iso()
    db.commit()
    db.refresh(obj)

    logger.info(f"Schedule of provider {username} updated")
    return obj


def _working_hours(data: ScheduleUpdate) -> dict:
    return {
        day.strip().lower(): (window.model_dump() if window else None)
        for day, window in data.working_hours.items()
    }


def _validate_schedule(data: ScheduleUpdate) -> None:
    """Raises ConfigurationError (→ 422) for settings the engine cannot use."""
    working_hours = _working_hours(data)
    ProviderSchedule(
        timezone=data.timezone,
        working_hours=working_hours,
        slot_duration_minutes=data.slot_duration,
        break_minutes=data.break_time,
        booking_delay_hours=data.booking_delay,
        multiple_bookings_per_slot=data.multiple_bookings_per_slot,
        bookings_per_slot_capacity=data.bookings_per_slot,
    )
    validate_working_hours(working_hours)


def _apply_schedule(obj: DBProviders, data: ScheduleUpdate) -> None:
    for field in SCHEDULE_FIELDS:
        value = getattr(data, field)
        setattr(obj, field, int(value) if isinstance(value, bool) else value)
    obj.working_hours = json.dumps(_working_hours(data))
