# slotbook/app/routers/bookings.py
# Deleting a booking is not supported: cancel it instead

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.bookings import (
    BookingCreate,
    BookingRead,
    BookingReschedule,
    BookingStatusUpdate,
)
from ..services import booking_commit
from ..services.booking_status import effective_status
from ..services.booking_store import get_booking, get_provider, list_bookings

router = APIRouter(prefix="/providers/{username}/bookings", tags=["bookings"])


def _read(booking, now: datetime | None = None) -> BookingRead:
    """Serialize with the derived status (past Upcoming → Not Completed)."""
    now = now or datetime.now(timezone.utc)
    return BookingRead.model_validate(booking).model_copy(
        update={"status": effective_status(booking, now)}
    )


@router.get("/", response_model=list[BookingRead])
def list_provider_bookings(username: str, db: Session = Depends(get_db)):
    provider = get_provider(db, username)
    now = datetime.now(timezone.utc)
    return [_read(b, now) for b in list_bookings(db, provider.id)]


@router.get("/{id}", response_model=BookingRead)
def get_provider_booking(username: str, id: int, db: Session = Depends(get_db)):
    provider = get_provider(db, username)
    return _read(get_booking(db, provider.id, id))


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    username: str,
    data: BookingCreate,
    db: Session = Depends(get_db),
):
    """Book a slot; 409 when it was taken or became unavailable meanwhile."""
    booking = booking_commit.commit_booking(
        db,
        username,
        data.date_time,
        data.booking_details(),
        initial_status=data.initial_status,
    )
    return _read(booking)


@router.post("/{id}/reschedule", response_model=BookingRead)
def reschedule_booking(
    username: str,
    id: int,
    data: BookingReschedule,
    db: Session = Depends(get_db),
):
    return _read(booking_commit.reschedule_booking(db, username, id, data.date_time))


@router.post("/{id}/cancel", response_model=BookingRead)
def cancel_booking(username: str, id: int, db: Session = Depends(get_db)):
    return _read(booking_commit.cancel_booking(db, username, id))


@router.patch("/{id}/status", response_model=BookingRead)
def update_booking_status(
    username: str,
    id: int,
    data: BookingStatusUpdate,
    db: Session = Depends(get_db),
):
    return _read(booking_commit.set_booking_status(db, username, id, data.status))
