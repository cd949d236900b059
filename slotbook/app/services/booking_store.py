# slotbook/app/services/booking_store.py
"""
Persistence of providers and bookings.

Bookings keep date_time_utc as a canonical UTC ISO string, so range
queries are plain string comparisons. A live booking holds a
slot_ordinal in [0, capacity); the unique constraint on
(provider_id, date_time_utc, slot_ordinal) is what makes a full slot
impossible to overbook. Functions here only flush; the caller commits.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..models.generated import Bookings, Providers
from .booking_status import BookingStatus
from .errors import NotFound
from .slots.calculator import day_bounds_utc
from .slots.config import ProviderSchedule, schedule_from_provider, to_utc_iso

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return to_utc_iso(datetime.now(timezone.utc))


# ── Providers ────────────────────────────────────────────────────────────


def get_provider(db: Session, username: str) -> Providers:
    provider = db.query(Providers).filter(Providers.username == username).first()
    if not provider:
        raise NotFound(f"Provider {username!r} not found")
    return provider


def get_provider_schedule(db: Session, username: str) -> ProviderSchedule:
    return schedule_from_provider(get_provider(db, username))


# ── Bookings: read ───────────────────────────────────────────────────────


def get_booking(db: Session, provider_id: int, booking_id: int) -> Bookings:
    booking = (
        db.query(Bookings)
        .filter(Bookings.provider_id == provider_id, Bookings.id == booking_id)
        .first()
    )
    if not booking:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


def list_bookings(db: Session, provider_id: int) -> list[Bookings]:
    """All bookings of a provider, newest slot first."""
    return (
        db.query(Bookings)
        .filter(Bookings.provider_id == provider_id)
        .order_by(Bookings.date_time_utc.desc(), Bookings.id)
        .all()
    )


def get_bookings_between(
    db: Session,
    provider_id: int,
    start: datetime,
    end: datetime,
) -> list[Bookings]:
    """Non-canceled bookings with start <= date_time_utc < end."""
    return (
        db.query(Bookings)
        .filter(
            Bookings.provider_id == provider_id,
            Bookings.date_time_utc >= to_utc_iso(start),
            Bookings.date_time_utc < to_utc_iso(end),
            Bookings.status != BookingStatus.CANCELED.value,
        )
        .order_by(Bookings.date_time_utc, Bookings.id)
        .all()
    )


def get_bookings_for_day(
    db: Session,
    provider_id: int,
    day: date,
    tz: ZoneInfo,
) -> list[Bookings]:
    """Non-canceled bookings on a provider-local calendar day."""
    start, end = day_bounds_utc(day, tz)
    return get_bookings_between(db, provider_id, start, end)


def occupied_ordinals(db: Session, provider_id: int, instant_key: str) -> set[int]:
    rows = (
        db.query(Bookings.slot_ordinal)
        .filter(
            Bookings.provider_id == provider_id,
            Bookings.date_time_utc == instant_key,
            Bookings.slot_ordinal.isnot(None),
        )
        .all()
    )
    return {row[0] for row in rows}


# ── Bookings: write ──────────────────────────────────────────────────────


def insert_booking(
    db: Session,
    provider_id: int,
    instant_key: str,
    slot_ordinal: int,
    status: str,
    details: dict,
) -> Bookings:
    """Add a booking occupying (instant_key, slot_ordinal). Flushes, does not commit."""
    now_iso = utc_now_iso()
    booking = Bookings(
        provider_id=provider_id,
        date_time_utc=instant_key,
        slot_ordinal=slot_ordinal,
        status=status,
        created_at=now_iso,
        updated_at=now_iso,
        **details,
    )
    db.add(booking)
    db.flush()
    return booking


def update_booking_date_time(
    db: Session,
    booking: Bookings,
    instant_key: str,
    slot_ordinal: int,
) -> Bookings:
    """Move a booking; the old instant is released by the same UPDATE."""
    booking.date_time_utc = instant_key
    booking.slot_ordinal = slot_ordinal
    booking.updated_at = utc_now_iso()
    db.flush()
    return booking


def set_booking_status(db: Session, booking: Bookings, status: str) -> Bookings:
    booking.status = status
    if status == BookingStatus.CANCELED:
        booking.slot_ordinal = None
    booking.updated_at = utc_now_iso()
    db.flush()
    return booking


def expire_stale_pending(
    db: Session,
    now: datetime,
    pending_hold_minutes: int,
    provider_id: int | None = None,
    instant_key: str | None = None,
) -> list[Bookings]:
    """
    Cancel Pending bookings older than the hold and release their ordinals.

    Scoped to one provider / instant when given. Each row is canceled by an
    UPDATE that still requires it to be a stale Pending booking, so a
    payment confirmed after the SELECT is left alone. Returns only the rows
    actually canceled. Does not commit.
    """
    cutoff = to_utc_iso(now - timedelta(minutes=pending_hold_minutes))
    stale = (
        Bookings.status == BookingStatus.PENDING.value,
        Bookings.created_at <= cutoff,
    )

    query = db.query(Bookings).filter(*stale)
    if provider_id is not None:
        query = query.filter(Bookings.provider_id == provider_id)
    if instant_key is not None:
        query = query.filter(Bookings.date_time_utc == instant_key)

    expired = []
    for booking in query.all():
        changed = (
            db.query(Bookings)
            .filter(Bookings.id == booking.id, *stale)
            .update(
                {
                    Bookings.status: BookingStatus.CANCELED.value,
                    Bookings.slot_ordinal: None,
                    Bookings.updated_at: utc_now_iso(),
                },
                synchronize_session=False,
            )
        )
        # Reload on next access: the row changed behind the identity map
        db.expire(booking)
        if changed:
            expired.append(booking)
        else:
            logger.info(f"Booking {booking.id} left Pending before it could expire")
    return expired
