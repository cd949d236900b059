# slotbook/app/services/booking_commit.py
"""
Booking commit protocol: create, move, cancel bookings.

Each write attempt runs in one transaction:
1. Expire stale Pending holds at the target instant
2. Re-read the provider's bookings for that day (never trust the page)
3. Re-run the availability filter for the single instant
4. Take the lowest free slot_ordinal in [0, capacity) and write

Two writers racing for the last ordinal collide on the unique
(provider_id, date_time_utc, slot_ordinal) constraint. The loser rolls
back and re-reads; it then sees the slot full and gets SlotUnavailable.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ..models.generated import Bookings
from . import booking_store as store
from .booking_status import RESCHEDULABLE, BookingStatus
from .errors import BookingStateError, SlotUnavailable
from .events import booking_payload, emit_event
from .slots.availability import check_instant, occupies_capacity
from .slots.calculator import resolve_local_date
from .slots.config import BookingConfig, ProviderSchedule, get_booking_config, schedule_from_provider, to_utc_iso

logger = logging.getLogger(__name__)

INITIAL_STATUSES = {BookingStatus.PENDING, BookingStatus.UPCOMING}


def commit_booking(
    db: Session,
    username: str,
    instant: datetime,
    details: dict,
    initial_status: str = BookingStatus.UPCOMING.value,
    config: BookingConfig | None = None,
) -> Bookings:
    """
    Durably occupy an instant for a new booking.

    Args:
        details: Customer/service columns of the booking
        initial_status: Pending (awaiting online payment) or Upcoming

    Raises:
        SlotUnavailable: blocked, too soon, outside the schedule or full
        NotFound: unknown provider
        ConfigurationError: provider schedule is unusable
    """
    initial_status = BookingStatus(initial_status)
    if initial_status not in INITIAL_STATUSES:
        raise BookingStateError(f"A booking cannot be created as {initial_status!r}")

    config = config or get_booking_config()
    provider = store.get_provider(db, username)
    schedule = schedule_from_provider(provider)
    instant = _as_utc(instant)
    instant_key = to_utc_iso(instant)

    for attempt in range(1, config.commit_attempts + 1):
        try:
            ordinal = _reserve_ordinal(db, provider.id, schedule, instant, config)
            booking = store.insert_booking(
                db, provider.id, instant_key, ordinal, initial_status.value, details
            )
            db.commit()
        except (IntegrityError, OperationalError) as e:
            db.rollback()
            if isinstance(e, OperationalError) and not _is_contention(e):
                raise
            logger.info(
                f"Commit race on {username} {instant_key} "
                f"(attempt {attempt}/{config.commit_attempts}), retrying"
            )
            continue
        except Exception:
            db.rollback()
            raise

        db.refresh(booking)
        logger.info(
            f"Booking committed: booking_id={booking.id}, provider={username}, "
            f"time={instant_key}, ordinal={ordinal}, status={booking.status}"
        )
        emit_event("booking_created", booking_payload(username, booking))
        return booking

    logger.info(f"Booking rejected after {config.commit_attempts} attempts: {username} {instant_key}")
    raise SlotUnavailable(instant, SlotUnavailable.FULL)


def reschedule_booking(
    db: Session,
    username: str,
    booking_id: int,
    new_instant: datetime,
    config: BookingConfig | None = None,
) -> Bookings:
    """
    Move a booking to another instant.

    The new instant must pass the same checks as a new booking; the old
    one is released by the same UPDATE. Rescheduling to the current
    instant is a no-op.
    """
    config = config or get_booking_config()
    provider = store.get_provider(db, username)
    schedule = schedule_from_provider(provider)
    new_instant = _as_utc(new_instant)
    new_key = to_utc_iso(new_instant)

    booking = store.get_booking(db, provider.id, booking_id)
    _ensure_reschedulable(booking, config)
    if booking.date_time_utc == new_key:
        return booking

    old_key = booking.date_time_utc
    for attempt in range(1, config.commit_attempts + 1):
        try:
            booking = store.get_booking(db, provider.id, booking_id)
            _ensure_reschedulable(booking, config)
            ordinal = _reserve_ordinal(db, provider.id, schedule, new_instant, config)
            store.update_booking_date_time(db, booking, new_key, ordinal)
            db.commit()
        except (IntegrityError, OperationalError) as e:
            db.rollback()
            if isinstance(e, OperationalError) and not _is_contention(e):
                raise
            logger.info(
                f"Reschedule race on {username} {new_key} "
                f"(attempt {attempt}/{config.commit_attempts}), retrying"
            )
            continue
        except Exception:
            db.rollback()
            raise

        logger.info(f"Booking rescheduled: booking_id={booking_id}, provider={username}, {old_key} → {new_key}")
        emit_event("booking_rescheduled", {
            **booking_payload(username, booking),
            "previous_date_time_utc": old_key,
        })
        return booking

    raise SlotUnavailable(new_instant, SlotUnavailable.FULL)


def cancel_booking(db: Session, username: str, booking_id: int) -> Bookings:
    """Cancel and release the slot. Canceling twice is a no-op."""
    provider = store.get_provider(db, username)
    booking = store.get_booking(db, provider.id, booking_id)

    if booking.status == BookingStatus.CANCELED:
        return booking

    try:
        store.set_booking_status(db, booking, BookingStatus.CANCELED.value)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Booking canceled: booking_id={booking_id}, provider={username}")
    emit_event("booking_canceled", booking_payload(username, booking))
    return booking


def set_booking_status(db: Session, username: str, booking_id: int, status: str) -> Bookings:
    """
    Provider-driven status change (payment confirmed, completed, no-show).

    A Canceled booking stays canceled: reactivating it would occupy a slot
    without passing the availability checks. Nothing moves back to Pending.
    """
    status = BookingStatus(status)
    if status == BookingStatus.CANCELED:
        return cancel_booking(db, username, booking_id)

    provider = store.get_provider(db, username)
    booking = store.get_booking(db, provider.id, booking_id)

    if booking.status == status:
        return booking
    if booking.status == BookingStatus.CANCELED:
        raise BookingStateError(f"Booking {booking_id} is canceled and cannot become {status.value}")
    # Pending is only ever an initial status; its hold is measured from created_at
    if status == BookingStatus.PENDING:
        raise BookingStateError(f"Booking {booking_id} is {booking.status} and cannot return to Pending")

    try:
        store.set_booking_status(db, booking, status.value)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Booking status changed: booking_id={booking_id}, provider={username}, status={status.value}")
    emit_event("booking_status_changed", booking_payload(username, booking))
    return booking


# ── Helpers ──────────────────────────────────────────────────────────────


def _reserve_ordinal(
    db: Session,
    provider_id: int,
    schedule: ProviderSchedule,
    instant: datetime,
    config: BookingConfig,
) -> int:
    """Steps 1-4 of the protocol up to (not including) the write."""
    now = datetime.now(timezone.utc)
    instant_key = to_utc_iso(instant)

    store.expire_stale_pending(
        db, now, config.pending_hold_minutes, provider_id=provider_id, instant_key=instant_key
    )

    day = resolve_local_date(instant, schedule.tz)
    bookings = store.get_bookings_for_day(db, provider_id, day, schedule.tz)
    check_instant(instant, schedule, now, bookings, config.pending_hold_minutes)

    taken = store.occupied_ordinals(db, provider_id, instant_key)
    for ordinal in range(schedule.capacity):
        if ordinal not in taken:
            return ordinal

    # Capacity lowered below live bookings
    raise SlotUnavailable(instant, SlotUnavailable.FULL)


def _ensure_reschedulable(booking: Bookings, config: BookingConfig) -> None:
    if BookingStatus(booking.status) not in RESCHEDULABLE:
        raise BookingStateError(f"Booking {booking.id} is {booking.status} and cannot be rescheduled")
    now = datetime.now(timezone.utc)
    if not occupies_capacity(booking, now, config.pending_hold_minutes):
        raise BookingStateError(f"Payment hold of booking {booking.id} has expired")


def _is_contention(error: OperationalError) -> bool:
    """Lock / serialization failures that a fresh attempt can resolve."""
    message = str(error.orig).lower()
    return any(marker in message for marker in ("locked", "deadlock", "could not serialize", "busy"))


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)
