"""
Pending hold expiry.

A Pending booking (customer sent to the payment gateway) reserves its
slot for PENDING_HOLD_MINUTES. Holds that outlive that window belong to
abandoned payments: this loop cancels them, which releases their slot
ordinal, and emits booking_expired events.

The availability filter already ignores stale holds, so the sweep only
has to keep the table tidy and notify collaborators.

Runs as an asyncio task in the app lifespan.
Uses synchronous DB and Redis (via asyncio.to_thread).
"""

import asyncio
import logging
from datetime import datetime, timezone

from ..config import settings
from ..database import SessionLocal
from . import booking_store as store
from .events import emit_event
from .slots.config import get_booking_config

logger = logging.getLogger(__name__)


async def pending_expiry_loop() -> None:
    """Periodically cancel Pending bookings whose hold has expired."""
    logger.info("pending_expiry_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(expire_pending_bookings)
            except asyncio.CancelledError:
                logger.info("pending_expiry_loop cancelled")
                raise
            except Exception:
                logger.exception("pending_expiry_loop error")

            await asyncio.sleep(settings.pending_expiry_interval_seconds)
    except asyncio.CancelledError:
        pass


def expire_pending_bookings(session_factory=SessionLocal, now: datetime | None = None) -> list[int]:
    """
    One sweep (synchronous).

    Returns:
        IDs of the bookings that were canceled.
    """
    now = now or datetime.now(timezone.utc)
    config = get_booking_config()

    db = session_factory()
    try:
        expired = store.expire_stale_pending(db, now, config.pending_hold_minutes)
        if not expired:
            return []
        events = [
            {
                "provider_username": booking.provider.username,
                "booking_id": booking.id,
                "date_time_utc": booking.date_time_utc,
            }
            for booking in expired
        ]
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    for payload in events:
        emit_event("booking_expired", payload)

    logger.info(f"Expired {len(events)} pending booking(s)")
    return [payload["booking_id"] for payload in events]
