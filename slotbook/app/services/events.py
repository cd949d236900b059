"""
Booking change notifications.

Every committed change to a booking is announced on the Redis list
events:p2p, so that mail, calendar sync and the provider dashboard can
react without touching the bookings table. Each entry is one JSON object:

    {"type": "booking_created", "provider_username": ..., "booking_id": ...,
     "date_time_utc": ..., "status": ..., "ts": <unix seconds>}

Types:
    booking_created         commit_booking succeeded
    booking_rescheduled     also carries previous_date_time_utc
    booking_canceled        slot released by the provider or customer
    booking_status_changed  payment confirmed, completed, no-show
    booking_expired         pending payment hold ran out (no status key)
"""

import json
import logging
import time

from redis import RedisError

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

EVENTS_QUEUE = "events:p2p"

BOOKING_EVENTS = frozenset({
    "booking_created",
    "booking_rescheduled",
    "booking_canceled",
    "booking_status_changed",
    "booking_expired",
})


def emit_event(event_type: str, payload: dict) -> None:
    """
    Announce a booking change that is already committed.

    Delivery is best-effort: a Redis outage is logged and the booking
    stays as written. An unknown event type is a programming error and
    raises ValueError.
    """
    if event_type not in BOOKING_EVENTS:
        raise ValueError(f"Unknown booking event type: {event_type!r}")

    message = json.dumps({"type": event_type, **payload, "ts": int(time.time())})
    try:
        redis_client.rpush(EVENTS_QUEUE, message)
    except RedisError as e:
        logger.error(f"Booking event {event_type} for booking {payload.get('booking_id')} not delivered: {e}")
        return
    logger.debug(f"Booking event {event_type} queued for booking {payload.get('booking_id')}")


def booking_payload(provider_username: str, booking) -> dict:
    """Fields shared by every booking event."""
    return {
        "provider_username": provider_username,
        "booking_id": booking.id,
        "date_time_utc": booking.date_time_utc,
        "status": booking.status,
    }
