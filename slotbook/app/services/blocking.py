# slotbook/app/services/blocking.py
"""
Provider-managed exclusions: blocked dates and blocked slot instants.

Both are stored as JSON arrays on the provider row but behave as sets:
blocking something already blocked, or unblocking something that is not
blocked, changes nothing.
"""

import json
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from . import booking_store as store
from .errors import ConfigurationError
from .slots.config import is_date_str, parse_utc_iso, to_utc_iso

logger = logging.getLogger(__name__)


def block_slots(db: Session, username: str, instants: list[datetime | str]) -> list[str]:
    return _update_blocked_slots(db, username, instants, should_block=True)


def unblock_slots(db: Session, username: str, instants: list[datetime | str]) -> list[str]:
    return _update_blocked_slots(db, username, instants, should_block=False)


def block_dates(db: Session, username: str, dates: list[str]) -> list[str]:
    return _update_blocked_dates(db, username, dates, should_block=True)


def unblock_dates(db: Session, username: str, dates: list[str]) -> list[str]:
    return _update_blocked_dates(db, username, dates, should_block=False)


def _update_blocked_slots(
    db: Session,
    username: str,
    instants: list[datetime | str],
    should_block: bool,
) -> list[str]:
    """Returns the provider's blocked slots after the change, sorted."""
    keys = set()
    for value in instants:
        try:
            instant = parse_utc_iso(value) if isinstance(value, str) else value
        except ValueError:
            raise ConfigurationError(f"Not an ISO-8601 instant: {value!r}")
        keys.add(to_utc_iso(instant))

    provider = store.get_provider(db, username)
    current = {to_utc_iso(parse_utc_iso(s)) for s in _load_list(provider.blocked_slots)}
    updated = current | keys if should_block else current - keys

    if updated != current:
        provider.blocked_slots = json.dumps(sorted(updated))
        provider.updated_at = store.utc_now_iso()
        db.commit()
        logger.info(f"Blocked slots of {username} updated: {len(current)} → {len(updated)}")

    return sorted(updated)


def _update_blocked_dates(
    db: Session,
    username: str,
    dates: list[str],
    should_block: bool,
) -> list[str]:
    """Returns the provider's blocked dates after the change, sorted."""
    for value in dates:
        if not is_date_str(value):
            raise ConfigurationError(f"Blocked date must be yyyy-MM-dd, got {value!r}")

    provider = store.get_provider(db, username)
    current = set(_load_list(provider.blocked_dates))
    updated = current | set(dates) if should_block else current - set(dates)

    if updated != current:
        provider.blocked_dates = json.dumps(sorted(updated))
        provider.updated_at = store.utc_now_iso()
        db.commit()
        logger.info(f"Blocked dates of {username} updated: {len(current)} → {len(updated)}")

    return sorted(updated)


def _load_list(raw: str | None) -> list[str]:
    try:
        value = json.loads(raw) if raw else []
    except json.JSONDecodeError:
        value = []
    return value if isinstance(value, list) else []
