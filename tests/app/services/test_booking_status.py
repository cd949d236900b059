from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from slotbook.app.services.booking_status import RESCHEDULABLE, BookingStatus, effective_status

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def booking(status: str, when: str):
    return SimpleNamespace(status=status, date_time_utc=when)


def test_past_upcoming_reads_as_not_completed() -> None:
    assert effective_status(booking("Upcoming", "2026-03-01T11:00:00.000Z"), NOW) == "Not Completed"


@pytest.mark.parametrize(
    ("status", "when", "expected"),
    [
        ("Upcoming", "2026-03-01T13:00:00.000Z", "Upcoming"),
        ("Completed", "2026-02-01T09:00:00.000Z", "Completed"),
        ("Canceled", "2026-02-01T09:00:00.000Z", "Canceled"),
        ("Pending", "2026-02-01T09:00:00.000Z", "Pending"),
    ],
)
def test_other_statuses_are_shown_as_stored(status: str, when: str, expected: str) -> None:
    assert effective_status(booking(status, when), NOW) == expected


def test_effective_status_does_not_write_back() -> None:
    row = booking("Upcoming", "2026-03-01T11:00:00.000Z")

    effective_status(row, NOW)

    assert row.status == "Upcoming"


def test_stored_strings_match_enum_members() -> None:
    assert BookingStatus("Not Completed") is BookingStatus.NOT_COMPLETED
    assert BookingStatus("Pending") in RESCHEDULABLE
    assert BookingStatus("Completed") not in RESCHEDULABLE
