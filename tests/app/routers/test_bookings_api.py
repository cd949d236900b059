from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_booking, make_provider, next_weekday, utc


def booking_request(day, hour: int, **overrides) -> dict:
    payload = {
        "customer_name": " Jane Doe ",
        "customer_email": "Jane@Example.com",
        "country_code": "+1",
        "customer_phone": "555-0100",
        "service_type": "Online",
        "date_time": f"{day.isoformat()}T{hour:02d}:00:00Z",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def day():
    return next_weekday(0)


def test_create_booking(client, db, day, redis_events) -> None:
    make_provider(db)

    response = client.post("/providers/acme/bookings/", json=booking_request(day, 10))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "Upcoming"
    assert body["date_time_utc"] == f"{day.isoformat()}T10:00:00.000Z"
    assert body["customer_name"] == "Jane Doe"
    assert body["customer_email"] == "jane@example.com"
    assert body["customer_phone"] == "+15550100"
    assert redis_events.events()[0]["type"] == "booking_created"


def test_online_payment_starts_pending(client, db, day) -> None:
    make_provider(db)

    response = client.post(
        "/providers/acme/bookings/", json=booking_request(day, 10, payment_method="online")
    )

    assert response.json()["status"] == "Pending"


def test_booking_in_provider_timezone(client, db, day) -> None:
    make_provider(db, timezone="Asia/Kolkata")

    # 09:00 IST
    response = client.post(
        "/providers/acme/bookings/",
        json=booking_request(day, 9, date_time=f"{day.isoformat()}T03:30:00Z"),
    )

    assert response.status_code == 201
    assert response.json()["date_time_utc"] == f"{day.isoformat()}T03:30:00.000Z"


def test_taken_slot_is_a_conflict(client, db, day) -> None:
    make_provider(db)
    assert client.post("/providers/acme/bookings/", json=booking_request(day, 10)).status_code == 201

    response = client.post("/providers/acme/bookings/", json=booking_request(day, 10))

    assert response.status_code == 409
    assert response.json()["reason"] == "full"


def test_off_grid_instant_is_a_conflict(client, db, day) -> None:
    make_provider(db)

    response = client.post(
        "/providers/acme/bookings/",
        json=booking_request(day, 10, date_time=f"{day.isoformat()}T10:10:00Z"),
    )

    assert response.status_code == 409
    assert response.json()["reason"] == "outside_schedule"


def test_doorstep_booking_needs_address(client, db, day) -> None:
    make_provider(db)

    response = client.post(
        "/providers/acme/bookings/", json=booking_request(day, 10, service_type="Doorstep")
    )

    assert response.status_code == 422


def test_doorstep_address_is_stored(client, db, day) -> None:
    make_provider(db)

    response = client.post(
        "/providers/acme/bookings/",
        json=booking_request(
            day, 10,
            service_type="Doorstep",
            flat_house_no="12B",
            pincode="560001",
            city="Bengaluru",
            state="KA",
            country="India",
        ),
    )

    assert response.status_code == 201
    assert response.json()["address"] == "12B, Bengaluru, KA - 560001, India"


def test_booking_for_unknown_provider(client, day) -> None:
    response = client.post("/providers/nobody/bookings/", json=booking_request(day, 10))

    assert response.status_code == 404


def test_reschedule_and_cancel(client, db, day) -> None:
    make_provider(db)
    booking_id = client.post("/providers/acme/bookings/", json=booking_request(day, 10)).json()["id"]

    moved = client.post(
        f"/providers/acme/bookings/{booking_id}/reschedule",
        json={"date_time": f"{day.isoformat()}T15:00:00Z"},
    )
    assert moved.status_code == 200
    assert moved.json()["date_time_utc"] == f"{day.isoformat()}T15:00:00.000Z"

    canceled = client.post(f"/providers/acme/bookings/{booking_id}/cancel")
    assert canceled.json()["status"] == "Canceled"

    slots = client.get("/providers/acme/slots/day", params={"date": day.isoformat()}).json()
    assert len(slots["slots"]) == 16

    again = client.post(
        f"/providers/acme/bookings/{booking_id}/reschedule",
        json={"date_time": f"{day.isoformat()}T16:00:00Z"},
    )
    assert again.status_code == 409


def test_status_update(client, db, day) -> None:
    make_provider(db)
    booking_id = client.post(
        "/providers/acme/bookings/", json=booking_request(day, 10, payment_method="online")
    ).json()["id"]

    response = client.patch(f"/providers/acme/bookings/{booking_id}/status", json={"status": "Upcoming"})

    assert response.status_code == 200
    assert response.json()["status"] == "Upcoming"
    assert client.patch(
        f"/providers/acme/bookings/{booking_id}/status", json={"status": "Lost"}
    ).status_code == 422


def test_past_upcoming_is_listed_as_not_completed(client, db) -> None:
    provider = make_provider(db)
    past = datetime.now(timezone.utc) - timedelta(days=3)
    booking = make_booking(db, provider, past.replace(microsecond=0))
    make_booking(db, provider, utc(next_weekday(0), 9))

    listed = client.get("/providers/acme/bookings/").json()

    assert [b["status"] for b in listed] == ["Upcoming", "Not Completed"]
    assert client.get(f"/providers/acme/bookings/{booking.id}").json()["status"] == "Not Completed"
    db.refresh(booking)
    assert booking.status == "Upcoming"


def test_unknown_booking(client, db) -> None:
    make_provider(db)

    assert client.get("/providers/acme/bookings/999").status_code == 404
    assert client.post("/providers/acme/bookings/999/cancel").status_code == 404
