from redis import RedisError

from slotbook.app import main

SCHEDULE = {
    "timezone": "Europe/Berlin",
    "working_hours": {
        "Monday": {"start": "09:00", "end": "17:00"},
        "tuesday": {"start": "10:00", "end": "14:00"},
        "sunday": None,
    },
    "slot_duration": 45,
    "break_time": 15,
    "booking_delay": 2,
}


def create(client, **overrides):
    payload = {"name": "Berlin Cuts", "email": "Berlin.Cuts@Example.com", **SCHEDULE}
    payload.update(overrides)
    return client.post("/providers/", json=payload)


def test_create_provider_derives_username(client) -> None:
    response = create(client)

    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "berlin.cuts"
    assert body["email"] == "berlin.cuts@example.com"
    assert body["working_hours"]["monday"] == {"start": "09:00", "end": "17:00"}
    assert body["working_hours"]["sunday"] is None
    assert body["blocked_dates"] == []
    assert body["multiple_bookings_per_slot"] is False


def test_username_must_be_unique(client) -> None:
    assert create(client, username="cuts").status_code == 201

    response = create(client, username="cuts", email="other@example.com")

    assert response.status_code == 409


def test_invalid_username_is_rejected(client) -> None:
    assert create(client, username="Not A Slug!").status_code == 422


def test_unknown_timezone_is_rejected(client) -> None:
    response = create(client, timezone="Atlantis/Capital")

    assert response.status_code == 422
    assert "timezone" in response.json()["detail"]


def test_working_hours_must_start_before_end(client) -> None:
    response = create(
        client, working_hours={"monday": {"start": "17:00", "end": "09:00"}}
    )

    assert response.status_code == 422


def test_unknown_weekday_is_rejected(client) -> None:
    response = create(client, working_hours={"funday": {"start": "09:00", "end": "17:00"}})

    assert response.status_code == 422


def test_zero_slot_duration_is_rejected(client) -> None:
    assert create(client, slot_duration=0).status_code == 422


def test_update_schedule(client) -> None:
    create(client, username="cuts")

    response = client.put(
        "/providers/cuts/schedule",
        json={
            "timezone": "UTC",
            "working_hours": {"friday": {"start": "08:00", "end": "12:00"}},
            "slot_duration": 60,
            "multiple_bookings_per_slot": True,
            "bookings_per_slot": 4,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["working_hours"] == {"friday": {"start": "08:00", "end": "12:00"}}
    assert body["multiple_bookings_per_slot"] is True
    assert body["bookings_per_slot"] == 4

    assert client.get("/providers/cuts").json()["slot_duration"] == 60


def test_unknown_provider(client) -> None:
    assert client.get("/providers/nobody").status_code == 404
    assert client.put("/providers/nobody/schedule", json=SCHEDULE).status_code == 404


def test_health_reports_redis(client, monkeypatch) -> None:
    class DownRedis:
        def ping(self):
            raise RedisError("down")

    monkeypatch.setattr(main, "redis_client", DownRedis())

    assert client.get("/health").json() == {"redis": False}
