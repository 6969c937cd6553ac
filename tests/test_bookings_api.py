from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from backend.app.core.time import sunday_based_weekday, utc_today
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.main import app
from backend.app.models.booking import Booking


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def register_and_login(client: TestClient, email: str, role: str = "student", **extra) -> str:
    client.post("/auth/register", json={"email": email, "password": "secret", "role": role, **extra})
    response = client.post("/auth/login", json={"email": email, "password": "secret"})
    assert response.status_code == 200
    return response.json()["access_token"]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def user_id(client: TestClient, token: str) -> int:
    return client.get("/auth/me", headers=auth(token)).json()["id"]


def next_date_for(day_of_week: int) -> date:
    candidate = utc_today() + timedelta(days=1)
    while sunday_based_weekday(candidate) != day_of_week:
        candidate += timedelta(days=1)
    return candidate


def setup_teacher(client: TestClient, rate_ngn: str = "5000.00"):
    token = register_and_login(client, "teacher@example.com", "teacher")
    teacher_id = user_id(client, token)
    client.put(
        "/teacher/profile",
        json={"hourly_rate_ngn": rate_ngn, "hourly_rate_usd": "3.50", "preferred_currency": "NGN", "subjects": ["Tajweed"]},
        headers=auth(token),
    )
    response = client.post(
        f"/teacher/availability/{teacher_id}",
        json={"windows": [{"day_of_week": 1, "start_time": "18:00", "end_time": "19:00"}]},
        headers=auth(token),
    )
    window_id = response.json()["data"]["windows"][0]["id"]
    return token, teacher_id, window_id


def booking_count() -> int:
    with SessionLocal() as db:
        return db.query(Booking).count()


def test_student_books_a_monday_slot():
    client = TestClient(app)
    _, teacher_id, window_id = setup_teacher(client)
    student_token = register_and_login(client, "student@example.com")
    monday = next_date_for(1)

    response = client.post(
        "/student/bookings",
        json={"teacher_id": teacher_id, "dates": [monday.isoformat()], "availability_ids": [window_id], "subjects": ["Tajweed"]},
        headers=auth(student_token),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    bookings = body["data"]["bookings"]
    assert len(bookings) == 1
    booking = bookings[0]
    assert booking["status"] == "pending"
    assert booking["booking_date"] == monday.isoformat()
    assert booking["start_time"].startswith("18:00")
    assert booking["end_time"].startswith("19:00")
    assert booking["duration_minutes"] == 60
    assert booking["booking_uuid"].startswith("BK-")
    assert booking["subject_name"] == "Tajweed"
    assert Decimal(str(booking["hourly_rate_ngn"])) == Decimal("5000")
    assert Decimal(str(booking["exchange_rate_used"])) == Decimal("1500")
    assert booking["rate_currency"] == "NGN"


def test_holiday_mode_rejects_without_creating_rows():
    client = TestClient(app)
    teacher_token, teacher_id, window_id = setup_teacher(client)
    client.post(f"/teacher/availability/{teacher_id}", json={"holiday_mode": True}, headers=auth(teacher_token))
    student_token = register_and_login(client, "student@example.com")

    response = client.post(
        "/student/bookings",
        json={"teacher_id": teacher_id, "dates": [next_date_for(1).isoformat()], "availability_ids": [window_id]},
        headers=auth(student_token),
    )

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "This teacher is currently on holiday and not accepting new bookings.",
    }
    assert booking_count() == 0


def test_empty_dates_are_a_validation_error():
    client = TestClient(app)
    _, teacher_id, window_id = setup_teacher(client)
    student_token = register_and_login(client, "student@example.com")

    response = client.post(
        "/student/bookings",
        json={"teacher_id": teacher_id, "dates": [], "availability_ids": [window_id]},
        headers=auth(student_token),
    )
    assert response.status_code == 422
    assert "dates" in response.json()["errors"]
    assert booking_count() == 0


def test_teacher_without_rates_cannot_be_booked():
    client = TestClient(app)
    teacher_token = register_and_login(client, "norates@example.com", "teacher")
    teacher_id = user_id(client, teacher_token)
    window = client.post(
        f"/teacher/availability/{teacher_id}",
        json={"windows": [{"day_of_week": 1, "start_time": "18:00", "end_time": "19:00"}]},
        headers=auth(teacher_token),
    ).json()["data"]["windows"][0]
    student_token = register_and_login(client, "student@example.com")

    response = client.post(
        "/student/bookings",
        json={"teacher_id": teacher_id, "dates": [next_date_for(1).isoformat()], "availability_ids": [window["id"]]},
        headers=auth(student_token),
    )
    assert response.status_code == 422
    assert booking_count() == 0


def test_locked_rates_survive_a_profile_update():
    client = TestClient(app)
    teacher_token, teacher_id, window_id = setup_teacher(client, rate_ngn="5000.00")
    student_token = register_and_login(client, "student@example.com")
    created = client.post(
        "/student/bookings",
        json={"teacher_id": teacher_id, "dates": [next_date_for(1).isoformat()], "availability_ids": [window_id]},
        headers=auth(student_token),
    ).json()["data"]["bookings"][0]

    update = client.put("/teacher/profile", json={"hourly_rate_ngn": "8000.00"}, headers=auth(teacher_token))
    assert update.status_code == 200

    response = client.get(f"/bookings/{created['id']}", headers=auth(student_token))
    assert response.status_code == 200
    booking = response.json()["data"]
    assert Decimal(str(booking["hourly_rate_ngn"])) == Decimal("5000")
    assert Decimal(str(booking["hourly_rate_usd"])) == Decimal("3.50")
    assert Decimal(str(booking["exchange_rate_used"])) == Decimal("1500")
    assert booking["rate_locked_at"] == created["rate_locked_at"]


def test_guardian_books_for_linked_child():
    client = TestClient(app)
    _, teacher_id, window_id = setup_teacher(client)
    guardian_token = register_and_login(client, "guardian@example.com", "guardian")
    child = client.post(
        "/guardian/children", json={"email": "child@example.com", "name": "Yusuf"}, headers=auth(guardian_token)
    ).json()["data"]

    response = client.post(
        "/guardian/bookings/process-payment",
        json={
            "booking_for": "child",
            "child_id": child["id"],
            "teacher_id": teacher_id,
            "dates": [next_date_for(1).isoformat()],
            "availability_ids": [window_id],
        },
        headers=auth(guardian_token),
    )

    assert response.status_code == 201
    booking = response.json()["data"]["bookings"][0]
    assert booking["student_id"] == child["id"]
    assert booking["created_by_id"] == user_id(client, guardian_token)

    listed = client.get("/guardian/bookings", headers=auth(guardian_token)).json()["data"]
    assert [item["id"] for item in listed] == [booking["id"]]


def test_guardian_cannot_book_for_unlinked_student():
    client = TestClient(app)
    _, teacher_id, window_id = setup_teacher(client)
    guardian_token = register_and_login(client, "guardian@example.com", "guardian")
    stranger_token = register_and_login(client, "stranger@example.com")

    response = client.post(
        "/guardian/bookings/process-payment",
        json={
            "booking_for": "child",
            "child_id": user_id(client, stranger_token),
            "teacher_id": teacher_id,
            "dates": [next_date_for(1).isoformat()],
            "availability_ids": [window_id],
        },
        headers=auth(guardian_token),
    )
    assert response.status_code == 403
    assert booking_count() == 0


def test_guardian_booking_for_self_requires_learner_flag():
    client = TestClient(app)
    _, teacher_id, window_id = setup_teacher(client)
    plain_token = register_and_login(client, "plain@example.com", "guardian")
    learner_token = register_and_login(client, "learner@example.com", "guardian", is_learner=True)
    payload = {
        "booking_for": "self",
        "teacher_id": teacher_id,
        "dates": [next_date_for(1).isoformat()],
        "availability_ids": [window_id],
    }

    rejected = client.post("/guardian/bookings/process-payment", json=payload, headers=auth(plain_token))
    assert rejected.status_code == 422

    accepted = client.post("/guardian/bookings/process-payment", json=payload, headers=auth(learner_token))
    assert accepted.status_code == 201
    assert accepted.json()["data"]["bookings"][0]["student_id"] == user_id(client, learner_token)


def test_booked_slot_is_not_offered_twice():
    client = TestClient(app)
    _, teacher_id, window_id = setup_teacher(client)
    monday = next_date_for(1)
    payload = {"teacher_id": teacher_id, "dates": [monday.isoformat()], "availability_ids": [window_id]}

    first_token = register_and_login(client, "first@example.com")
    second_token = register_and_login(client, "second@example.com")
    assert client.post("/student/bookings", json=payload, headers=auth(first_token)).status_code == 201

    second = client.post("/student/bookings", json=payload, headers=auth(second_token))
    assert second.status_code == 400
    open_windows = client.get(f"/teachers/{teacher_id}/availability", params={"date": monday.isoformat()}).json()["data"]
    assert open_windows["windows"] == []


def test_other_students_cannot_read_a_booking():
    client = TestClient(app)
    _, teacher_id, window_id = setup_teacher(client)
    owner_token = register_and_login(client, "owner@example.com")
    other_token = register_and_login(client, "other@example.com")
    booking = client.post(
        "/student/bookings",
        json={"teacher_id": teacher_id, "dates": [next_date_for(1).isoformat()], "availability_ids": [window_id]},
        headers=auth(owner_token),
    ).json()["data"]["bookings"][0]

    assert client.get(f"/bookings/{booking['id']}", headers=auth(other_token)).status_code == 403
    assert client.get("/student/bookings", headers=auth(other_token)).json()["data"] == []
