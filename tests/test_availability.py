from datetime import time, timedelta

import pytest
from fastapi.testclient import TestClient

from backend.app.core.exceptions import ValidationError
from backend.app.core.time import sunday_based_weekday, utc_today
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.main import app
from backend.app.models.availability import TeacherAvailability
from backend.app.services.availability import Window, day_schedules_to_windows, parse_clock, windows_to_day_schedules


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def register_and_login(client: TestClient, email: str, role: str = "teacher") -> str:
    client.post("/auth/register", json={"email": email, "password": "secret", "role": role})
    response = client.post("/auth/login", json={"email": email, "password": "secret"})
    assert response.status_code == 200
    return response.json()["access_token"]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def user_id(client: TestClient, token: str) -> int:
    return client.get("/auth/me", headers=auth(token)).json()["id"]


def test_day_schedules_convert_to_windows():
    windows = day_schedules_to_windows(
        [
            {"day": "Monday", "enabled": True, "fromTime": "18:00", "toTime": "19:00"},
            {"day": "Tuesday", "enabled": False, "fromTime": "10:00", "toTime": "11:00"},
            {"day": "Wednesday", "enabled": True, "fromTime": "", "toTime": "11:00"},
            {"day": "Sunday", "enabled": True, "fromTime": "08:30:00", "toTime": "09:30"},
        ]
    )
    assert windows == [Window(1, time(18, 0), time(19, 0)), Window(0, time(8, 30), time(9, 30))]


def test_unknown_day_name_is_a_validation_error():
    with pytest.raises(ValidationError):
        day_schedules_to_windows([{"day": "Funday", "enabled": True, "fromTime": "10:00", "toTime": "11:00"}])


def test_parse_clock_rejects_garbage():
    with pytest.raises(ValidationError):
        parse_clock("quarter past six")


def test_windows_project_back_to_seven_days():
    schedules = windows_to_day_schedules(
        [Window(1, time(18, 0), time(19, 0)), Window(1, time(7, 0), time(8, 0)), Window(5, time(9, 0), time(10, 0))]
    )
    assert [entry["day"] for entry in schedules] == [
        "Monday",
        "Tuesday",
        "Wednesday",
        "Thursday",
        "Friday",
        "Saturday",
        "Sunday",
    ]
    assert schedules[0] == {"day": "Monday", "enabled": True, "fromTime": "07:00", "toTime": "19:00"}
    assert schedules[4]["enabled"] is True
    assert schedules[1] == {"day": "Tuesday", "enabled": False, "fromTime": "", "toTime": ""}


def test_teacher_stores_windows_and_reads_them_back():
    client = TestClient(app)
    token = register_and_login(client, "teacher@example.com")
    teacher_id = user_id(client, token)

    payload = {
        "windows": [
            {"day_of_week": 1, "start_time": "18:00", "end_time": "19:00"},
            {"day_of_week": 1, "start_time": "18:00", "end_time": "19:00"},
            {"day_of_week": 3, "start_time": "10:00", "end_time": "11:30"},
        ]
    }
    response = client.post(f"/teacher/availability/{teacher_id}", json=payload, headers=auth(token))
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    # Duplicate windows are kept as separate rows.
    assert len(body["data"]["windows"]) == 3

    public = client.get(f"/teacher/availability/{teacher_id}")
    assert public.status_code == 200
    data = public.json()["data"]
    assert data["holiday_mode"] is False
    assert data["day_schedules"][0]["fromTime"] == "18:00"


def test_resubmitting_replaces_active_windows():
    client = TestClient(app)
    token = register_and_login(client, "teacher@example.com")
    teacher_id = user_id(client, token)
    client.post(
        f"/teacher/availability/{teacher_id}",
        json={"windows": [{"day_of_week": 1, "start_time": "18:00", "end_time": "19:00"}]},
        headers=auth(token),
    )
    client.post(
        f"/teacher/availability/{teacher_id}",
        json={"day_schedules": [{"day": "Friday", "enabled": True, "fromTime": "09:00", "toTime": "10:00"}]},
        headers=auth(token),
    )

    with SessionLocal() as db:
        rows = db.query(TeacherAvailability).filter(TeacherAvailability.teacher_id == teacher_id).all()
        active = [row for row in rows if row.is_active]
        assert len(rows) == 2
        assert [(row.day_of_week, row.start_time) for row in active] == [(5, time(9, 0))]


def test_end_before_start_is_rejected():
    client = TestClient(app)
    token = register_and_login(client, "teacher@example.com")
    teacher_id = user_id(client, token)
    response = client.post(
        f"/teacher/availability/{teacher_id}",
        json={"windows": [{"day_of_week": 2, "start_time": "19:00", "end_time": "18:00"}]},
        headers=auth(token),
    )
    assert response.status_code == 422
    assert "windows.0.end_time" in response.json()["errors"]


def test_teacher_cannot_edit_another_teachers_availability():
    client = TestClient(app)
    owner_token = register_and_login(client, "owner@example.com")
    other_token = register_and_login(client, "other@example.com")
    owner_id = user_id(client, owner_token)

    response = client.post(f"/teacher/availability/{owner_id}", json={"holiday_mode": True}, headers=auth(other_token))
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_holiday_mode_toggle():
    client = TestClient(app)
    token = register_and_login(client, "teacher@example.com")
    teacher_id = user_id(client, token)
    response = client.post(f"/teacher/availability/{teacher_id}", json={"holiday_mode": True}, headers=auth(token))
    assert response.status_code == 200
    assert response.json()["data"]["holiday_mode"] is True


def test_open_windows_for_date_only_returns_matching_weekday():
    client = TestClient(app)
    token = register_and_login(client, "teacher@example.com")
    teacher_id = user_id(client, token)
    target = utc_today() + timedelta(days=7)
    weekday = sunday_based_weekday(target)
    client.post(
        f"/teacher/availability/{teacher_id}",
        json={
            "windows": [
                {"day_of_week": weekday, "start_time": "18:00", "end_time": "19:00"},
                {"day_of_week": (weekday + 1) % 7, "start_time": "09:00", "end_time": "10:00"},
            ]
        },
        headers=auth(token),
    )

    response = client.get(f"/teachers/{teacher_id}/availability", params={"date": target.isoformat()})
    assert response.status_code == 200
    windows = response.json()["data"]["windows"]
    assert len(windows) == 1
    assert windows[0]["day_of_week"] == weekday


def test_unknown_teacher_returns_404():
    client = TestClient(app)
    response = client.get("/teacher/availability/999")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Teacher not found."}
