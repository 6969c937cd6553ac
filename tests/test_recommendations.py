from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from backend.app.core.time import utc_now, utc_today
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.main import app
from backend.app.models.booking import Booking
from backend.app.services.recommendations import (
    PendingRequest,
    ScoreBreakdown,
    format_time_range,
    match_reasons,
    period_label,
    recommend,
    score_request,
    subject_similarity,
)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def request(booking_id: int, subject: str, hour: int = 18) -> PendingRequest:
    return PendingRequest(
        booking_id=booking_id,
        student_id=100 + booking_id,
        subject_name=subject,
        booking_date=date(2025, 3, 10),
        start_time=time(hour, 0),
        end_time=time(hour + 1, 0),
    )


def test_exact_subject_and_specialization_scores_full_marks():
    score = score_request(request(1, "Tajweed"), ["Tajweed"], ["Tajweed"])
    assert score.as_dict() == {
        "subject_match": 40,
        "specialization_match": 25,
        "time_preference": 15,
        "experience_level": 10,
        "availability": 10,
        "total": 100,
    }


def test_scoring_is_deterministic():
    pending = request(1, "Tajweed Basics", hour=14)
    first = score_request(pending, ["Tajweed"], ["Tajweed"])
    second = score_request(pending, ["Tajweed"], ["Tajweed"])
    assert first == second


def test_partial_subject_similarity():
    assert subject_similarity("Tajweed Basics", ["Tajweed"]) == 26
    assert subject_similarity("Tajweed", ["Tajweed"]) == 40
    assert subject_similarity("zzz", ["Tajweed"]) == 0
    assert subject_similarity("Tajweed", []) == 0


@pytest.mark.parametrize(
    "hour,expected",
    [(5, 10), (6, 15), (11, 15), (12, 10), (17, 10), (18, 15), (20, 15), (21, 10)],
)
def test_time_preference(hour, expected):
    assert score_request(request(1, "Tajweed", hour=hour), ["Tajweed"], []).time_preference == expected


def test_total_is_clamped():
    assert ScoreBreakdown(80, 25, 15, 10, 10).total == 100
    assert ScoreBreakdown(-50, 0, 10, 10, 10).total == 0


def test_recommend_filters_by_threshold_and_sorts_descending():
    requests = [request(1, "Tajweed Basics", hour=14), request(2, "Mathematics", hour=14), request(3, "Tajweed")]

    matches = recommend(requests, ["Tajweed"], ["Tajweed"])

    assert [match.request.booking_id for match in matches] == [3, 1]
    assert [match.score.total for match in matches] == [100, 81]
    assert all(70 <= match.score.total <= 100 for match in matches)


def test_ties_keep_input_order_and_limit_applies():
    requests = [request(booking_id, "Tajweed") for booking_id in range(1, 6)]

    matches = recommend(requests, ["Tajweed"], ["Tajweed"], limit=3)
    assert [match.request.booking_id for match in matches] == [1, 2, 3]


def test_teacher_without_specializations_gets_no_specialization_points():
    score = score_request(request(1, "Tajweed"), ["Tajweed"], [])
    assert score.specialization_match == 0
    assert score.total == 75


def test_match_reasons():
    full = score_request(request(1, "Tajweed"), ["Tajweed"], ["Tajweed"])
    assert match_reasons(full) == ["Subject match", "Specialization match", "Time preference", "Experience level", "Availability"]

    partial = score_request(request(2, "Tajweed Basics", hour=14), ["Tajweed"], ["Tajweed"])
    assert match_reasons(partial) == ["Specialization match", "Experience level", "Availability"]


@pytest.mark.parametrize(
    "hour,label",
    [(0, "Night"), (5, "Night"), (6, "Morning"), (11, "Morning"), (12, "Afternoon"), (16, "Afternoon"), (17, "Evening"), (20, "Evening"), (21, "Night")],
)
def test_period_label(hour, label):
    assert period_label(time(hour, 0)) == label


def test_format_time_range():
    assert format_time_range(time(18, 0), time(19, 0)) == "Evening (6:00 PM - 7:00 PM)"
    assert format_time_range(time(9, 30), None) == "Morning (9:30 AM - Unknown)"
    assert format_time_range(None, None) == "Time not specified"


def register_and_login(client: TestClient, email: str, role: str = "student") -> str:
    client.post("/auth/register", json={"email": email, "password": "secret", "role": role})
    response = client.post("/auth/login", json={"email": email, "password": "secret"})
    assert response.status_code == 200
    return response.json()["access_token"]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def user_id(client: TestClient, token: str) -> int:
    return client.get("/auth/me", headers=auth(token)).json()["id"]


def insert_pending(teacher_id: int, student_id: int, subject_id: int, booking_date: date, status: str = "pending", suffix: str = "1", start: time = time(18, 0)):
    with SessionLocal() as db:
        db.add(
            Booking(
                booking_uuid=f"BK-REC{suffix}",
                student_id=student_id,
                teacher_id=teacher_id,
                subject_id=subject_id,
                booking_date=booking_date,
                start_time=start,
                end_time=time(start.hour + 1, start.minute),
                duration_minutes=60,
                status=status,
                created_by_id=student_id,
                hourly_rate_ngn=Decimal("5000.00"),
                hourly_rate_usd=Decimal("3.33"),
                rate_currency="NGN",
                exchange_rate_used=Decimal("1500"),
                rate_locked_at=utc_now(),
            )
        )
        db.commit()


def test_teacher_without_profile_gets_an_empty_list():
    client = TestClient(app)
    token = register_and_login(client, "teacher@example.com", "teacher")

    response = client.get("/teacher/recommended-students", headers=auth(token))
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Recommended students retrieved successfully.",
        "data": {"students": []},
    }


def test_recommended_students_endpoint():
    client = TestClient(app)
    other_token = register_and_login(client, "other@example.com", "teacher")
    other_id = user_id(client, other_token)
    subject_id = client.put(
        "/teacher/profile", json={"hourly_rate_ngn": "5000.00", "subjects": ["Tajweed"]}, headers=auth(other_token)
    ).json()["data"]["subjects"][0]["id"]
    student_token = register_and_login(client, "student@example.com")
    student_id = user_id(client, student_token)
    start = utc_today() + timedelta(days=2)
    insert_pending(other_id, student_id, subject_id, start)
    insert_pending(other_id, student_id, subject_id, start, status="approved", suffix="2")
    insert_pending(other_id, student_id, subject_id, utc_today() - timedelta(days=2), suffix="3")

    token = register_and_login(client, "teacher@example.com", "teacher")
    client.put(
        "/teacher/profile",
        json={"hourly_rate_ngn": "6000.00", "subjects": ["Tajweed"], "specializations": ["Tajweed"]},
        headers=auth(token),
    )

    response = client.get("/teacher/recommended-students", headers=auth(token))
    assert response.status_code == 200
    students = response.json()["data"]["students"]
    assert len(students) == 1
    match = students[0]
    assert match["compatibility_score"] == 100
    assert match["score_breakdown"]["total"] == 100
    assert match["student"]["id"] == student_id
    assert match["student"]["specialization"] == "Tajweed"
    assert match["student"]["learning_goal"] == "Master Quran Recitation"
    assert match["request"]["date_to_start"] == start.isoformat()
    assert match["request"]["time"] == "Evening (6:00 PM - 7:00 PM)"
    assert "Subject match" in match["match_reasons"]


def test_students_cannot_see_recommendations():
    client = TestClient(app)
    token = register_and_login(client, "student@example.com")
    assert client.get("/teacher/recommended-students", headers=auth(token)).status_code == 403


def test_requests_whose_start_has_passed_today_are_not_recommended():
    client = TestClient(app)
    other_token = register_and_login(client, "other@example.com", "teacher")
    subject_id = client.put(
        "/teacher/profile", json={"hourly_rate_ngn": "5000.00", "subjects": ["Tajweed"]}, headers=auth(other_token)
    ).json()["data"]["subjects"][0]["id"]
    student_id = user_id(client, register_and_login(client, "student@example.com"))
    insert_pending(user_id(client, other_token), student_id, subject_id, utc_today(), start=time(0, 0))

    token = register_and_login(client, "teacher@example.com", "teacher")
    client.put(
        "/teacher/profile",
        json={"hourly_rate_ngn": "6000.00", "subjects": ["Tajweed"], "specializations": ["Tajweed"]},
        headers=auth(token),
    )

    response = client.get("/teacher/recommended-students", headers=auth(token))
    assert response.status_code == 200
    assert response.json()["data"]["students"] == []
