import pytest
from fastapi.testclient import TestClient

from backend.app.db.base import Base
from backend.app.db.session import engine
from backend.app.main import app
from backend.app.services import bookings as booking_service


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def register_and_login(client: TestClient, email: str, role: str = "student") -> str:
    client.post("/auth/register", json={"email": email, "password": "secret", "role": role})
    response = client.post("/auth/login", json={"email": email, "password": "secret"})
    return response.json()["access_token"]


def test_request_validation_errors_are_keyed_by_field():
    client = TestClient(app)
    response = client.post("/auth/register", json={"email": "someone@example.com"})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "The given data was invalid."
    assert "password" in body["errors"]


def test_unknown_route_uses_the_envelope():
    client = TestClient(app)
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found"}


def test_missing_booking_is_a_404():
    client = TestClient(app)
    token = register_and_login(client, "student@example.com")
    response = client.get("/bookings/999", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Booking not found."}


def test_missing_token_is_rejected():
    client = TestClient(app)
    response = client.get("/student/bookings")
    assert response.status_code in (401, 403)
    assert response.json()["success"] is False


def test_unexpected_errors_hide_details(monkeypatch):
    client = TestClient(app, raise_server_exceptions=False)
    token = register_and_login(client, "teacher@example.com", "teacher")

    def explode(*args, **kwargs):
        raise RuntimeError("connection string with password=hunter2")

    monkeypatch.setattr(booking_service, "list_teacher_bookings", explode)

    response = client.get("/teacher/bookings", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "An unexpected error occurred."}
