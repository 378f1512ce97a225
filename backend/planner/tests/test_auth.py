"""
Tests for authentication and device session endpoints.
"""
from sqlalchemy.exc import OperationalError
from planner.core.config import settings
from planner.db.session import get_db
from planner.main import app
from planner.services import session_service
from conftest import TestingSessionLocal


def test_verify_code(client, monkeypatch):
    """Test the shared access code gate."""
    monkeypatch.setattr(settings, "ACCESS_CODE", "open-sesame")

    response = client.post("/api/auth/verify-code", json={"code": "wrong"})
    assert response.status_code == 401
    assert response.json()["details"]["code"] == "UNAUTHORIZED_ACCESS"

    response = client.post("/api/auth/verify-code", json={"code": "open-sesame"})
    assert response.status_code == 200
    assert settings.SESSION_COOKIE in response.cookies


def test_verify_code_without_configuration(client, monkeypatch):
    monkeypatch.setattr(settings, "ACCESS_CODE", "")
    response = client.post("/api/auth/verify-code", json={"code": "anything"})
    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"


def test_create_group_logs_founder_in(client):
    response = client.post("/api/groups", json={
        "name": "Iceland",
        "access_code": "secret-code",
        "traveler_name": "Alice",
        "device_fingerprint": "fp-1"
    })
    assert response.status_code == 201
    data = response.json()
    assert data["current_member"]["role"] == "adventurer"
    assert data["device_session_saved"] is True

    session = client.get("/api/auth/session", headers={"X-Device-Fingerprint": "fp-1"})
    assert session.status_code == 200
    assert session.json()["traveler_name"] == "Alice"
    assert session.json()["session_type"] == "both"
    assert session.json()["device_expiry"]["days_until_expiry"] == 89


def test_login(client, login, group_with_members):
    """Test group login."""
    group = group_with_members[0]
    response = login(group.id, "Bob")
    assert response.status_code == 200
    data = response.json()
    assert data["group_name"] == "Iceland"
    assert data["current_member"]["permissions"] == {"read": True, "create": True, "modify": True}
    assert data["device_session_saved"] is False

    session = client.get("/api/auth/session")
    assert session.json()["session_type"] == "cookie"
    assert session.json()["device_expiry"] is None


def test_login_invalid_access_code(client, group_with_members):
    """Test login with an invalid access code."""
    group = group_with_members[0]
    response = client.post("/api/auth/login", json={
        "group_id": group.id,
        "access_code": "wrong",
        "traveler_name": "Bob"
    })
    assert response.status_code == 401


def test_session_requires_login(client):
    response = client.get("/api/auth/session")
    assert response.status_code == 401
    assert response.json()["details"]["requires_device_setup"] is True


def test_logout_clears_session(client, login, group_with_members):
    group = group_with_members[0]
    login(group.id, "Bob", device_fingerprint="fp-1")

    response = client.post("/api/auth/logout", json={"device_fingerprint": "fp-1"})
    assert response.status_code == 200
    assert client.get("/api/auth/session").status_code == 401

    check = client.post("/api/device-sessions/check", json={"device_fingerprint": "fp-1"})
    assert check.json()["sessions"] == []


def database_down(*args, **kwargs):
    raise OperationalError("UPDATE device_sessions", {}, Exception("database is locked"))


def test_login_succeeds_when_device_session_cannot_be_saved(client, login, group_with_members, monkeypatch):
    group = group_with_members[0]
    monkeypatch.setattr(session_service, "refresh_device_session", database_down)

    response = login(group.id, "Bob", device_fingerprint="fp-1")
    assert response.status_code == 200
    assert response.json()["device_session_saved"] is False
    assert client.get("/api/auth/session").json()["session_type"] == "cookie"


def test_logout_clears_cookies_when_database_fails(client, login, group_with_members):
    group = group_with_members[0]
    login(group.id, "Bob", device_fingerprint="fp-1")

    def failing_db():
        db = TestingSessionLocal()
        db.commit = database_down
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = failing_db
    response = client.post("/api/auth/logout", json={"device_fingerprint": "fp-1"})
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert settings.SESSION_COOKIE not in client.cookies


def test_device_check_and_auto_login(client, login, group_with_members):
    group = group_with_members[0]
    login(group.id, "Bob", device_fingerprint="fp-1")
    client.cookies.clear()

    check = client.post("/api/device-sessions/check", json={"device_fingerprint": "fp-1"})
    sessions = check.json()["sessions"]
    assert [(s["group_id"], s["traveler_name"]) for s in sessions] == [(group.id, "Bob")]

    response = client.post("/api/device-sessions/auto-login", json={
        "device_fingerprint": "fp-1",
        "group_id": group.id,
        "traveler_name": "Bob"
    })
    assert response.status_code == 200
    assert client.get("/api/auth/session").json()["traveler_name"] == "Bob"

    response = client.post("/api/device-sessions/auto-login", json={
        "device_fingerprint": "fp-1",
        "group_id": group.id,
        "traveler_name": "Carol"
    })
    assert response.status_code == 401


def test_save_device_session_is_idempotent(client, login, group_with_members):
    group = group_with_members[0]
    login(group.id, "Bob")

    first = client.post("/api/device-sessions/save", json={"device_fingerprint": "fp-1"})
    second = client.post("/api/device-sessions/save", json={"device_fingerprint": "fp-1", "session_type": "long_term"})
    assert first.status_code == 200
    assert first.json()["session_id"] == second.json()["session_id"]

    bad = client.post("/api/device-sessions/save", json={"device_fingerprint": "fp-1", "session_type": "forever"})
    assert bad.status_code == 400
