"""
HTTP-level tests
Drive the app through FastAPI's TestClient against an in-memory database.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from timely.main import create_app
from timely.services.auth_service import create_session_token
from timely.services.streak import today_in


def _cookie_cleared(response) -> bool:
    header = response.headers.get("set-cookie", "")
    return header.startswith("token=") and "Max-Age=0" in header


class TestRegisterAndLogin:
    def test_register_returns_secret_once_and_sets_cookie(self, client):
        response = client.post("/api/auth/register")
        assert response.status_code == 201
        body = response.json()
        assert len(body["token"]) == 128
        assert "secret_hash" not in response.text
        set_cookie = response.headers["set-cookie"]
        assert "HttpOnly" in set_cookie
        assert "Max-Age=604800" in set_cookie

        check = client.get("/api/auth/check")
        assert check.status_code == 200
        assert check.json()["user"]["id"] == body["user_id"]

    def test_login_without_existing_session(self, client, registered):
        raw, user_id = registered
        client.cookies.clear()
        response = client.post("/api/auth/login", json={"token": raw})
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["id"] == user_id
        assert user["streak"] == 1
        assert user["has_profile"] is False

        stats = client.get("/api/user/profile/stats").json()
        assert stats["streak"]["last_active"] == today_in("UTC").isoformat()

    def test_second_login_same_day_keeps_streak(self, client, registered):
        raw, _ = registered
        first = client.post("/api/auth/login", json={"token": raw}).json()["user"]["streak"]
        second = client.post("/api/auth/login", json={"token": raw}).json()["user"]["streak"]
        assert first == second == 1

    @pytest.mark.parametrize("token", ["", "short", "a" * 127, "a" * 127 + "x"])
    def test_malformed_token_is_400(self, client, token):
        response = client.post("/api/auth/login", json={"token": token})
        assert response.status_code == 400

    def test_missing_token_is_400(self, client):
        assert client.post("/api/auth/login", json={}).status_code == 400

    def test_wrong_token_is_generic_401(self, client, registered):
        response = client.post("/api/auth/login", json={"token": "f" * 128})
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid token. Please check and try again."}


class TestSessionCookie:
    def test_logout_clears_cookie(self, client, registered):
        response = client.post("/api/auth/logout")
        assert response.status_code == 200
        assert _cookie_cleared(response)
        assert client.get("/api/auth/check").status_code == 401

    def test_protected_route_without_cookie(self, client):
        response = client.get("/api/user/profile/stats")
        assert response.status_code == 401
        assert _cookie_cleared(response)

    def test_garbage_cookie_is_cleared(self, client):
        client.cookies.clear()
        client.cookies.set("token", "garbage")
        response = client.get("/api/user/shortcuts")
        assert response.status_code == 401
        assert _cookie_cleared(response)

    def test_expired_cookie_is_rejected(self, client, settings, registered):
        _, user_id = registered
        stale = create_session_token(user_id, settings, now=datetime.now(timezone.utc) - timedelta(days=8))
        client.cookies.clear()
        client.cookies.set("token", stale)
        response = client.get("/api/user/profile/stats")
        assert response.status_code == 401
        assert response.json()["detail"] == "Session expired. Please log in again."

    def test_cookie_signed_with_other_key(self, client, settings, registered):
        _, user_id = registered
        forged = create_session_token(user_id, replace(settings, jwt_secret="not-the-key"))
        client.cookies.clear()
        client.cookies.set("token", forged)
        assert client.get("/api/user/profile/stats").status_code == 401

    def test_unknown_user_is_rejected(self, client, settings):
        client.cookies.clear()
        client.cookies.set("token", create_session_token("00000000-0000-0000-0000-000000000000", settings))
        response = client.get("/api/user/profile/stats")
        assert response.status_code == 401
        assert _cookie_cleared(response)

    @pytest.mark.parametrize(
        "method, path",
        [
            ("post", "/api/auth/logout"),
            ("patch", "/api/user/profile"),
            ("get", "/api/user/profile/stats"),
            ("get", "/api/user/shortcuts"),
            ("post", "/api/user/shortcuts"),
            ("delete", "/api/user/shortcuts/T"),
            ("post", "/api/sessions"),
            ("get", "/api/sessions/history"),
        ],
    )
    def test_every_protected_route_requires_session(self, client, method, path):
        response = client.request(method.upper(), path)
        assert response.status_code == 401
        assert _cookie_cleared(response)

    def test_check_is_anonymous_with_bad_cookie(self, client):
        client.cookies.clear()
        client.cookies.set("token", "garbage")
        response = client.get("/api/auth/check")
        assert response.status_code == 401
        assert response.json() == {"authenticated": False}


class TestProfileAndShortcuts:
    def test_update_profile(self, client, registered):
        response = client.patch("/api/user/profile", json={"username": "  Sam  ", "avatar": "avatar4"})
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "Sam"
        assert response.json()["user"]["avatar"] == "avatar4"

    @pytest.mark.parametrize(
        "payload",
        [{"username": "a"}, {"username": "x" * 31}, {"username": "bad!name"}, {"avatar": "avatar99"}],
    )
    def test_invalid_profile_fields(self, client, registered, payload):
        response = client.patch("/api/user/profile", json=payload)
        assert response.status_code == 400
        assert response.json()["detail"] == "Validation failed"

    def test_shortcut_uniqueness(self, client, registered):
        first = client.post("/api/user/shortcuts", json={"key": "t", "text": "Take five"})
        assert first.status_code == 201
        assert first.json()["shortcut"] == {"key": "T", "text": "Take five"}

        second = client.post("/api/user/shortcuts", json={"key": "T", "text": "Other"})
        assert second.status_code == 409

        listed = client.get("/api/user/shortcuts").json()["shortcuts"]
        assert listed == [{"key": "T", "text": "Take five"}]

    @pytest.mark.parametrize("key", ["", "ABCD", "A1", "!"])
    def test_invalid_shortcut_key(self, client, registered, key):
        assert client.post("/api/user/shortcuts", json={"key": key, "text": "x"}).status_code == 400

    def test_delete_shortcut(self, client, registered):
        client.post("/api/user/shortcuts", json={"key": "GO", "text": "Go go go"})
        assert client.delete("/api/user/shortcuts/go").status_code == 200
        assert client.delete("/api/user/shortcuts/go").status_code == 404
        assert client.get("/api/user/shortcuts").json()["shortcuts"] == []


class TestSessions:
    def test_complete_session_updates_stats_and_streak(self, client, registered):
        payload = {
            "stack_id": "abc123",
            "total_duration": 120,
            "completed_items": [{"text": "plank", "duration": 60}, {"text": "lunges", "duration": 60}],
            "settings": {"vibrations": 3, "sound": "chime", "duration": 60},
        }
        response = client.post("/api/sessions", json=payload)
        assert response.status_code == 201
        body = response.json()
        assert body["stats"] == {"total_sessions": 1, "total_time": 120, "total_items": 2}
        assert body["streak"]["current"] == 1

        history = client.get("/api/sessions/history").json()["sessions"]
        assert len(history) == 1
        assert history[0]["id"] == body["session_id"]
        assert history[0]["item_count"] == 2

    def test_negative_duration_rejected(self, client, registered):
        response = client.post("/api/sessions", json={"total_duration": -1, "completed_items": []})
        assert response.status_code == 400

    def test_requires_session(self, client):
        assert client.post("/api/sessions", json={"total_duration": 5}).status_code == 401


def test_register_is_rate_limited(settings):
    app = create_app(replace(settings, rate_limit_enabled=True))
    with TestClient(app) as client:
        for _ in range(10):
            assert client.post("/api/auth/register").status_code == 201
        response = client.post("/api/auth/register")
        assert response.status_code == 429
        assert "Retry-After" in response.headers


def test_secure_mode_cookie_flags_on_set_and_clear(settings):
    app = create_app(replace(settings, cookie_secure=True))
    with TestClient(app, base_url="https://testserver") as client:
        set_cookie = client.post("/api/auth/register").headers["set-cookie"]
        assert "Secure" in set_cookie
        assert "SameSite=none" in set_cookie

        logout = client.post("/api/auth/logout")
        assert logout.status_code == 200
        denied = client.get("/api/user/profile/stats")
        assert denied.status_code == 401
        for response in (logout, denied):
            header = response.headers["set-cookie"]
            assert _cookie_cleared(response)
            assert "Secure" in header
            assert "SameSite=none" in header
            assert "HttpOnly" in header


def test_successful_logins_do_not_use_up_login_limit(settings):
    app = create_app(replace(settings, rate_limit_enabled=True))
    with TestClient(app) as client:
        raw = client.post("/api/auth/register").json()["token"]
        for _ in range(25):
            assert client.post("/api/auth/login", json={"token": raw}).status_code == 200


def test_failed_logins_are_limited(settings):
    app = create_app(replace(settings, rate_limit_enabled=True))
    with TestClient(app) as client:
        raw = client.post("/api/auth/register").json()["token"]
        for _ in range(20):
            assert client.post("/api/auth/login", json={"token": "f" * 128}).status_code == 401
        response = client.post("/api/auth/login", json={"token": raw})
        assert response.status_code == 429
        assert "Retry-After" in response.headers


def test_health(client):
    assert client.get("/api/health").json()["status"] == "OK"
