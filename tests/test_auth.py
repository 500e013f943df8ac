"""Tests for auth endpoints and request authentication."""

from types import SimpleNamespace

import pytest

from sitebot.auth import service as auth_service
from conftest import make_token


class FakeAuth:
    def __init__(self):
        self.users = {"taken@example.com": "TestPass123"}
        self.refresh_tokens = {"refresh-ok"}
        self.confirm_email = False

    def _session(self, email):
        return SimpleNamespace(access_token=f"access-{email}", refresh_token="refresh-ok", expires_in=3600)

    def sign_up(self, credentials):
        if credentials["email"] in self.users:
            raise Exception("User already registered")
        self.users[credentials["email"]] = credentials["password"]
        session = None if self.confirm_email else self._session(credentials["email"])
        return SimpleNamespace(session=session)

    def sign_in_with_password(self, credentials):
        if self.users.get(credentials["email"]) != credentials["password"]:
            raise Exception("Invalid login credentials")
        return SimpleNamespace(session=self._session(credentials["email"]))

    def refresh_session(self, refresh_token):
        if refresh_token not in self.refresh_tokens:
            raise Exception("Invalid Refresh Token")
        return SimpleNamespace(session=self._session("refreshed"))


@pytest.fixture
def fake_auth(monkeypatch):
    auth = FakeAuth()
    monkeypatch.setattr(auth_service, "new_auth_client", lambda: SimpleNamespace(auth=auth))
    return auth


def test_register(client, fake_auth):
    resp = client.post("/api/v1/auth/register", json={"email": "new@example.com", "password": "TestPass123"})
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["access_token"] == "access-new@example.com"
    assert data["refresh_token"] == "refresh-ok"
    assert data["token_type"] == "bearer"


def test_register_pending_confirmation(client, fake_auth):
    fake_auth.confirm_email = True
    resp = client.post("/api/v1/auth/register", json={"email": "new@example.com", "password": "TestPass123"})
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["access_token"] is None
    assert data["confirmation_required"] is True


def test_register_duplicate(client, fake_auth):
    resp = client.post("/api/v1/auth/register", json={"email": "taken@example.com", "password": "TestPass123"})
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "conflict"


def test_register_short_password(client, fake_auth):
    resp = client.post("/api/v1/auth/register", json={"email": "new@example.com", "password": "short"})
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "validation_error"


def test_login_success(client, fake_auth):
    resp = client.post("/api/v1/auth/login", json={"email": "taken@example.com", "password": "TestPass123"})
    assert resp.status_code == 200
    assert resp.json()["data"]["access_token"] == "access-taken@example.com"


def test_login_wrong_password(client, fake_auth):
    resp = client.post("/api/v1/auth/login", json={"email": "taken@example.com", "password": "WrongPass"})
    assert resp.status_code == 401


def test_refresh_token(client, fake_auth):
    resp = client.post("/api/v1/auth/refresh", json={"refresh_token": "refresh-ok"})
    assert resp.status_code == 200
    assert "access_token" in resp.json()["data"]


def test_refresh_invalid_token(client, fake_auth):
    resp = client.post("/api/v1/auth/refresh", json={"refresh_token": "nope"})
    assert resp.status_code == 401


def test_logout_revokes_session(client, fake_db, auth_header):
    resp = client.post("/api/v1/auth/logout", headers=auth_header)
    assert resp.status_code == 200
    assert fake_db.signed_out == [auth_header["Authorization"][7:]]


def test_me(client, user_id, auth_header):
    resp = client.get("/api/v1/auth/me", headers=auth_header)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["id"] == user_id
    assert data["workspace_id"] is None
    assert "billing:manage" in data["permissions"]


def test_missing_auth(client):
    resp = client.get("/api/v1/workspaces")
    assert resp.status_code == 401
    body = resp.json()
    assert body["status"] == "error"
    assert body["error"]["type"] == "authentication_error"
    assert body["error"]["request_id"]


def test_invalid_token(client):
    resp = client.get("/api/v1/workspaces", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_expired_token(client, user_id):
    token = make_token(user_id, expires_in=-60)
    resp = client.get("/api/v1/workspaces", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_request_id_echoed(client, auth_header):
    resp = client.get("/api/v1/auth/me", headers={**auth_header, "X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"


def test_security_headers(client, auth_header):
    resp = client.get("/api/v1/auth/me", headers=auth_header)
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
