"""Tests for API key management and key-based authentication."""

import uuid
from datetime import datetime, timedelta, timezone

from conftest import make_token

from sitebot.api_keys.keys import (
    generate_api_key,
    has_permission,
    hash_api_key,
    is_key_expired,
    mask_api_key,
    validate_api_key_format,
)


def _create_key(client, auth_header, workspace_id, **body):
    resp = client.post("/api/v1/api-keys", json={"workspace_id": workspace_id, "name": "CI", **body}, headers=auth_header)
    assert resp.status_code == 201
    return resp.json()["data"]


# --- Key helpers ---

def test_generated_key_format():
    key, key_hash = generate_api_key()
    assert key.startswith("sbk_")
    assert validate_api_key_format(key)
    assert key_hash == hash_api_key(key)
    assert len(key_hash) == 64


def test_invalid_key_format():
    assert not validate_api_key_format("sbk_short")
    assert not validate_api_key_format("xyz_" + "a" * 43)


def test_mask_api_key():
    assert mask_api_key("sbk_abcdefghijklmnop") == "sbk_abc...mnop"
    assert mask_api_key("short") == "***"


def test_key_expiry():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    assert not is_key_expired(None, now)
    assert is_key_expired("2024-05-31T00:00:00Z", now)
    assert not is_key_expired(now + timedelta(days=1), now)


def test_permission_wildcard():
    assert has_permission(["chatbot:read"], "chatbot:read")
    assert has_permission(["chatbot:*"], "chatbot:write")
    assert not has_permission(["chatbot:read"], "chatbot:write")
    assert not has_permission(["analytics:*"], "chatbot:read")


# --- Endpoints ---

def test_create_key_returns_plaintext_once(client, fake_db, auth_header, workspace):
    data = _create_key(client, auth_header, workspace["id"])
    assert validate_api_key_format(data["key"])
    assert "key_hash" not in data

    stored = fake_db.tables["api_keys"][0]
    assert stored["key_hash"] == hash_api_key(data["key"])
    assert stored["key_prefix"] == "sbk"

    listed = client.get(f"/api/v1/api-keys?workspace_id={workspace['id']}", headers=auth_header).json()["data"]
    assert len(listed) == 1
    assert "key" not in listed[0]
    assert "key_hash" not in listed[0]
    assert listed[0]["key_display"] == mask_api_key(data["key"])


def test_keys_are_listed_distinctly(client, auth_header, workspace):
    first = _create_key(client, auth_header, workspace["id"])
    second = _create_key(client, auth_header, workspace["id"])
    assert first["key_display"] == f"{first['key'][:7]}...{first['key'][-4:]}"

    listed = client.get(f"/api/v1/api-keys?workspace_id={workspace['id']}", headers=auth_header).json()["data"]
    assert {k["key_display"] for k in listed} == {first["key_display"], second["key_display"]}


def test_only_owner_creates_keys(client, auth_header, workspace):
    admin_id = str(uuid.uuid4())
    client.post(
        f"/api/v1/workspaces/{workspace['id']}/members",
        json={"user_id": admin_id, "role": "admin"},
        headers=auth_header,
    )
    admin_header = {"Authorization": f"Bearer {make_token(admin_id)}"}

    resp = client.post(
        "/api/v1/api-keys",
        json={"workspace_id": workspace["id"], "name": "CI", "permissions": ["apikey:manage"]},
        headers=admin_header,
    )
    assert resp.status_code == 403

    # Admins still see the workspace's keys
    assert client.get(f"/api/v1/api-keys?workspace_id={workspace['id']}", headers=admin_header).status_code == 200


def test_create_key_unknown_permission(client, auth_header, workspace):
    resp = client.post(
        "/api/v1/api-keys",
        json={"workspace_id": workspace["id"], "name": "Bad", "permissions": ["rockets:launch"]},
        headers=auth_header,
    )
    assert resp.status_code == 422


def test_api_key_authenticates(client, auth_header, workspace, bot):
    key = _create_key(client, auth_header, workspace["id"])["key"]
    resp = client.get(f"/api/v1/bots?workspace_id={workspace['id']}", headers={"X-API-Key": key})
    assert resp.status_code == 200
    assert [b["id"] for b in resp.json()["data"]] == [bot["id"]]


def test_api_key_records_last_used(client, fake_db, auth_header, workspace):
    key = _create_key(client, auth_header, workspace["id"])["key"]
    client.get("/api/v1/auth/me", headers={"X-API-Key": key})
    assert fake_db.tables["api_keys"][0]["last_used_at"]


def test_api_key_missing_permission(client, auth_header, workspace):
    key = _create_key(client, auth_header, workspace["id"], permissions=["chatbot:read"])["key"]
    resp = client.post(
        "/api/v1/bots",
        json={"workspace_id": workspace["id"], "name": "Nope"},
        headers={"X-API-Key": key},
    )
    assert resp.status_code == 403


def test_api_key_scoped_to_workspace(client, auth_header, workspace):
    other = client.post("/api/v1/workspaces", json={"name": "Other"}, headers=auth_header).json()["data"]
    key = _create_key(client, auth_header, workspace["id"])["key"]
    resp = client.get(f"/api/v1/bots?workspace_id={other['id']}", headers={"X-API-Key": key})
    assert resp.status_code == 403


def test_api_key_cannot_create_workspace(client, auth_header, workspace):
    key = _create_key(client, auth_header, workspace["id"])["key"]
    resp = client.post("/api/v1/workspaces", json={"name": "Sneaky"}, headers={"X-API-Key": key})
    assert resp.status_code == 403


def test_invalid_api_key(client):
    resp = client.get("/api/v1/auth/me", headers={"X-API-Key": "sbk_" + "x" * 43})
    assert resp.status_code == 401


def test_inactive_api_key(client, fake_db, auth_header, workspace):
    key = _create_key(client, auth_header, workspace["id"])["key"]
    fake_db.tables["api_keys"][0]["is_active"] = False
    resp = client.get("/api/v1/auth/me", headers={"X-API-Key": key})
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "API key is inactive"


def test_expired_api_key(client, fake_db, auth_header, workspace):
    key = _create_key(client, auth_header, workspace["id"])["key"]
    fake_db.tables["api_keys"][0]["expires_at"] = "2020-01-01T00:00:00+00:00"
    resp = client.get("/api/v1/auth/me", headers={"X-API-Key": key})
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "API key has expired"


def test_delete_key(client, fake_db, auth_header, workspace):
    data = _create_key(client, auth_header, workspace["id"])
    resp = client.delete(f"/api/v1/api-keys/{data['id']}", headers=auth_header)
    assert resp.status_code == 204
    assert fake_db.tables["api_keys"] == []

    resp = client.get("/api/v1/auth/me", headers={"X-API-Key": data["key"]})
    assert resp.status_code == 401


def test_delete_missing_key(client, auth_header):
    resp = client.delete("/api/v1/api-keys/does-not-exist", headers=auth_header)
    assert resp.status_code == 404
