"""Auth dependencies for FastAPI route injection."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import Depends, HTTPException, Request

from sitebot.api_keys.keys import ADMIN_PERMISSIONS, has_permission, hash_api_key, is_key_expired
from sitebot.auth.jwt import verify_token
from sitebot.db.client import get_supabase
from sitebot.db.models import API_KEYS


@dataclass
class CurrentUser:
    id: str
    email: str
    # Set when authenticated with an API key, which is scoped to one workspace
    workspace_id: str | None = None
    permissions: list[str] = field(default_factory=lambda: list(ADMIN_PERMISSIONS))
    access_token: str | None = None

    @property
    def via_api_key(self) -> bool:
        return self.workspace_id is not None

    def can(self, permission: str) -> bool:
        return has_permission(self.permissions, permission)


def _extract_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth[7:]
    return None


def _extract_api_key(request: Request) -> str | None:
    return request.headers.get("X-API-Key")


def lookup_api_key(api_key: str) -> dict:
    """Resolve an API key to its row, enforcing active/expiry. Updates last_used_at."""
    key_hash = hash_api_key(api_key)
    db = get_supabase()
    result = (
        db.table(API_KEYS)
        .select("id, user_id, workspace_id, permissions, is_active, expires_at")
        .eq("key_hash", key_hash)
        .execute()
    )
    if not result.data:
        raise HTTPException(status_code=401, detail="Invalid API key")

    key_row = result.data[0]
    if not key_row.get("is_active", True):
        raise HTTPException(status_code=401, detail="API key is inactive")
    if is_key_expired(key_row.get("expires_at")):
        raise HTTPException(status_code=401, detail="API key has expired")

    db.table(API_KEYS).update({"last_used_at": datetime.now(timezone.utc).isoformat()}).eq("id", key_row["id"]).execute()
    return key_row


async def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: authenticate via Bearer JWT or X-API-Key."""

    # Try JWT first
    token = _extract_bearer_token(request)
    if token:
        try:
            payload = verify_token(token)
        except Exception:
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        request.state.user_id = payload["sub"]
        return CurrentUser(id=payload["sub"], email=payload.get("email", ""), access_token=token)

    # Try API key
    api_key = _extract_api_key(request)
    if api_key:
        key_row = lookup_api_key(api_key)
        request.state.user_id = key_row["user_id"]
        return CurrentUser(
            id=key_row["user_id"],
            email="",
            workspace_id=key_row["workspace_id"],
            permissions=key_row.get("permissions") or [],
        )

    raise HTTPException(status_code=401, detail="Missing authentication credentials")


def require_permission(permission: str):
    """Dependency factory: reject API keys lacking `permission`."""

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.can(permission):
            raise HTTPException(status_code=403, detail=f"API key lacks permission: {permission}")
        return user

    return dependency


def ensure_key_scope(user: CurrentUser, workspace_id: str) -> None:
    """An API key may only touch its own workspace."""
    if user.via_api_key and user.workspace_id != workspace_id:
        raise HTTPException(status_code=403, detail="API key is not valid for this workspace")
