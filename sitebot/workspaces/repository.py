"""Data access layer for workspaces and their members."""

from typing import Any

from sitebot.db.client import get_supabase
from sitebot.db.models import WORKSPACE_MEMBERS, WORKSPACES


def create(owner_id: str, data: dict[str, Any]) -> dict:
    db = get_supabase()
    result = db.table(WORKSPACES).insert({"owner_id": owner_id, **data}).execute()
    return result.data[0]


def get_by_id(workspace_id: str) -> dict | None:
    db = get_supabase()
    result = db.table(WORKSPACES).select("*").eq("id", workspace_id).execute()
    return result.data[0] if result.data else None


def list_for_user(user_id: str) -> list[dict]:
    """Workspaces the user owns or is a member of, newest first."""
    db = get_supabase()
    owned = db.table(WORKSPACES).select("*").eq("owner_id", user_id).execute().data
    member_rows = db.table(WORKSPACE_MEMBERS).select("workspace_id").eq("user_id", user_id).execute().data
    owned_ids = {w["id"] for w in owned}
    extra_ids = [m["workspace_id"] for m in member_rows if m["workspace_id"] not in owned_ids]
    shared = db.table(WORKSPACES).select("*").in_("id", extra_ids).execute().data if extra_ids else []
    return sorted(owned + shared, key=lambda w: w.get("created_at") or "", reverse=True)


def update(workspace_id: str, data: dict[str, Any]) -> dict | None:
    db = get_supabase()
    result = db.table(WORKSPACES).update(data).eq("id", workspace_id).execute()
    return result.data[0] if result.data else None


def delete(workspace_id: str) -> bool:
    db = get_supabase()
    result = db.table(WORKSPACES).delete().eq("id", workspace_id).execute()
    return bool(result.data)


def get_member(workspace_id: str, user_id: str) -> dict | None:
    db = get_supabase()
    result = (
        db.table(WORKSPACE_MEMBERS)
        .select("*")
        .eq("workspace_id", workspace_id)
        .eq("user_id", user_id)
        .execute()
    )
    return result.data[0] if result.data else None


def list_members(workspace_id: str) -> list[dict]:
    db = get_supabase()
    return db.table(WORKSPACE_MEMBERS).select("*").eq("workspace_id", workspace_id).order("created_at").execute().data


def add_member(workspace_id: str, user_id: str, role: str) -> dict:
    db = get_supabase()
    result = db.table(WORKSPACE_MEMBERS).insert({"workspace_id": workspace_id, "user_id": user_id, "role": role}).execute()
    return result.data[0]


def remove_member(workspace_id: str, user_id: str) -> bool:
    db = get_supabase()
    result = db.table(WORKSPACE_MEMBERS).delete().eq("workspace_id", workspace_id).eq("user_id", user_id).execute()
    return bool(result.data)
