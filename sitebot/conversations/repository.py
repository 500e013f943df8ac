"""Data access layer for conversations and their messages."""

from datetime import datetime, timezone
from typing import Any

from sitebot.db.client import get_supabase
from sitebot.db.models import CONVERSATIONS, MESSAGES


def get_or_create(bot_id: str, session_id: str, metadata: dict[str, Any] | None = None) -> dict:
    """A conversation is keyed by (bot_id, session_id) and created on the first message."""
    db = get_supabase()
    result = db.table(CONVERSATIONS).select("*").eq("bot_id", bot_id).eq("session_id", session_id).execute()
    if result.data:
        return result.data[0]
    row = {"bot_id": bot_id, "session_id": session_id, "metadata": metadata or {}, "message_count": 0}
    return db.table(CONVERSATIONS).insert(row).execute().data[0]


def list_by_bot(bot_id: str, page: int = 1, per_page: int = 20) -> tuple[list[dict], int]:
    db = get_supabase()
    offset = (page - 1) * per_page

    count_result = db.table(CONVERSATIONS).select("id", count="exact").eq("bot_id", bot_id).execute()
    total = count_result.count or 0

    result = (
        db.table(CONVERSATIONS)
        .select("*")
        .eq("bot_id", bot_id)
        .order("updated_at", desc=True)
        .range(offset, offset + per_page - 1)
        .execute()
    )
    return result.data, total


def get_by_id(conversation_id: str) -> dict | None:
    db = get_supabase()
    result = db.table(CONVERSATIONS).select("*").eq("id", conversation_id).execute()
    return result.data[0] if result.data else None


def get_messages(conversation_id: str, limit: int | None = None) -> list[dict]:
    """Messages oldest first. With `limit`, only the most recent ones."""
    db = get_supabase()
    query = db.table(MESSAGES).select("*").eq("conversation_id", conversation_id)
    if limit is None:
        return query.order("created_at").execute().data
    recent = query.order("created_at", desc=True).limit(limit).execute().data
    return list(reversed(recent))


def get_with_messages(conversation_id: str) -> tuple[dict | None, list[dict]]:
    conv = get_by_id(conversation_id)
    if not conv:
        return None, []
    return conv, get_messages(conversation_id)


def add_message(conversation: dict, role: str, content: str, metadata: dict[str, Any] | None = None) -> dict:
    db = get_supabase()
    row = {"conversation_id": conversation["id"], "role": role, "content": content, "metadata": metadata or {}}
    message = db.table(MESSAGES).insert(row).execute().data[0]
    conversation["message_count"] = (conversation.get("message_count") or 0) + 1
    db.table(CONVERSATIONS).update({
        "message_count": conversation["message_count"],
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }).eq("id", conversation["id"]).execute()
    return message


def delete(conversation_id: str) -> bool:
    db = get_supabase()
    db.table(MESSAGES).delete().eq("conversation_id", conversation_id).execute()
    result = db.table(CONVERSATIONS).delete().eq("id", conversation_id).execute()
    return bool(result.data)
