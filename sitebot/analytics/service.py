"""Widget analytics: fire-and-forget event tracking and summaries over a date window."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sitebot.db.client import get_supabase
from sitebot.db.models import ANALYTICS_EVENTS

logger = logging.getLogger(__name__)

WIDGET_LOADED = "widget_loaded"
CHAT_STARTED = "chat_started"
MESSAGE_SENT = "message_sent"
MESSAGE_RECEIVED = "message_received"
ERROR = "error"
EVENT_TYPES = {WIDGET_LOADED, CHAT_STARTED, MESSAGE_SENT, MESSAGE_RECEIVED, ERROR}
MESSAGE_EVENTS = [MESSAGE_SENT, MESSAGE_RECEIVED]

DEFAULT_WINDOW_DAYS = 30


def track(
    event_type: str,
    bot_id: str | None = None,
    workspace_id: str | None = None,
    session_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    """Record an event. Never raises: analytics must not break the request that triggered it."""
    row = {
        "event_type": event_type,
        "bot_id": bot_id,
        "workspace_id": workspace_id,
        "session_id": session_id,
        "metadata": metadata or {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    try:
        get_supabase().table(ANALYTICS_EVENTS).insert(row).execute()
    except Exception:
        logger.warning("Failed to track analytics event %s", event_type, exc_info=True)


def _window(start: datetime | None, end: datetime | None) -> tuple[str, str]:
    end = end or datetime.now(timezone.utc)
    start = start or end - timedelta(days=DEFAULT_WINDOW_DAYS)
    return start.isoformat(), end.isoformat()


def _events(column: str, value: str, start: datetime | None, end: datetime | None) -> list[dict]:
    start_iso, end_iso = _window(start, end)
    db = get_supabase()
    result = (
        db.table(ANALYTICS_EVENTS)
        .select("event_type, bot_id, session_id")
        .eq(column, value)
        .gte("timestamp", start_iso)
        .lte("timestamp", end_iso)
        .execute()
    )
    return result.data


def bot_summary(bot_id: str, start: datetime | None = None, end: datetime | None = None) -> dict:
    events = _events("bot_id", bot_id, start, end)
    sessions = {e["session_id"] for e in events if e.get("session_id")}
    messages = sum(1 for e in events if e["event_type"] in MESSAGE_EVENTS)
    return {
        "total_loads": sum(1 for e in events if e["event_type"] == WIDGET_LOADED),
        "unique_sessions": len(sessions),
        "total_messages": messages,
        "avg_messages_per_session": round(messages / len(sessions), 1) if sessions else 0,
    }


def workspace_usage(workspace_id: str, start: datetime | None = None, end: datetime | None = None) -> dict:
    events = _events("workspace_id", workspace_id, start, end)
    return {
        "total_messages": sum(1 for e in events if e["event_type"] in MESSAGE_EVENTS),
        "active_bots": len({e["bot_id"] for e in events if e.get("bot_id")}),
        "total_sessions": len({e["session_id"] for e in events if e.get("session_id")}),
    }
