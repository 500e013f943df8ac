"""Data access layer for bots and their crawl jobs."""

from datetime import datetime, timezone
from typing import Any

from sitebot.db.client import get_supabase
from sitebot.db.models import BOTS, CRAWL_JOBS, EMBEDDINGS, JOB_PENDING, SCRAPED_PAGES


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create(workspace_id: str, created_by: str, data: dict[str, Any]) -> dict:
    db = get_supabase()
    row = {"workspace_id": workspace_id, "created_by": created_by, **data}
    result = db.table(BOTS).insert(row).execute()
    return result.data[0]


def get_by_id(bot_id: str) -> dict | None:
    db = get_supabase()
    result = db.table(BOTS).select("*").eq("id", bot_id).execute()
    return result.data[0] if result.data else None


def list_by_workspace(workspace_id: str) -> list[dict]:
    db = get_supabase()
    result = db.table(BOTS).select("*").eq("workspace_id", workspace_id).order("created_at", desc=True).execute()
    return result.data


def update(bot_id: str, data: dict[str, Any]) -> dict | None:
    db = get_supabase()
    result = db.table(BOTS).update({**data, "updated_at": _now()}).eq("id", bot_id).execute()
    return result.data[0] if result.data else None


def set_status(bot_id: str, status: str, **extra) -> None:
    update(bot_id, {"status": status, **extra})


def delete(bot_id: str) -> bool:
    db = get_supabase()
    result = db.table(BOTS).delete().eq("id", bot_id).execute()
    return bool(result.data)


def delete_training_data(bot_id: str) -> None:
    """Remove embedding metadata and scraped pages. Vectors live in Pinecone and go separately."""
    db = get_supabase()
    db.table(EMBEDDINGS).delete().eq("bot_id", bot_id).execute()
    db.table(SCRAPED_PAGES).delete().eq("bot_id", bot_id).execute()


# --- Crawl jobs ---

def create_job(bot_id: str, urls: list[str], source: str = "urls") -> dict:
    db = get_supabase()
    row = {"bot_id": bot_id, "urls": urls, "source": source, "status": JOB_PENDING, "pages_scraped": 0, "chunks_created": 0}
    result = db.table(CRAWL_JOBS).insert(row).execute()
    return result.data[0]


def update_job(job_id: str, data: dict[str, Any]) -> None:
    db = get_supabase()
    db.table(CRAWL_JOBS).update(data).eq("id", job_id).execute()


def list_jobs(bot_id: str, limit: int = 20) -> list[dict]:
    db = get_supabase()
    result = db.table(CRAWL_JOBS).select("*").eq("bot_id", bot_id).order("created_at", desc=True).limit(limit).execute()
    return result.data
