"""Business logic for bots. Every operation goes through the owning workspace's access check."""

import logging

from fastapi import HTTPException
from pydantic import ValidationError

from sitebot.auth.dependencies import CurrentUser
from sitebot.bots import repository
from sitebot.bots.schemas import BotSettings
from sitebot.db.models import ALL_MEMBER_ROLES, BOT_DRAFT, MANAGER_ROLES
from sitebot.ingestion.vector_store import get_vector_store
from sitebot.workspaces.service import ensure_workspace_access

logger = logging.getLogger(__name__)


def get_bot_for_user(bot_id: str, user: CurrentUser, roles: set[str] = ALL_MEMBER_ROLES) -> tuple[dict, dict]:
    """Return (bot, workspace). 404 if the bot is missing, 403/404 from the workspace check."""
    bot = repository.get_by_id(bot_id)
    if not bot:
        raise HTTPException(status_code=404, detail="Bot not found")
    return bot, ensure_workspace_access(bot["workspace_id"], user, roles)


def bot_settings(bot: dict) -> BotSettings:
    """Stored settings over defaults. Unknown keys are ignored; invalid settings fall back to defaults."""
    try:
        return BotSettings.model_validate(bot.get("settings") or {})
    except ValidationError:
        logger.warning("Invalid stored settings for bot %s, using defaults", bot.get("id"))
        return BotSettings()


def create_bot(user: CurrentUser, data: dict) -> dict:
    ensure_workspace_access(data["workspace_id"], user)
    settings = data.get("settings") or BotSettings().model_dump()
    row = {
        "name": data["name"],
        "description": data.get("description"),
        "status": BOT_DRAFT,
        "settings": settings,
    }
    return repository.create(data["workspace_id"], user.id, row)


def list_bots(workspace_id: str, user: CurrentUser) -> list[dict]:
    ensure_workspace_access(workspace_id, user)
    return repository.list_by_workspace(workspace_id)


def get_bot(bot_id: str, user: CurrentUser) -> dict:
    bot, _ = get_bot_for_user(bot_id, user)
    return bot


def update_bot(bot_id: str, user: CurrentUser, data: dict) -> dict:
    bot, _ = get_bot_for_user(bot_id, user)
    update_data = {k: v for k, v in data.items() if v is not None}
    if not update_data:
        return bot
    return repository.update(bot_id, update_data)


async def delete_bot(bot_id: str, user: CurrentUser) -> None:
    get_bot_for_user(bot_id, user, MANAGER_ROLES)
    await get_vector_store().delete_namespace(bot_id)
    repository.delete_training_data(bot_id)
    repository.delete(bot_id)
    logger.info("Deleted bot %s", bot_id)


def get_config(bot_id: str, user: CurrentUser) -> dict:
    bot, _ = get_bot_for_user(bot_id, user)
    return {"bot_id": bot["id"], "name": bot["name"], "settings": bot_settings(bot).model_dump()}


def update_config(bot_id: str, user: CurrentUser, settings: BotSettings) -> dict:
    bot, _ = get_bot_for_user(bot_id, user)
    updated = repository.update(bot_id, {"settings": settings.model_dump()})
    return {"bot_id": updated["id"], "name": updated["name"], "settings": updated["settings"]}


def start_training(bot_id: str, user: CurrentUser, urls: list[str], source: str = "urls") -> tuple[dict, dict]:
    """Create the crawl job row; the pipeline itself runs in the background."""
    bot, _ = get_bot_for_user(bot_id, user)
    job = repository.create_job(bot_id, urls, source)
    return bot, job


def list_training_jobs(bot_id: str, user: CurrentUser) -> list[dict]:
    get_bot_for_user(bot_id, user)
    return repository.list_jobs(bot_id)
