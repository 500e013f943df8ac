"""Conversation access checks. Conversations belong to a bot, which belongs to a workspace."""

from fastapi import HTTPException

from sitebot.auth.dependencies import CurrentUser
from sitebot.bots.service import get_bot_for_user
from sitebot.conversations import repository


def list_conversations(bot_id: str, user: CurrentUser, page: int, per_page: int) -> tuple[list[dict], int]:
    get_bot_for_user(bot_id, user)
    return repository.list_by_bot(bot_id, page, per_page)


def _get_accessible(conversation_id: str, user: CurrentUser) -> dict:
    conv = repository.get_by_id(conversation_id)
    if not conv:
        raise HTTPException(status_code=404, detail="Conversation not found")
    get_bot_for_user(conv["bot_id"], user)
    return conv


def get_conversation(conversation_id: str, user: CurrentUser) -> tuple[dict, list[dict]]:
    conv = _get_accessible(conversation_id, user)
    return conv, repository.get_messages(conversation_id)


def delete_conversation(conversation_id: str, user: CurrentUser) -> None:
    _get_accessible(conversation_id, user)
    repository.delete(conversation_id)
