"""Conversation transcript endpoints."""

from fastapi import APIRouter, Depends, Query

from sitebot.auth.dependencies import CurrentUser, require_permission
from sitebot.conversations.schemas import ConversationListResponse
from sitebot.conversations.service import delete_conversation, get_conversation, list_conversations

router = APIRouter(tags=["Conversations"])

read = require_permission("conversation:read")


@router.get("/api/v1/bots/{bot_id}/conversations", summary="List conversations", description="A bot's conversations, paginated, most recently active first.")
async def list_all(
    bot_id: str,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(read),
):
    conversations, total = list_conversations(bot_id, user, page, per_page)
    return ConversationListResponse(data=conversations, page=page, per_page=per_page, total=total)


@router.get("/api/v1/conversations/{conversation_id}", summary="Get a conversation", description="A single conversation with its full transcript.")
async def get(conversation_id: str, user: CurrentUser = Depends(read)):
    conv, messages = get_conversation(conversation_id, user)
    return {"status": "success", "data": {**conv, "messages": messages}}


@router.delete("/api/v1/conversations/{conversation_id}", status_code=204, summary="Delete a conversation")
async def delete(conversation_id: str, user: CurrentUser = Depends(require_permission("chatbot:write"))):
    delete_conversation(conversation_id, user)
