"""Authenticated chat endpoints for testing a bot from the dashboard or the API."""

from fastapi import APIRouter, Depends, Request
from starlette.responses import StreamingResponse

from sitebot.auth.dependencies import CurrentUser, require_permission
from sitebot.bots.service import get_bot_for_user
from sitebot.chat.schemas import ChatRequest
from sitebot.chat.service import get_chat_service

router = APIRouter(prefix="/api/v1/chat", tags=["Chat"])

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


@router.post("", summary="Ask a bot", description="Answer a message from the bot's trained content and record it in the session's transcript.")
async def chat(body: ChatRequest, user: CurrentUser = Depends(require_permission("chatbot:read"))):
    bot, _ = get_bot_for_user(body.bot_id, user)
    result = await get_chat_service().answer(bot, body.message, body.session_id, metadata={"source": "api"})
    return {"status": "success", "data": result}


@router.post("/stream", summary="Ask a bot (streaming)", description="Same as POST /api/v1/chat, streamed as server-sent events.")
async def stream(body: ChatRequest, request: Request, user: CurrentUser = Depends(require_permission("chatbot:read"))):
    bot, _ = get_bot_for_user(body.bot_id, user)
    events = get_chat_service().stream(
        bot, body.message, body.session_id, metadata={"source": "api"}, is_disconnected=request.is_disconnected
    )
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)
