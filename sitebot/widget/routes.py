"""Public widget endpoints, called from customer sites with open CORS."""

import logging
from pathlib import Path

from fastapi import APIRouter, Header, HTTPException, Query, Request
from starlette.responses import FileResponse, StreamingResponse

from sitebot.analytics import service as analytics
from sitebot.auth.dependencies import lookup_api_key
from sitebot.bots import repository as bots
from sitebot.bots.service import bot_settings
from sitebot.chat.routes import SSE_HEADERS
from sitebot.chat.schemas import WidgetChatRequest
from sitebot.chat.service import get_chat_service, new_session_id
from sitebot.db.models import BOT_ACTIVE, PLAN_FREE
from sitebot.rate_limit.limiter import client_identifier, get_tier_limiter
from sitebot.workspaces import repository as workspaces

logger = logging.getLogger(__name__)

WIDGET_JS = Path(__file__).parent / "static" / "widget.js"

# Generation settings stay server-side
PRIVATE_SETTINGS = {"model", "temperature", "max_tokens", "top_k", "system_prompt"}

router = APIRouter(tags=["Widget"])


def _active_bot(bot_id: str) -> dict:
    bot = bots.get_by_id(bot_id)
    if not bot:
        raise HTTPException(status_code=404, detail="Bot not found")
    if bot.get("status") != BOT_ACTIVE:
        raise HTTPException(status_code=403, detail="Bot is not active")
    return bot


def _request_metadata(request: Request) -> dict:
    return {
        "ip": client_identifier(request),
        "user_agent": request.headers.get("user-agent", "unknown"),
        "origin": request.headers.get("origin"),
        "referrer": request.headers.get("referer", "direct"),
    }


@router.get("/widget.js", include_in_schema=False)
async def widget_script():
    return FileResponse(WIDGET_JS, media_type="application/javascript", headers={"Cache-Control": "public, max-age=3600"})


@router.get("/api/v1/widget/config", summary="Widget configuration", description="Public appearance settings for an active bot.")
async def widget_config(request: Request, bot_id: str = Query(...)):
    bot = _active_bot(bot_id)
    settings = bot_settings(bot).model_dump(exclude=PRIVATE_SETTINGS)
    settings["title"] = settings["title"] or bot["name"] or "Chat with us"
    analytics.track(analytics.WIDGET_LOADED, bot_id=bot_id, workspace_id=bot["workspace_id"], metadata=_request_metadata(request))
    return {"status": "success", "data": {"bot_id": bot["id"], "name": bot["name"], "settings": settings}}


@router.post("/api/v1/widget/chat", summary="Widget chat", description="Chat with an active bot. Rate limited per bot and visitor IP by the workspace plan.")
async def widget_chat(
    body: WidgetChatRequest,
    request: Request,
    x_bot_id: str | None = Header(None),
    x_api_key: str | None = Header(None),
):
    if not x_bot_id:
        raise HTTPException(status_code=400, detail="X-Bot-Id header is required")
    bot = _active_bot(x_bot_id)

    if x_api_key:
        key_row = lookup_api_key(x_api_key)
        if key_row["workspace_id"] != bot["workspace_id"]:
            raise HTTPException(status_code=401, detail="Invalid API key")

    workspace = workspaces.get_by_id(bot["workspace_id"]) or {}
    limit = await get_tier_limiter(workspace.get("plan") or PLAN_FREE).hit(f"widget:{bot['id']}:{client_identifier(request)}")
    if not limit.allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many messages, please wait a moment",
            headers={"Retry-After": str(limit.retry_after()), **limit.headers()},
        )

    metadata = {"source": "widget", **_request_metadata(request)}
    session_id = body.session_id
    if not session_id:
        session_id = new_session_id()
        analytics.track(analytics.CHAT_STARTED, bot["id"], bot["workspace_id"], session_id, metadata)
    analytics.track(analytics.MESSAGE_SENT, bot["id"], bot["workspace_id"], session_id)

    chat = get_chat_service()
    if body.stream:
        async def events():
            async for event in chat.stream(bot, body.message, session_id, metadata, request.is_disconnected):
                yield event
            analytics.track(analytics.MESSAGE_RECEIVED, bot["id"], bot["workspace_id"], session_id)

        return StreamingResponse(events(), media_type="text/event-stream", headers={**SSE_HEADERS, **limit.headers()})

    result = await chat.answer(bot, body.message, session_id, metadata)
    analytics.track(analytics.MESSAGE_RECEIVED, bot["id"], bot["workspace_id"], session_id)
    return {"status": "success", "data": result}
