"""Analytics summaries for bots and workspaces."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from sitebot.analytics import service
from sitebot.auth.dependencies import CurrentUser, require_permission
from sitebot.bots.service import get_bot_for_user
from sitebot.workspaces.service import ensure_workspace_access

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])

read = require_permission("analytics:read")


def _check_range(start: datetime | None, end: datetime | None) -> None:
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must be before end")


@router.get("/bots/{bot_id}", summary="Bot analytics", description="Widget loads, sessions and messages. Defaults to the last 30 days.")
async def bot_analytics(
    bot_id: str,
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    user: CurrentUser = Depends(read),
):
    _check_range(start, end)
    get_bot_for_user(bot_id, user)
    return {"status": "success", "data": service.bot_summary(bot_id, start, end)}


@router.get("/workspaces/{workspace_id}", summary="Workspace usage")
async def workspace_analytics(
    workspace_id: str,
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    user: CurrentUser = Depends(read),
):
    _check_range(start, end)
    ensure_workspace_access(workspace_id, user)
    return {"status": "success", "data": service.workspace_usage(workspace_id, start, end)}
