"""Bot CRUD, widget configuration and training endpoints."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from sitebot.auth.dependencies import CurrentUser, require_permission
from sitebot.bots import service
from sitebot.bots.schemas import BotSettings, CreateBotRequest, TrainContentRequest, TrainRequest, UpdateBotRequest
from sitebot.ingestion.training import get_training_pipeline

router = APIRouter(prefix="/api/v1/bots", tags=["Bots"])

read = require_permission("chatbot:read")
write = require_permission("chatbot:write")


@router.get("", summary="List bots", description="Bots in a workspace, newest first.")
async def list_all(workspace_id: str = Query(...), user: CurrentUser = Depends(read)):
    return {"status": "success", "data": service.list_bots(workspace_id, user)}


@router.post("", status_code=201, summary="Create a bot")
async def create(body: CreateBotRequest, user: CurrentUser = Depends(write)):
    return {"status": "success", "data": service.create_bot(user, body.model_dump())}


@router.get("/{bot_id}", summary="Get a bot")
async def get(bot_id: str, user: CurrentUser = Depends(read)):
    return {"status": "success", "data": service.get_bot(bot_id, user)}


@router.patch("/{bot_id}", summary="Update a bot")
async def patch(bot_id: str, body: UpdateBotRequest, user: CurrentUser = Depends(write)):
    return {"status": "success", "data": service.update_bot(bot_id, user, body.model_dump())}


@router.delete("/{bot_id}", status_code=204, summary="Delete a bot", description="Removes the bot, its vectors and its training data.")
async def delete(bot_id: str, user: CurrentUser = Depends(write)):
    await service.delete_bot(bot_id, user)


@router.get("/{bot_id}/config", summary="Get widget configuration")
async def get_config(bot_id: str, user: CurrentUser = Depends(read)):
    return {"status": "success", "data": service.get_config(bot_id, user)}


@router.put("/{bot_id}/config", summary="Replace widget configuration")
async def put_config(bot_id: str, body: BotSettings, user: CurrentUser = Depends(write)):
    return {"status": "success", "data": service.update_config(bot_id, user, body)}


@router.post("/{bot_id}/train", status_code=202, summary="Train from URLs", description="Scrapes, chunks and embeds the given pages in the background.")
async def train(bot_id: str, body: TrainRequest, background_tasks: BackgroundTasks, user: CurrentUser = Depends(write)):
    urls = [str(u) for u in body.urls]
    _, job = service.start_training(bot_id, user, urls)
    background_tasks.add_task(
        get_training_pipeline().train_from_urls, bot_id, urls, retrain=body.retrain, job_id=job["id"], crawl=body.crawl
    )
    return {"status": "success", "data": job}


@router.get("/{bot_id}/train", summary="List training jobs")
async def training_jobs(bot_id: str, user: CurrentUser = Depends(read)):
    return {"status": "success", "data": service.list_training_jobs(bot_id, user)}


@router.post("/{bot_id}/train/content", status_code=202, summary="Train from raw text")
async def train_content(bot_id: str, body: TrainContentRequest, background_tasks: BackgroundTasks, user: CurrentUser = Depends(write)):
    _, job = service.start_training(bot_id, user, [body.url] if body.url else [], source="content")
    background_tasks.add_task(
        get_training_pipeline().train_from_content, bot_id, body.content, title=body.title, url=body.url, job_id=job["id"]
    )
    return {"status": "success", "data": job}
