"""Liveness and dependency health checks."""

import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Query
from starlette.responses import JSONResponse

from sitebot.config.settings import get_settings
from sitebot.ingestion.vector_store import get_vector_store
from sitebot.llm.client import get_llm_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

CHECK_TIMEOUT_SECONDS = 5.0


async def check_openai() -> str:
    await get_llm_client().ping()
    return "healthy"


async def check_pinecone() -> str:
    await get_vector_store().stats()
    return "healthy"


async def _run_check(name: str, check) -> str:
    try:
        return await asyncio.wait_for(check(), CHECK_TIMEOUT_SECONDS)
    except Exception as e:
        logger.warning("Health check %s failed: %s", name, e)
        return "unhealthy"


@router.get("/health", summary="Health check", description="Service status. With deep=true (the default) also checks OpenAI and Pinecone.")
async def health_check(deep: bool = Query(True)):
    settings = get_settings()
    services = {"api": "healthy"}
    if deep:
        openai_status, pinecone_status = await asyncio.gather(
            _run_check("openai", check_openai),
            _run_check("pinecone", check_pinecone),
        )
        services.update(openai=openai_status, pinecone=pinecone_status)

    healthy = all(status == "healthy" for status in services.values())
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "services": services,
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)
