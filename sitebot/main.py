"""SiteBot API: FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sitebot.analytics.routes import router as analytics_router
from sitebot.api_keys.routes import router as api_keys_router
from sitebot.auth.routes import router as auth_router
from sitebot.billing.routes import router as billing_router
from sitebot.bots.routes import router as bots_router
from sitebot.chat.routes import router as chat_router
from sitebot.config.cors import SecurityHeadersMiddleware, WidgetCORSMiddleware, configure_cors
from sitebot.config.logging import configure_logging
from sitebot.config.settings import get_settings
from sitebot.config.validation import check_environment
from sitebot.conversations.routes import router as conversations_router
from sitebot.github.routes import router as github_router
from sitebot.health.routes import router as health_router
from sitebot.middleware.error_handler import register_error_handlers
from sitebot.middleware.rate_limiter import RateLimiterMiddleware
from sitebot.middleware.request_id import RequestIDMiddleware
from sitebot.widget.routes import router as widget_router
from sitebot.workspaces.routes import router as workspaces_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    check_environment(settings)
    logger.info("SiteBot API %s starting (%s)", settings.VERSION, settings.ENVIRONMENT)
    yield


app = FastAPI(
    title="SiteBot API",
    description=(
        "Backend for AI chatbots trained on your website and embedded with a single script tag.\n\n"
        "## Features\n"
        "- Workspaces with members and plan-based limits\n"
        "- Bot training: scrape, chunk, embed and index site content\n"
        "- Retrieval-augmented chat with SSE streaming\n"
        "- Embeddable widget with open CORS and per-visitor rate limits\n"
        "- Scoped API keys, analytics, Stripe billing and GitHub issues\n\n"
        "## Authentication\n"
        "All endpoints except `/health`, `/widget.js`, `/api/v1/widget/*`, `/api/v1/auth/*` and the billing "
        "webhook require authentication.\n"
        "Use `Authorization: Bearer <supabase access token>` or `X-API-Key: <key>` header."
    ),
    version=get_settings().VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Health check endpoints"},
        {"name": "Auth", "description": "Supabase Auth: register, login, token refresh, logout"},
        {"name": "API Keys", "description": "Workspace-scoped API keys"},
        {"name": "Workspaces", "description": "Workspaces and their members"},
        {"name": "Bots", "description": "Bot CRUD, widget configuration and training"},
        {"name": "Chat", "description": "Ask a bot, with optional streaming"},
        {"name": "Conversations", "description": "Chat transcripts"},
        {"name": "Widget", "description": "Public endpoints used by the embeddable widget"},
        {"name": "Analytics", "description": "Widget and usage analytics"},
        {"name": "Billing", "description": "Stripe subscriptions"},
        {"name": "GitHub", "description": "Issue tracking"},
    ],
)

# --- Middleware (the last one added runs first) ---
app.add_middleware(RateLimiterMiddleware)
configure_cors(app)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(WidgetCORSMiddleware)
app.add_middleware(RequestIDMiddleware)

# --- Error handlers ---
register_error_handlers(app)

# --- Routes ---
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(api_keys_router)
app.include_router(workspaces_router)
app.include_router(bots_router)
app.include_router(chat_router)
app.include_router(conversations_router)
app.include_router(widget_router)
app.include_router(analytics_router)
app.include_router(billing_router)
app.include_router(github_router)
