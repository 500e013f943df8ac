"""Per-caller rate limiting for the authenticated API."""

import hashlib
import json

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from sitebot.auth.jwt import verify_token
from sitebot.config.settings import get_settings
from sitebot.rate_limit.limiter import RateLimitResult, client_identifier, get_limiter

EXEMPT_PATHS = {"/health", "/docs", "/redoc", "/openapi.json", "/widget.js", "/api/v1/billing/webhook"}

# The widget enforces its own plan-based limits per bot
EXEMPT_PREFIXES = ("/api/v1/widget/",)


def is_ai_path(path: str, method: str) -> bool:
    """Requests that call OpenAI: chat and training."""
    if method != "POST":
        return False
    parts = path.rstrip("/").split("/")
    # /api/v1/chat[/stream]
    if parts[1:4] == ["api", "v1", "chat"]:
        return True
    # /api/v1/bots/<id>/train[/content]
    return len(parts) >= 6 and parts[1:4] == ["api", "v1", "bots"] and parts[5] == "train"


def caller_identity(request: Request) -> str:
    api_key = request.headers.get("X-API-Key")
    if api_key:
        return "key:" + hashlib.sha256(api_key.encode()).hexdigest()[:16]

    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        try:
            return "user:" + verify_token(auth[7:])["sub"]
        except Exception:
            # Auth rejects it later; count it against the IP meanwhile
            pass
    return "ip:" + client_identifier(request)


def rate_limited_response(result: RateLimitResult, message: str) -> Response:
    body = {"status": "error", "error": {"type": "rate_limit", "message": message}}
    return Response(
        content=json.dumps(body),
        status_code=429,
        media_type="application/json",
        headers={"Retry-After": str(result.retry_after()), **result.headers()},
    )


class RateLimiterMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if request.method == "OPTIONS" or path in EXEMPT_PATHS or path.startswith(EXEMPT_PREFIXES):
            return await call_next(request)

        settings = get_settings()
        identity = caller_identity(request)

        if is_ai_path(path, request.method):
            ai = await get_limiter("ai", 60, settings.RATE_LIMIT_AI).hit(identity)
            if not ai.allowed:
                return rate_limited_response(ai, "AI generation rate limit exceeded")

        result = await get_limiter("standard", 60, settings.RATE_LIMIT_STANDARD).hit(identity)
        if not result.allowed:
            return rate_limited_response(result, "Rate limit exceeded")

        response = await call_next(request)
        for name, value in result.headers().items():
            response.headers[name] = value
        return response
