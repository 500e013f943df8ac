"""CORS configuration and security headers."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from sitebot.config.settings import get_settings

# Routes that third-party sites load or call from their own origin
PUBLIC_WIDGET_PREFIXES = ("/widget.js", "/widget/", "/api/v1/widget/")

WIDGET_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, X-API-Key, X-Bot-Id",
    "Access-Control-Max-Age": "86400",
}


def is_widget_path(path: str) -> bool:
    return path.startswith(PUBLIC_WIDGET_PREFIXES)


class WidgetCORSMiddleware(BaseHTTPMiddleware):
    """Open CORS for widget routes, which are called from any customer origin."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if not is_widget_path(request.url.path):
            return await call_next(request)

        if request.method == "OPTIONS":
            return Response(status_code=204, headers=WIDGET_CORS_HEADERS)

        response = await call_next(request)
        for name, value in WIDGET_CORS_HEADERS.items():
            response.headers[name] = value
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if not is_widget_path(request.url.path):
            response.headers.setdefault("X-Frame-Options", "DENY")
        return response


def configure_cors(app: FastAPI) -> None:
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-API-Key", "X-Request-ID", "X-GitHub-Token"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
    )
