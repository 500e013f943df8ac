"""Startup checks for credential formats."""

import logging
from urllib.parse import urlparse

from sitebot.config.settings import Settings

logger = logging.getLogger(__name__)


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_environment(settings: Settings) -> list[str]:
    """Return a list of human-readable configuration problems."""
    problems: list[str] = []

    if not _is_http_url(settings.SUPABASE_URL):
        problems.append("SUPABASE_URL must be a valid URL")
    if not _is_http_url(settings.APP_URL):
        problems.append("APP_URL must be a valid URL")
    if not settings.OPENAI_API_KEY.startswith("sk-"):
        problems.append("OPENAI_API_KEY must start with sk-")
    if not settings.PINECONE_API_KEY:
        problems.append("PINECONE_API_KEY is required")
    if len(settings.SUPABASE_JWT_SECRET) < 32:
        problems.append("SUPABASE_JWT_SECRET must be at least 32 characters")

    if settings.REDIS_URL and urlparse(settings.REDIS_URL).scheme not in ("redis", "rediss"):
        problems.append("REDIS_URL must be a redis:// or rediss:// URL")
    if settings.STRIPE_SECRET_KEY and not settings.STRIPE_SECRET_KEY.startswith("sk_"):
        problems.append("STRIPE_SECRET_KEY must start with sk_")
    if settings.STRIPE_WEBHOOK_SECRET and not settings.STRIPE_WEBHOOK_SECRET.startswith("whsec_"):
        problems.append("STRIPE_WEBHOOK_SECRET must start with whsec_")
    if settings.ENVIRONMENT not in ("development", "test", "production"):
        problems.append("ENVIRONMENT must be one of development, test, production")

    return problems


def check_environment(settings: Settings) -> None:
    """Abort in production on bad configuration, warn elsewhere."""
    problems = validate_environment(settings)
    if not problems:
        return
    message = "Environment validation failed:\n" + "\n".join(problems)
    if settings.is_production:
        raise RuntimeError(message)
    for problem in problems:
        logger.warning("Environment: %s", problem)
