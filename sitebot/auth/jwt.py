"""Supabase access token verification."""

import jwt

from sitebot.config.settings import get_settings

AUDIENCE = "authenticated"


def verify_token(token: str) -> dict:
    """Decode and validate a Supabase JWT. Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError."""
    settings = get_settings()
    return jwt.decode(token, settings.SUPABASE_JWT_SECRET, algorithms=["HS256"], audience=AUDIENCE)
