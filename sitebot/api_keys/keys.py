"""API key generation, hashing and permission checks.

Keys look like ``sbk_<43 url-safe base64 chars>``. Only the SHA-256 hex digest
is stored; the plaintext key is shown to the user once at creation.
"""

import base64
import hashlib
import re
import secrets
from datetime import datetime, timezone

KEY_PREFIX = "sbk"
KEY_PATTERN = re.compile(r"^sbk_[A-Za-z0-9\-_]{43}$")

DEFAULT_PERMISSIONS = [
    "chatbot:read",
    "chatbot:write",
    "conversation:read",
    "analytics:read",
]

ADMIN_PERMISSIONS = DEFAULT_PERMISSIONS + [
    "workspace:manage",
    "user:manage",
    "billing:manage",
    "apikey:manage",
]


def generate_api_key(prefix: str = KEY_PREFIX) -> tuple[str, str]:
    """Return (key, hash) for a new key built from 32 random bytes."""
    token = base64.urlsafe_b64encode(secrets.token_bytes(32)).decode().rstrip("=")
    key = f"{prefix}_{token}"
    return key, hash_api_key(key)


def validate_api_key_format(key: str) -> bool:
    return bool(KEY_PATTERN.match(key))


def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()


def extract_key_prefix(key: str) -> str:
    return key.split("_")[0]


def is_key_expired(expires_at: datetime | str | None, now: datetime | None = None) -> bool:
    if not expires_at:
        return False
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return (now or datetime.now(timezone.utc)) > expires_at


def mask_api_key(key: str) -> str:
    if len(key) < 12:
        return "***"
    return f"{key[:7]}...{key[-4:]}"


def has_permission(permissions: list[str], permission: str) -> bool:
    """Exact match, or a ``resource:*`` wildcard for the same resource."""
    if permission in permissions:
        return True
    resource, _, action = permission.partition(":")
    for granted in permissions:
        g_resource, _, g_action = granted.partition(":")
        if g_resource == resource and g_action in ("*", action):
            return True
    return False
