"""Account flows delegated to Supabase Auth."""

import logging

from fastapi import HTTPException

from sitebot.db.client import get_supabase, new_auth_client

logger = logging.getLogger(__name__)


def _token_pair(session) -> dict:
    if session is None:
        # Sign-up with email confirmation enabled returns no session
        return {"access_token": None, "refresh_token": None, "token_type": "bearer", "confirmation_required": True}
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "token_type": "bearer",
        "expires_in": session.expires_in,
    }


def sign_up(email: str, password: str) -> dict:
    try:
        response = new_auth_client().auth.sign_up({"email": email, "password": password})
    except Exception as e:
        logger.warning("Sign-up failed for %s: %s", email, e)
        if "registered" in str(e).lower():
            raise HTTPException(status_code=409, detail="Email already registered")
        raise HTTPException(status_code=400, detail="Registration failed")
    return _token_pair(response.session)


def sign_in(email: str, password: str) -> dict:
    try:
        response = new_auth_client().auth.sign_in_with_password({"email": email, "password": password})
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _token_pair(response.session)


def refresh(refresh_token: str) -> dict:
    try:
        response = new_auth_client().auth.refresh_session(refresh_token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")
    return _token_pair(response.session)


def sign_out(access_token: str) -> None:
    """Revoke every refresh token issued to the session's user."""
    try:
        get_supabase().auth.admin.sign_out(access_token)
    except Exception:
        logger.exception("Supabase sign-out failed")
        raise HTTPException(status_code=502, detail="Failed to sign out")
