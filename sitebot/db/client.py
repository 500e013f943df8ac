"""Supabase client factories."""

from functools import lru_cache

from supabase import Client, create_client

from sitebot.config.settings import get_settings


@lru_cache()
def get_supabase() -> Client:
    """Service-role client. Authorization is enforced in the service layer."""
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def new_auth_client() -> Client:
    """Fresh anon-key client for one Supabase Auth flow; it holds the caller's session."""
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
