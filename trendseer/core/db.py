from __future__ import annotations

from functools import lru_cache

from supabase import Client, create_client

from config.settings import get_settings


MISSING_TABLE_MARKER = "does not exist"


def is_missing_table_error(exc: Exception) -> bool:
    message = getattr(exc, "message", None) or str(exc)
    return MISSING_TABLE_MARKER in message


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Service-role client used for all table and RPC access."""
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise RuntimeError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set. Please configure them in environment or .env"
        )
    return create_client(settings.supabase_url, settings.supabase_service_key)


@lru_cache(maxsize=1)
def get_auth_client() -> Client:
    """Anon-key client for verifying and issuing user sessions."""
    settings = get_settings()
    key = settings.supabase_anon_key or settings.supabase_service_key
    if not settings.supabase_url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set for authentication")
    return create_client(settings.supabase_url, key)
