"""
supabase.py — Supabase Client Factory

Purpose:
- Build the supabase-py clients used for Auth (sign in / sign up / reset)
  and Storage (avatar uploads).
- Expose FastAPI dependencies that answer 503 when Supabase is not configured.

Two clients:
- auth client  → anon key (acts on behalf of end users)
- admin client → service role key (storage writes bypassing RLS)

Tables are NOT read through these clients; data access goes through
SQLAlchemy (core/database.py).
"""

from functools import lru_cache

from supabase import Client, create_client

from wasteintel.core.config import settings
from wasteintel.core.errors import ServiceUnavailableError
from wasteintel.core.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def _auth_client() -> Client:
    key = settings.SUPABASE_ANON_KEY or settings.SUPABASE_SERVICE_ROLE_KEY
    logger.info("Creating Supabase auth client for %s", settings.SUPABASE_URL)
    return create_client(settings.SUPABASE_URL, key)


@lru_cache(maxsize=1)
def _admin_client() -> Client:
    logger.info("Creating Supabase service-role client for %s", settings.SUPABASE_URL)
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def get_auth_client() -> Client:
    """
    FastAPI dependency returning the Supabase client used for Auth calls.

    Raises:
        ServiceUnavailableError: If SUPABASE_URL / keys are missing (503)
    """
    if not settings.supabase_auth_configured:
        raise ServiceUnavailableError("Authentication service not configured")
    return _auth_client()


def get_admin_client() -> Client:
    """FastAPI dependency returning the service-role client (storage)."""
    if not (settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY):
        raise ServiceUnavailableError("Storage service not configured")
    return _admin_client()
