"""Supabase client initialization for the credit store."""

from typing import Optional
from supabase import acreate_client, AsyncClient
import logging

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

# Global client (singleton pattern)
_service_client: Optional[AsyncClient] = None


async def get_service_client(settings: Optional[Settings] = None) -> Optional[AsyncClient]:
    """
    Get or create the async Supabase service role client (bypasses RLS).

    Uses SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY from the environment.
    Returns None when either is missing so callers can run on the
    in-memory credit store instead.
    """
    global _service_client
    if _service_client is not None:
        return _service_client

    settings = settings or get_settings()
    if not settings.supabase_configured:
        logger.warning(
            "SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set; credits will use the in-memory store"
        )
        return None

    try:
        _service_client = await acreate_client(settings.supabase_url, settings.supabase_service_role_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None

    logger.info("Supabase service role client initialized")
    return _service_client


def reset_service_client() -> None:
    """Drop the cached client (used when settings change, e.g. in tests)."""
    global _service_client
    _service_client = None
