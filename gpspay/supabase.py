"""
Supabase client configuration for GPS Pay
Provides centralized Supabase client management
"""

from typing import Optional

from supabase import acreate_client, AsyncClient
from gpspay.config import settings
from gpspay.logging_config import get_logger

logger = get_logger(__name__)

# Shared client for table access
_supabase_data_client: Optional[AsyncClient] = None


async def create_auth_client() -> AsyncClient:
    """
    Create a fresh Supabase client for auth operations.

    Auth state lives inside the client, so every caller that signs a user
    in or up gets its own instance.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_ANON_KEY:
        raise ValueError("Supabase URL and ANON key must be configured in settings")

    try:
        return await acreate_client(
            supabase_url=settings.SUPABASE_URL,
            supabase_key=settings.SUPABASE_ANON_KEY
        )
    except Exception as e:
        logger.error("supabase_client_init_failed", error=str(e))
        raise


async def get_supabase_data_client() -> AsyncClient:
    """Get or create the client used for record-store access"""
    global _supabase_data_client

    if _supabase_data_client is None:
        if not settings.SUPABASE_URL:
            raise ValueError("Supabase URL must be configured in settings")

        # Service role bypasses RLS for writes made on behalf of a
        # not-yet-verified user; fall back to the anon key otherwise.
        key = settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_ANON_KEY
        if not key:
            raise ValueError("Supabase ANON or SERVICE_ROLE key must be configured")

        try:
            _supabase_data_client = await acreate_client(
                supabase_url=settings.SUPABASE_URL,
                supabase_key=key
            )
            logger.info("supabase_data_client_initialized",
                        service_role=bool(settings.SUPABASE_SERVICE_ROLE_KEY))
        except Exception as e:
            logger.error("supabase_client_init_failed", error=str(e))
            raise

    return _supabase_data_client
