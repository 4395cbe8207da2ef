"""
Database client factory for Supabase.

The session manager runs on the user's side of the system, so it talks to
Supabase with the anon key and lets Row Level Security scope every query
to the signed-in identity.
"""

from typing import Optional
from supabase import acreate_client, AsyncClient
from supabase.lib.client_options import AsyncClientOptions

from .config import get_settings

# Module-level client cache
_client: Optional[AsyncClient] = None


async def get_supabase_client() -> AsyncClient:
    """
    Get the async Supabase client (anon key).

    The client's own auth session is persisted through the local file
    storage so that a restarted process can find it again.

    Returns:
        Supabase async client configured with the anon key
    """
    global _client

    if _client is None:
        # Imported here to keep shared/ free of module imports at load time
        from modules.session.storage import FileLocalStorage, SupabaseAuthStorage

        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_anon_key:
            raise RuntimeError(
                "Supabase configuration missing. "
                "Set SUPABASE_URL and SUPABASE_ANON_KEY environment variables."
            )
        storage = SupabaseAuthStorage(FileLocalStorage(settings.local_storage_dir))
        _client = await acreate_client(
            settings.supabase_url,
            settings.supabase_anon_key,
            options=AsyncClientOptions(
                storage=storage,
                persist_session=True,
                auto_refresh_token=True,
            ),
        )

    return _client


def reset_client_cache() -> None:
    """
    Reset the cached database client.

    Useful for testing or when configuration changes.
    """
    global _client
    _client = None
