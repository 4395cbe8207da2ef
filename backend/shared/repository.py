"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
Supabase client access and providing shared utilities for data operations.
"""

from typing import TypeVar, Generic, Any

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from .exceptions import TransientNetworkError


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints
    - A single place where transport failures become TransientNetworkError

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class ProfileRepository(BaseRepository[UserProfile]):
            async def get(self, identity_id: str) -> UserProfile:
                result = await self._execute(
                    self._db.table("user_profiles").select("*").eq("id", identity_id)
                )
                ...
    """

    service_name = "supabase"

    def __init__(self, db: AsyncClient) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase async client instance for database operations.
        """
        self._db = db

    async def _execute(self, query: Any) -> Any:
        """
        Execute a PostgREST query.

        Raises:
            TransientNetworkError: If the request never got a response
            APIError: If PostgREST rejected the request
        """
        try:
            return await query.execute()
        except APIError:
            raise
        except httpx.TransportError as e:
            raise TransientNetworkError(self.service_name, str(e)) from e

    @staticmethod
    def _error_code(error: APIError) -> str:
        """Get the PostgREST/Postgres error code from an APIError."""
        return str(getattr(error, "code", "") or "")
