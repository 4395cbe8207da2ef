"""
Profile repositories.

- SupabaseProfileRepository: user_profiles table through PostgREST
- InMemoryProfileRepository: For testing and development
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

from postgrest.exceptions import APIError

from shared.exceptions import TransientNetworkError
from shared.repository import BaseRepository

from .models import UserProfile
from .exceptions import (
    ProfileNotFoundError,
    ProfileWriteError,
    ProfileConflictError,
    ProfileFetchError,
)

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"
# PostgREST "JSON object requested, multiple (or no) rows returned"
NO_ROWS = "PGRST116"


class SupabaseProfileRepository(BaseRepository[UserProfile]):
    """
    Repository for the user_profiles table.

    Note: This repository does NOT perform authorization checks.
    Row Level Security on the table scopes rows to the signed-in identity.
    """

    TABLE = "user_profiles"

    async def get(self, identity_id: str) -> UserProfile:
        try:
            result = await self._execute(
                self._db.table(self.TABLE).select("*").eq("id", identity_id).limit(1)
            )
        except APIError as e:
            if self._error_code(e) == NO_ROWS:
                raise ProfileNotFoundError(identity_id) from e
            raise ProfileFetchError(identity_id, e.message or str(e)) from e

        if not result.data:
            raise ProfileNotFoundError(identity_id)
        return UserProfile(**result.data[0])

    async def insert(self, profile: UserProfile) -> UserProfile:
        payload = profile.model_dump(
            mode="json",
            exclude_none=True,
            exclude={"created_at", "updated_at"},
        )
        try:
            result = await self._execute(self._db.table(self.TABLE).insert(payload))
        except APIError as e:
            if self._error_code(e) == UNIQUE_VIOLATION:
                raise ProfileConflictError(profile.id) from e
            raise ProfileWriteError(profile.id, e.message or str(e)) from e
        except TransientNetworkError as e:
            raise ProfileWriteError(profile.id, e.message) from e

        if not result.data:
            raise ProfileWriteError(profile.id, "insert returned no row")
        return UserProfile(**result.data[0])

    async def update(self, identity_id: str, values: dict[str, Any]) -> UserProfile:
        try:
            result = await self._execute(
                self._db.table(self.TABLE).update(values).eq("id", identity_id)
            )
        except APIError as e:
            raise ProfileWriteError(identity_id, e.message or str(e)) from e
        except TransientNetworkError as e:
            raise ProfileWriteError(identity_id, e.message) from e

        if not result.data:
            raise ProfileNotFoundError(identity_id)
        return UserProfile(**result.data[0])


class InMemoryProfileRepository:
    """
    Profile repository with in-memory storage.

    For testing and development. Use SupabaseProfileRepository for production.
    """

    def __init__(self, latency: float = 0.0):
        """
        Initialize the repository.

        Args:
            latency: Seconds each call waits before touching storage,
                     to let concurrent callers interleave like real I/O.
        """
        self._profiles: dict[str, UserProfile] = {}
        self._latency = latency
        self.insert_calls = 0

    async def _io(self) -> None:
        await asyncio.sleep(self._latency)

    async def get(self, identity_id: str) -> UserProfile:
        await self._io()
        profile = self._profiles.get(identity_id)
        if profile is None:
            raise ProfileNotFoundError(identity_id)
        return profile

    async def insert(self, profile: UserProfile) -> UserProfile:
        self.insert_calls += 1
        await self._io()
        if profile.id in self._profiles:
            raise ProfileConflictError(profile.id)
        now = datetime.now(timezone.utc)
        stored = profile.model_copy(update={"created_at": now, "updated_at": now})
        self._profiles[profile.id] = stored
        return stored

    async def update(self, identity_id: str, values: dict[str, Any]) -> UserProfile:
        await self._io()
        current = self._profiles.get(identity_id)
        if current is None:
            raise ProfileNotFoundError(identity_id)
        updated = current.model_copy(
            update={**values, "updated_at": datetime.now(timezone.utc)}
        )
        self._profiles[identity_id] = updated
        return updated

    def count(self) -> int:
        """Number of stored profiles."""
        return len(self._profiles)
