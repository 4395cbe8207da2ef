"""
Profile module interfaces.

The reconciler depends on IProfileRepository, not on Supabase, so tests
run against the in-memory repository.
"""

from typing import Any, Protocol, runtime_checkable

from shared.models import Identity

from .models import UserProfile, ProfileFields


@runtime_checkable
class IProfileRepository(Protocol):
    """Storage contract for user profiles, keyed by identity ID."""

    async def get(self, identity_id: str) -> UserProfile:
        """
        Fetch a profile.

        Raises:
            ProfileNotFoundError: If no row exists ("no rows", not a failure)
            ProfileFetchError: If the read failed for another reason
            TransientNetworkError: If the database could not be reached
        """
        ...

    async def insert(self, profile: UserProfile) -> UserProfile:
        """
        Insert a new profile.

        Raises:
            ProfileConflictError: If a row for this identity already exists
            ProfileWriteError: If the write failed for another reason
        """
        ...

    async def update(self, identity_id: str, values: dict[str, Any]) -> UserProfile:
        """
        Update columns of an existing profile.

        Raises:
            ProfileNotFoundError: If no row exists
            ProfileWriteError: If the write failed
        """
        ...


@runtime_checkable
class IProfileReconciler(Protocol):
    """Interface the auth state machine uses to materialize profiles."""

    async def ensure_profile(self, identity: Identity) -> UserProfile:
        """Return the identity's profile, creating it if absent."""
        ...

    async def create_profile(self, identity: Identity, fields: ProfileFields) -> UserProfile:
        """Create the identity's profile from user-supplied fields."""
        ...

    async def update_profile(self, identity: Identity, fields: ProfileFields) -> UserProfile:
        """Apply user-supplied fields to the identity's profile."""
        ...
