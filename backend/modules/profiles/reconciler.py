"""
Profile reconciler.

Makes sure exactly one profile exists for an authenticated identity and
applies profile data that was collected before the session existed.
"""

import asyncio
import logging
import weakref

from shared.models import Identity

from .interfaces import IProfileRepository
from .models import UserProfile, ProfileFields
from .pending import PendingUpdateStore
from .exceptions import ProfileNotFoundError, ProfileConflictError, ProfileWriteError

logger = logging.getLogger(__name__)


class ProfileReconciler:
    """
    Reconciles the local profile with the identity provider.

    Calls for the same identity are serialized, and an insert that loses
    a race to another writer falls back to reading the winner's row, so
    concurrent ensure_profile calls never create duplicates.
    """

    def __init__(
        self,
        repository: IProfileRepository,
        pending_updates: PendingUpdateStore,
    ):
        self._repository = repository
        self._pending = pending_updates
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @property
    def pending_updates(self) -> PendingUpdateStore:
        return self._pending

    def _lock_for(self, identity_id: str) -> asyncio.Lock:
        lock = self._locks.get(identity_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity_id] = lock
        return lock

    async def ensure_profile(self, identity: Identity) -> UserProfile:
        """
        Return the identity's profile, creating it if absent.

        Any pending profile update for the identity is applied afterwards
        and then deleted.

        Raises:
            ProfileWriteError: If the profile was missing and could not be created
            ProfileFetchError, TransientNetworkError: If the read failed
                (never turned into a creation attempt)
        """
        async with self._lock_for(identity.id):
            try:
                profile = await self._repository.get(identity.id)
            except ProfileNotFoundError:
                logger.info(f"No profile for {identity.id}, creating one")
                profile = await self._create_or_fetch(
                    identity, ProfileFields.from_identity(identity)
                )
            return await self._apply_pending(identity, profile)

    async def create_profile(self, identity: Identity, fields: ProfileFields) -> UserProfile:
        """
        Create the identity's profile from user-supplied fields.

        Raises:
            ProfileConflictError: If the profile already exists
            ProfileWriteError: If the insert failed
        """
        async with self._lock_for(identity.id):
            profile = await self._repository.insert(UserProfile.new(identity, fields))
            logger.info(f"Created profile for {identity.id}")
            return profile

    async def update_profile(self, identity: Identity, fields: ProfileFields) -> UserProfile:
        """
        Apply user-supplied fields to the identity's profile.

        Raises:
            ProfileNotFoundError: If the profile does not exist
            ProfileWriteError: If the update failed
        """
        async with self._lock_for(identity.id):
            return await self._update(identity, fields)

    async def _update(self, identity: Identity, fields: ProfileFields) -> UserProfile:
        values = fields.to_update()
        if not values:
            return await self._repository.get(identity.id)
        return await self._repository.update(identity.id, values)

    async def _create_or_fetch(self, identity: Identity, fields: ProfileFields) -> UserProfile:
        try:
            return await self._repository.insert(UserProfile.new(identity, fields))
        except ProfileConflictError:
            # Another writer (or a database trigger) created it first
            logger.debug(f"Profile for {identity.id} already exists, fetching it")
            return await self._repository.get(identity.id)

    async def _apply_pending(self, identity: Identity, profile: UserProfile) -> UserProfile:
        pending = self._pending.get_for(identity)
        if pending is None:
            return profile

        try:
            updated = await self._update(identity, pending.fields)
        except (ProfileWriteError, ProfileNotFoundError) as e:
            # Keep the pending update for the next authenticated transition
            logger.warning(f"Failed to apply pending profile update for {identity.id}: {e}")
            return profile

        self._pending.discard(pending)
        logger.info(f"Applied pending profile update for {identity.id}")
        return updated
