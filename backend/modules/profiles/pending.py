"""
Pending profile update store.

Holds at most one deferred profile update per context. A newer update
replaces an older one.
"""

import logging
from typing import Optional

from shared.models import Identity

from .models import PendingProfileUpdate

logger = logging.getLogger(__name__)


class PendingUpdateStore:
    """Context-scoped holder of the single pending profile update."""

    def __init__(self) -> None:
        self._pending: Optional[PendingProfileUpdate] = None

    def put(self, update: PendingProfileUpdate) -> None:
        """Store an update, replacing any existing one."""
        if self._pending is not None:
            logger.debug("Replacing existing pending profile update")
        self._pending = update

    def get(self) -> Optional[PendingProfileUpdate]:
        return self._pending

    def get_for(self, identity: Identity) -> Optional[PendingProfileUpdate]:
        """Get the pending update if it belongs to this identity."""
        if self._pending is not None and self._pending.matches(identity):
            return self._pending
        return None

    def discard(self, update: PendingProfileUpdate) -> None:
        """Delete an update once applied, unless it was already replaced."""
        if self._pending is update:
            self._pending = None

    def clear(self) -> None:
        self._pending = None
