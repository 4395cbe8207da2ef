"""
Session metadata cache.

Answers "did a session exist before this process started?" without a
network round trip. The answer only decides whether recovery is worth
attempting; it never grants access. Storage failures fail closed.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from .interfaces import ILocalStorage
from .models import Session, SessionMetadata

logger = logging.getLogger(__name__)

SESSION_METADATA_KEY = "sitecraft_session_metadata"
DEFAULT_MAX_AGE = timedelta(days=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionMetadataCache:
    """
    Non-authoritative record that a session existed.

    Writes and clears are best-effort: failures are logged and absorbed so
    they can never break a sign-in or sign-out.
    """

    def __init__(
        self,
        storage: ILocalStorage,
        max_age: timedelta = DEFAULT_MAX_AGE,
        key: str = SESSION_METADATA_KEY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the cache.

        Args:
            storage: Local durable storage for the breadcrumb
            max_age: Breadcrumbs older than this are treated as absent
            key: Storage key
            clock: Source of "now" (injectable for tests)
        """
        self._storage = storage
        self._max_age = max_age
        self._key = key
        self._clock = clock

    def store(self, session: Session) -> None:
        """Record that a session exists."""
        metadata = SessionMetadata.from_session(session, now=self._clock())
        try:
            self._storage.set_item(self._key, metadata.model_dump_json())
            logger.debug("Session metadata stored for restart recovery")
        except OSError as e:
            logger.warning(f"Failed to store session metadata: {e}")

    def clear(self) -> None:
        """Forget that a session existed."""
        try:
            self._storage.remove_item(self._key)
            logger.debug("Session metadata cleared")
        except OSError as e:
            logger.warning(f"Failed to clear session metadata: {e}")

    def get(self) -> Optional[SessionMetadata]:
        """
        Read the breadcrumb.

        Returns:
            The metadata, or None if absent, unreadable, corrupt or stale.
        """
        try:
            raw = self._storage.get_item(self._key)
        except OSError as e:
            logger.warning(f"Failed to read session metadata: {e}")
            return None
        except ValueError as e:
            # Undecodable bytes on disk
            logger.warning(f"Discarding unreadable session metadata: {e}")
            self.clear()
            return None

        if not raw:
            return None

        try:
            metadata = SessionMetadata.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Discarding corrupt session metadata")
            self.clear()
            return None

        if metadata.is_stale(self._max_age, now=self._clock()):
            logger.debug("Session metadata expired, removing")
            self.clear()
            return None

        return metadata

    def had_recent_session(self) -> bool:
        """Whether recovery is worth attempting. Fails closed."""
        metadata = self.get()
        return metadata is not None and metadata.had_session
