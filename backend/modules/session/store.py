"""
Session store.

Holds the one current session. The auth state machine is its only writer;
every other component reads through current() or subscribes for changes.
"""

import logging
from typing import Callable, Optional

from .metadata import SessionMetadataCache
from .models import Session

logger = logging.getLogger(__name__)

SessionListener = Callable[[Optional[Session]], None]


class SessionStore:
    """
    Single-writer holder of the current session.

    Performs no locking: it is only mutated from the state machine's
    single consumer task. Every set/clear also updates the metadata cache.
    """

    def __init__(self, metadata_cache: SessionMetadataCache):
        self._metadata = metadata_cache
        self._current: Optional[Session] = None
        self._listeners: list[SessionListener] = []

    def current(self) -> Optional[Session]:
        """Get the current session, if any."""
        return self._current

    def set_session(self, session: Session) -> None:
        """Replace the current session."""
        self._current = session
        self._metadata.store(session)
        self._notify()

    def clear_session(self) -> None:
        """Drop the current session."""
        self._current = None
        self._metadata.clear()
        self._notify()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener called with the new session after each change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._current)
            except Exception:
                logger.exception("Session listener failed")
