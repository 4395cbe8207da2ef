"""
Session module interfaces.

Other modules should depend on these protocols, not the concrete
implementations. Tests swap in in-memory storage and scripted validators.
"""

from typing import Protocol, Optional, runtime_checkable

from .models import Session, ValidationResult


@runtime_checkable
class ILocalStorage(Protocol):
    """
    Durable-but-local key/value storage.

    Mirrors the browser's localStorage: string keys, string values,
    survives a restart of the hosting process.
    """

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    def remove_item(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        ...


@runtime_checkable
class ISessionValidator(Protocol):
    """Interface for checking a session against the resource API."""

    async def validate(self, session: Session) -> ValidationResult:
        """
        Classify a session's credential.

        Args:
            session: Candidate session

        Returns:
            VALID, INVALID or UNREACHABLE. Never raises for network failures.
        """
        ...
