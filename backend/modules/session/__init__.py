"""
Session module.

Holds the current session, remembers across restarts that one existed,
and validates credentials against the resource API.

Public API:
- SessionStore: Single-writer holder of the current session
- SessionMetadataCache: Non-authoritative "a session existed" breadcrumb
- BackendValidator: Classifies a credential as valid/invalid/unreachable
- Session, SessionMetadata, ValidationResult: Data models
- Local storage backends: InMemoryLocalStorage, FileLocalStorage
"""

from .interfaces import ILocalStorage, ISessionValidator
from .models import Session, SessionMetadata, ValidationResult
from .exceptions import MalformedCredentialError
from .storage import InMemoryLocalStorage, FileLocalStorage, SupabaseAuthStorage
from .metadata import SessionMetadataCache, SESSION_METADATA_KEY
from .store import SessionStore
from .validator import BackendValidator

__all__ = [
    # Interfaces
    "ILocalStorage",
    "ISessionValidator",
    # Models
    "Session",
    "SessionMetadata",
    "ValidationResult",
    # Exceptions
    "MalformedCredentialError",
    # Storage
    "InMemoryLocalStorage",
    "FileLocalStorage",
    "SupabaseAuthStorage",
    # Components
    "SessionMetadataCache",
    "SESSION_METADATA_KEY",
    "SessionStore",
    "BackendValidator",
]
