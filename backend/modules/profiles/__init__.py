"""
Profile module.

Owns the application-side user profile: one row per identity, created
lazily, with deferred updates for data collected before a session existed.

Public API:
- IProfileRepository, IProfileReconciler: Interfaces
- ProfileReconciler: ensure/create/update profiles
- PendingUpdateStore: Holder of the single pending update
- UserProfile, ProfileFields, PendingProfileUpdate: Models
- Profile exceptions
"""

from .interfaces import IProfileRepository, IProfileReconciler
from .models import UserProfile, ProfileFields, PendingProfileUpdate
from .exceptions import (
    ProfileNotFoundError,
    ProfileWriteError,
    ProfileConflictError,
    ProfileFetchError,
)
from .pending import PendingUpdateStore
from .repository import SupabaseProfileRepository, InMemoryProfileRepository
from .reconciler import ProfileReconciler

__all__ = [
    # Interfaces
    "IProfileRepository",
    "IProfileReconciler",
    # Models
    "UserProfile",
    "ProfileFields",
    "PendingProfileUpdate",
    # Exceptions
    "ProfileNotFoundError",
    "ProfileWriteError",
    "ProfileConflictError",
    "ProfileFetchError",
    # Components
    "PendingUpdateStore",
    "SupabaseProfileRepository",
    "InMemoryProfileRepository",
    "ProfileReconciler",
]
