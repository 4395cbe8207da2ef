"""
Shared infrastructure for the SiteCraft session manager.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes
- repository: Base class for Supabase-backed repositories

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, UnreachablePolicy, get_settings
from .exceptions import (
    SiteCraftError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    ExternalServiceError,
    TransientNetworkError,
)
from .models import Identity

__all__ = [
    "Settings",
    "UnreachablePolicy",
    "get_settings",
    "SiteCraftError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "ExternalServiceError",
    "TransientNetworkError",
    "Identity",
]
