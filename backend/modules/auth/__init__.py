"""
Authentication module.

Owns the session lifecycle: startup recovery, sign-up, sign-in, sign-out
and identity provider events, serialized by a single state machine.

Public API:
- IAuthService, IIdentityProvider: Interfaces
- AuthState, AuthEvent, SignUpResult: Models
- AuthStateMachine: Serialized lifecycle owner
- AuthService: Facade used by the application
- SupabaseIdentityProvider: Supabase Auth adapter
- get_auth_service, reset_auth_service: Singleton access
"""

from .interfaces import IAuthService, IIdentityProvider, AuthStateCallback
from .models import AuthState, AuthEvent, SignOutOutcome, SignUpResult
from .exceptions import (
    InvalidCredentialError,
    AuthTimeoutError,
    NotAuthenticatedError,
    IdentityProviderError,
)
from .provider import SupabaseIdentityProvider, translate_error
from .state_machine import AuthStateMachine
from .service import (
    AuthService,
    create_auth_service,
    get_auth_service,
    reset_auth_service,
)

__all__ = [
    # Interfaces
    "IAuthService",
    "IIdentityProvider",
    "AuthStateCallback",
    # Models
    "AuthState",
    "AuthEvent",
    "SignOutOutcome",
    "SignUpResult",
    # Exceptions
    "InvalidCredentialError",
    "AuthTimeoutError",
    "NotAuthenticatedError",
    "IdentityProviderError",
    # Implementations
    "SupabaseIdentityProvider",
    "translate_error",
    "AuthStateMachine",
    "AuthService",
    "create_auth_service",
    "get_auth_service",
    "reset_auth_service",
]
