"""
Authentication module interfaces.

Other modules should depend on these protocols, not the concrete
implementations. The identity provider is the only seam to Supabase Auth,
which lets the state machine be tested against a scripted fake.
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable

from shared.models import Identity
from modules.session.models import Session
from modules.profiles.models import UserProfile, ProfileFields

from .models import AuthEvent, AuthState, SignUpResult

AuthStateCallback = Callable[[AuthEvent, Optional[Session]], None]


@runtime_checkable
class IIdentityProvider(Protocol):
    """
    Interface to the session-issuing identity service.

    Implementations translate transport failures to TransientNetworkError,
    rejected credentials to InvalidCredentialError and everything else to
    IdentityProviderError.
    """

    async def get_current_session(self) -> Optional[Session]:
        """Return the provider's persisted session, if any."""
        ...

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
    ) -> SignUpResult:
        """Create an identity; a session is returned unless verification is required."""
        ...

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Exchange email and password for a session."""
        ...

    async def sign_out(self) -> None:
        """Revoke the current session on the provider."""
        ...

    async def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        """Send a password reset email."""
        ...

    async def update_password(self, new_password: str) -> None:
        """Change the signed-in identity's password."""
        ...

    async def refresh_session(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a new session."""
        ...

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """
        Subscribe to provider events.

        Returns:
            A callable that cancels the subscription
        """
        ...


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface the rest of the application uses for authentication.

    State is read through properties; every operation that changes it is
    serialized by the auth state machine.
    """

    @property
    def state(self) -> AuthState: ...

    @property
    def current_user(self) -> Optional[Identity]: ...

    @property
    def current_profile(self) -> Optional[UserProfile]: ...

    @property
    def is_loading(self) -> bool: ...

    @property
    def is_initializing(self) -> bool: ...

    async def sign_up(
        self,
        email: str,
        password: str,
        fields: Optional[ProfileFields] = None,
    ) -> SignUpResult: ...

    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def sign_out(self) -> None: ...
