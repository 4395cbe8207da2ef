"""
Supabase Auth identity provider.

Adapts the Supabase async auth client to IIdentityProvider and translates
its errors into the application's exception hierarchy.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx
from supabase import AsyncClient

from shared.exceptions import SiteCraftError, TransientNetworkError
from shared.models import Identity
from modules.session.models import Session
from modules.session.exceptions import MalformedCredentialError

from .interfaces import AuthStateCallback
from .models import AuthEvent, SignUpResult
from .exceptions import InvalidCredentialError, IdentityProviderError

logger = logging.getLogger(__name__)

SERVICE_NAME = "supabase_auth"

# Operations where a 400/401 means the caller's credentials were refused
_CREDENTIAL_OPERATIONS = {"sign_in", "refresh_session"}


def _to_identity(user: Any) -> Identity:
    return Identity(
        id=str(user.id),
        email=user.email,
        email_verified=getattr(user, "email_confirmed_at", None) is not None,
        user_metadata=dict(getattr(user, "user_metadata", None) or {}),
        created_at=getattr(user, "created_at", None),
    )


def _to_session(raw: Any) -> Optional[Session]:
    """
    Convert a Supabase session to ours.

    Raises:
        MalformedCredentialError: If no expiry is available
    """
    if raw is None:
        return None
    identity = _to_identity(raw.user)
    if raw.expires_at:
        return Session(
            credential=raw.access_token,
            identity=identity,
            expires_at=datetime.fromtimestamp(int(raw.expires_at), tz=timezone.utc),
            refresh_token=raw.refresh_token,
        )
    return Session.from_access_token(raw.access_token, identity, raw.refresh_token)


def _is_transient(error: Exception) -> bool:
    if isinstance(error, httpx.TransportError):
        return True
    # The auth client wraps network failures in AuthRetryableError (status 0)
    return type(error).__name__ == "AuthRetryableError"


def translate_error(error: Exception, operation: str) -> SiteCraftError:
    """Map a Supabase auth client exception to an application exception."""
    if isinstance(error, SiteCraftError):
        return error
    if _is_transient(error):
        return TransientNetworkError(SERVICE_NAME, str(error))

    status = getattr(error, "status", None)
    message = getattr(error, "message", None) or str(error)
    if operation in _CREDENTIAL_OPERATIONS and status in (400, 401):
        return InvalidCredentialError(message)
    return IdentityProviderError(operation, message, status)


class SupabaseIdentityProvider:
    """
    Identity provider backed by Supabase Auth.

    The Supabase client persists its own session through the storage it
    was created with; this adapter only converts types and errors.
    """

    def __init__(self, client: AsyncClient):
        self._client = client

    async def get_current_session(self) -> Optional[Session]:
        try:
            raw = await self._client.auth.get_session()
        except Exception as e:
            raise translate_error(e, "get_session") from e
        try:
            return _to_session(raw)
        except MalformedCredentialError as e:
            logger.warning(f"Ignoring persisted session with unreadable credential: {e}")
            return None

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
    ) -> SignUpResult:
        try:
            response = await self._client.auth.sign_up(
                {"email": email, "password": password, "options": {"data": metadata}}
            )
        except Exception as e:
            raise translate_error(e, "sign_up") from e

        identity = _to_identity(response.user) if response.user else None
        session = _to_session(response.session)
        logger.info(
            f"Sign-up for {email} {'issued a session' if session else 'requires verification'}"
        )
        return SignUpResult(identity=identity, session=session)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        try:
            response = await self._client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            raise translate_error(e, "sign_in") from e

        session = _to_session(response.session)
        if session is None:
            raise InvalidCredentialError("No session issued for these credentials")
        return session

    async def sign_out(self) -> None:
        try:
            await self._client.auth.sign_out()
        except Exception as e:
            raise translate_error(e, "sign_out") from e

    async def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        try:
            await self._client.auth.reset_password_for_email(
                email, {"redirect_to": redirect_to}
            )
        except Exception as e:
            raise translate_error(e, "reset_password") from e

    async def update_password(self, new_password: str) -> None:
        try:
            await self._client.auth.update_user({"password": new_password})
        except Exception as e:
            raise translate_error(e, "update_password") from e

    async def refresh_session(self, refresh_token: str) -> Session:
        try:
            response = await self._client.auth.refresh_session(refresh_token)
        except Exception as e:
            raise translate_error(e, "refresh_session") from e

        session = _to_session(response.session)
        if session is None:
            raise InvalidCredentialError("Refresh token did not yield a session")
        return session

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        def handler(event: str, raw_session: Any) -> None:
            try:
                auth_event = AuthEvent(event)
            except ValueError:
                logger.debug(f"Ignoring unknown auth event {event}")
                return
            try:
                session = _to_session(raw_session)
            except MalformedCredentialError as e:
                logger.warning(f"Auth event {event} carried an unreadable credential: {e}")
                session = None
            callback(auth_event, session)

        subscription = self._client.auth.on_auth_state_change(handler)
        return subscription.unsubscribe
