"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules:
signed test credentials, a scripted identity provider, a scripted backend
validator and a factory for fully wired auth state machines.
"""

import asyncio
from datetime import datetime, timezone, timedelta
from typing import Any, Callable, Optional

import jwt  # PyJWT
import pytest
import pytest_asyncio

from shared.config import Settings, UnreachablePolicy
from shared.models import Identity
from modules.auth.interfaces import AuthStateCallback
from modules.auth.models import AuthEvent, SignUpResult
from modules.auth.service import reset_auth_service
from modules.auth.state_machine import AuthStateMachine
from modules.session.metadata import SessionMetadataCache
from modules.session.models import Session, ValidationResult
from modules.session.storage import InMemoryLocalStorage
from modules.session.store import SessionStore
from modules.profiles.pending import PendingUpdateStore
from modules.profiles.reconciler import ProfileReconciler
from modules.profiles.repository import InMemoryProfileRepository


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"


def create_test_token(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    expired: bool = False,
    lifetime: timedelta = timedelta(hours=1),
) -> str:
    """
    Create a test JWT access token.

    Args:
        user_id: User ID to include in the token
        email: Email to include in the token
        expired: If True, creates an expired token
        lifetime: How long a non-expired token stays valid

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + lifetime

    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def make_identity(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    **metadata: Any,
) -> Identity:
    return Identity(id=user_id, email=email, email_verified=True, user_metadata=metadata)


def make_session(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    expired: bool = False,
    refresh_token: Optional[str] = "refresh-token",
    **metadata: Any,
) -> Session:
    """Build a session whose expiry comes from a real signed token."""
    return Session.from_access_token(
        create_test_token(user_id=user_id, email=email, expired=expired),
        make_identity(user_id, email, **metadata),
        refresh_token=refresh_token,
    )


class FakeIdentityProvider:
    """
    Scripted identity provider.

    Each operation returns the configured result or raises the configured
    error. An asyncio.Event gate can hold an operation open to simulate a
    slow network.
    """

    def __init__(self) -> None:
        self.current_session: Optional[Session] = None
        self.sign_in_result: Optional[Session] = None
        self.sign_in_error: Optional[Exception] = None
        self.sign_up_result: SignUpResult = SignUpResult()
        self.sign_up_error: Optional[Exception] = None
        self.sign_out_error: Optional[Exception] = None
        self.sign_out_gate: Optional[asyncio.Event] = None
        self.get_session_gate: Optional[asyncio.Event] = None
        self.get_session_error: Optional[Exception] = None
        self.refresh_result: Optional[Session] = None
        self.refresh_error: Optional[Exception] = None
        self.calls: list[str] = []
        self.sign_up_metadata: Optional[dict[str, Any]] = None
        self.reset_requests: list[tuple[str, str]] = []
        self.updated_passwords: list[str] = []
        self._listeners: list[AuthStateCallback] = []

    async def get_current_session(self) -> Optional[Session]:
        self.calls.append("get_current_session")
        if self.get_session_gate is not None:
            await self.get_session_gate.wait()
        if self.get_session_error is not None:
            raise self.get_session_error
        return self.current_session

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> SignUpResult:
        self.calls.append("sign_up")
        self.sign_up_metadata = metadata
        if self.sign_up_error is not None:
            raise self.sign_up_error
        return self.sign_up_result

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        self.calls.append("sign_in")
        if self.sign_in_error is not None:
            raise self.sign_in_error
        return self.sign_in_result

    async def sign_out(self) -> None:
        self.calls.append("sign_out")
        if self.sign_out_gate is not None:
            await self.sign_out_gate.wait()
        if self.sign_out_error is not None:
            raise self.sign_out_error
        self.current_session = None

    async def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        self.calls.append("reset_password")
        self.reset_requests.append((email, redirect_to))

    async def update_password(self, new_password: str) -> None:
        self.calls.append("update_password")
        self.updated_passwords.append(new_password)

    async def refresh_session(self, refresh_token: str) -> Session:
        self.calls.append("refresh_session")
        if self.refresh_error is not None:
            raise self.refresh_error
        return self.refresh_result

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def emit(self, event: AuthEvent, session: Optional[Session] = None) -> None:
        """Deliver an event the way the Supabase client does: fire and forget."""
        for listener in list(self._listeners):
            listener(event, session)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class ScriptedValidator:
    """Validator returning a fixed result, optionally held open by a gate."""

    def __init__(self, result: ValidationResult = ValidationResult.VALID) -> None:
        self.result = result
        self.gate: Optional[asyncio.Event] = None
        self.calls: list[Session] = []

    async def validate(self, session: Session) -> ValidationResult:
        self.calls.append(session)
        if self.gate is not None:
            await self.gate.wait()
        return self.result


@pytest.fixture(autouse=True)
def reset_auth_singleton():
    """Reset the auth service singleton before and after each test."""
    reset_auth_service()
    yield
    reset_auth_service()


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return "test-user-123"


@pytest.fixture
def test_user_email() -> str:
    """Provide a consistent test user email."""
    return "test@example.com"


@pytest.fixture
def auth_token(test_user_id: str, test_user_email: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id, email=test_user_email)


@pytest.fixture
def session(test_user_id: str, test_user_email: str) -> Session:
    """A live session for the test user."""
    return make_session(test_user_id, test_user_email)


@pytest.fixture
def session_factory() -> Callable[..., Session]:
    return make_session


@pytest.fixture
def identity_factory() -> Callable[..., Identity]:
    return make_identity


@pytest.fixture
def local_storage() -> InMemoryLocalStorage:
    return InMemoryLocalStorage()


@pytest.fixture
def metadata_cache(local_storage: InMemoryLocalStorage) -> SessionMetadataCache:
    return SessionMetadataCache(local_storage)


@pytest.fixture
def session_store(metadata_cache: SessionMetadataCache) -> SessionStore:
    return SessionStore(metadata_cache)


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def validator() -> ScriptedValidator:
    return ScriptedValidator()


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def reconciler(profile_repository: InMemoryProfileRepository) -> ProfileReconciler:
    return ProfileReconciler(profile_repository, PendingUpdateStore())


@pytest.fixture
def test_settings() -> Settings:
    """Settings with short bounds so timeout paths finish quickly."""
    return Settings(
        startup_timeout=1.0,
        sign_out_timeout=0.2,
        profile_timeout=1.0,
        revalidation_interval=0.05,
        unreachable_policy=UnreachablePolicy.FAIL_OPEN,
        recovery_requires_metadata=True,
    )


@pytest_asyncio.fixture
async def make_machine(
    provider: FakeIdentityProvider,
    validator: ScriptedValidator,
    reconciler: ProfileReconciler,
    session_store: SessionStore,
    metadata_cache: SessionMetadataCache,
    test_settings: Settings,
):
    """
    Factory for auth state machines wired to the fakes above.

    Keyword arguments override individual settings. Every machine created
    is closed when the test finishes.
    """
    machines: list[AuthStateMachine] = []

    def factory(**overrides: Any) -> AuthStateMachine:
        settings = test_settings.model_copy(update=overrides)
        machine = AuthStateMachine(
            provider=provider,
            validator=validator,
            reconciler=reconciler,
            session_store=session_store,
            metadata_cache=metadata_cache,
            settings=settings,
        )
        machines.append(machine)
        return machine

    yield factory

    for machine in machines:
        await machine.close()
