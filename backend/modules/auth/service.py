"""
Authentication service implementation.

The facade the application talks to: exposes the session lifecycle of
the auth state machine together with profile, plan and usage lookups for
the signed-in user.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from shared.config import Settings, get_settings
from shared.database import get_supabase_client
from shared.exceptions import SiteCraftError
from shared.models import Identity
from modules.session.metadata import SessionMetadataCache
from modules.session.models import Session, ValidationResult
from modules.session.storage import FileLocalStorage
from modules.session.store import SessionStore
from modules.session.validator import BackendValidator
from modules.profiles.models import ProfileFields, UserProfile
from modules.profiles.pending import PendingUpdateStore
from modules.profiles.reconciler import ProfileReconciler
from modules.profiles.repository import SupabaseProfileRepository
from modules.plans import PlanLimits, QuotaStatus, has_feature, limits_for, quota_status
from modules.usage.exceptions import UsageError
from modules.usage.interfaces import IUsageService
from modules.usage.models import UsageLogEntry
from modules.usage.service import SupabaseUsageService, resolve_timezone

from .interfaces import IAuthService, IIdentityProvider
from .models import AuthState, SignUpResult
from .provider import SupabaseIdentityProvider
from .state_machine import AuthStateMachine
from .exceptions import NotAuthenticatedError

logger = logging.getLogger(__name__)

ANALYSIS_ACTION = "analysis"


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Session-changing operations go through the state machine; plan and
    usage lookups read the current profile and the usage log.
    """

    def __init__(
        self,
        machine: AuthStateMachine,
        provider: IIdentityProvider,
        usage: IUsageService,
        reset_password_redirect: str,
    ):
        self._machine = machine
        self._provider = provider
        self._usage = usage
        self._reset_password_redirect = reset_password_redirect

    # =========================================================================
    # State
    # =========================================================================

    @property
    def machine(self) -> AuthStateMachine:
        return self._machine

    @property
    def state(self) -> AuthState:
        return self._machine.state

    @property
    def current_user(self) -> Optional[Identity]:
        return self._machine.current_user

    @property
    def current_session(self) -> Optional[Session]:
        return self._machine.current_session

    @property
    def current_profile(self) -> Optional[UserProfile]:
        return self._machine.current_profile

    @property
    def is_loading(self) -> bool:
        return self._machine.is_loading

    @property
    def is_initializing(self) -> bool:
        return self._machine.is_initializing

    @property
    def is_authenticated(self) -> bool:
        return self._machine.state is AuthState.AUTHENTICATED

    @property
    def last_error(self) -> Optional[SiteCraftError]:
        """Why the last startup or sign-in ended in Anonymous, if it failed."""
        return self._machine.last_error

    @property
    def profile_error(self) -> Optional[SiteCraftError]:
        return self._machine.profile_error

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> AuthState:
        return await self._machine.initialize()

    def cancel_initialization(self) -> None:
        self._machine.cancel_initialization()

    async def close(self) -> None:
        await self._machine.close()

    async def sign_up(
        self,
        email: str,
        password: str,
        fields: Optional[ProfileFields] = None,
    ) -> SignUpResult:
        return await self._machine.sign_up(email, password, fields)

    async def sign_in(self, email: str, password: str) -> Identity:
        return await self._machine.sign_in(email, password)

    async def sign_out(self) -> None:
        await self._machine.sign_out()

    async def reset_password(self, email: str) -> None:
        """Send a password reset email that links back to the frontend."""
        await self._provider.reset_password_for_email(email, self._reset_password_redirect)
        logger.info(f"Password reset requested for {email}")

    async def update_password(self, new_password: str) -> None:
        """
        Change the signed-in user's password.

        Raises:
            NotAuthenticatedError: If nobody is signed in
        """
        if not self.is_authenticated:
            raise NotAuthenticatedError()
        await self._provider.update_password(new_password)
        logger.info(f"Password updated for {self.current_user.id}")

    async def check_session_health(self) -> bool:
        """
        Re-validate the current session against the backend.

        Returns False when there is no session or the backend rejected it
        (which also signs out). An unreachable backend counts as healthy.
        """
        result = await self._machine.revalidate()
        return result is not None and result is not ValidationResult.INVALID

    # =========================================================================
    # Profile
    # =========================================================================

    async def create_profile(self, fields: ProfileFields) -> UserProfile:
        return await self._machine.create_profile(fields)

    async def update_profile(self, fields: ProfileFields) -> UserProfile:
        return await self._machine.update_profile(fields)

    async def refresh_profile(self) -> Optional[UserProfile]:
        """Retry loading the profile, e.g. when the app regains focus."""
        return await self._machine.refresh_profile()

    # =========================================================================
    # Plans and usage
    # =========================================================================

    def plan_limits(self) -> PlanLimits:
        """Limits of the current user's plan (free when unknown)."""
        profile = self.current_profile
        return limits_for(profile.plan_type if profile else None)

    def has_feature(self, feature: str) -> bool:
        profile = self.current_profile
        return has_feature(profile.plan_type if profile else None, feature)

    async def monthly_usage(
        self,
        action: str = ANALYSIS_ACTION,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Count the current user's uses of an action this month.

        Returns 0 when nobody is signed in.

        Raises:
            UsageQueryError: If the usage log could not be read
        """
        user = self.current_user
        if user is None:
            return 0
        return await self._usage.monthly_usage(user.id, action, now)

    async def quota_status(
        self,
        action: str = ANALYSIS_ACTION,
        now: Optional[datetime] = None,
    ) -> QuotaStatus:
        """
        Usage of an action against the current plan's monthly allowance.

        Raises:
            UsageQueryError: If the usage log could not be read
        """
        period = self._usage.get_current_period(now)
        used = await self.monthly_usage(action, now)
        return quota_status(self.plan_limits().plan_type, action, used, period.end)

    async def log_action(
        self,
        action: str,
        resource_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[UsageLogEntry]:
        """
        Record an action for the current user.

        Logging is best-effort: failures are logged and None is returned.
        """
        user = self.current_user
        if user is None:
            logger.debug(f"Not logging {action}: nobody signed in")
            return None
        try:
            return await self._usage.log_action(user.id, action, resource_id, metadata)
        except UsageError as e:
            logger.warning(f"Failed to log {action} for {user.id}: {e.message}")
            return None


async def create_auth_service(settings: Optional[Settings] = None) -> AuthService:
    """Wire the auth service against Supabase and the resource API."""
    settings = settings or get_settings()
    client = await get_supabase_client()

    metadata_cache = SessionMetadataCache(
        FileLocalStorage(settings.local_storage_dir),
        max_age=timedelta(days=settings.metadata_max_age_days),
    )
    provider = SupabaseIdentityProvider(client)
    machine = AuthStateMachine(
        provider=provider,
        validator=BackendValidator(
            settings.resource_api_url,
            settings.validation_path,
            settings.validation_request_timeout,
        ),
        reconciler=ProfileReconciler(SupabaseProfileRepository(client), PendingUpdateStore()),
        session_store=SessionStore(metadata_cache),
        metadata_cache=metadata_cache,
        settings=settings,
    )
    usage = SupabaseUsageService(client, zone=resolve_timezone(settings.usage_timezone))
    return AuthService(machine, provider, usage, settings.reset_password_redirect)


# Module-level instance getter
_service_instance: Optional[AuthService] = None


async def get_auth_service() -> AuthService:
    """Get the auth service singleton."""
    global _service_instance
    if _service_instance is None:
        _service_instance = await create_auth_service()
    return _service_instance


def reset_auth_service() -> None:
    """Reset the auth service singleton (for testing)."""
    global _service_instance
    _service_instance = None
