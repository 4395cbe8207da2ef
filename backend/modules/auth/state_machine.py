"""
Auth state machine.

Owns the session lifecycle: startup recovery, sign-up, sign-in, sign-out
and identity provider events. Every transition runs on a single consumer
task fed by a command queue, so no two transitions ever interleave and a
stale operation can never overwrite a newer one.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from shared.config import Settings, UnreachablePolicy, get_settings
from shared.exceptions import SiteCraftError, TransientNetworkError
from shared.models import Identity
from modules.session.interfaces import ISessionValidator
from modules.session.metadata import SessionMetadataCache
from modules.session.models import Session, ValidationResult
from modules.session.store import SessionStore
from modules.profiles.exceptions import ProfileConflictError, ProfileWriteError
from modules.profiles.models import PendingProfileUpdate, ProfileFields, UserProfile
from modules.profiles.reconciler import ProfileReconciler

from .interfaces import IIdentityProvider
from .models import AuthEvent, AuthState, SignOutOutcome, SignUpResult
from .exceptions import (
    AuthTimeoutError,
    IdentityProviderError,
    InvalidCredentialError,
    NotAuthenticatedError,
)

logger = logging.getLogger(__name__)

REVOKED_CREDENTIALS_KEPT = 16


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Command:
    name: str
    run: Callable[[], Awaitable[Any]]
    future: Optional[asyncio.Future] = field(default=None, repr=False)


@dataclass
class _Recovery:
    """What startup found, decided without touching any state."""

    session: Optional[Session] = None
    result: Optional[ValidationResult] = None


class AuthStateMachine:
    """
    Serialized owner of the auth lifecycle.

    Public coroutines enqueue a command and wait for its result. Provider
    events are enqueued from the subscription callback and never awaited
    by the provider. The single consumer is the only writer of the
    session store, the current profile and the pending profile update.
    """

    def __init__(
        self,
        provider: IIdentityProvider,
        validator: ISessionValidator,
        reconciler: ProfileReconciler,
        session_store: SessionStore,
        metadata_cache: SessionMetadataCache,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        settings = settings or get_settings()
        self._provider = provider
        self._validator = validator
        self._reconciler = reconciler
        self._store = session_store
        self._metadata = metadata_cache
        self._clock = clock

        self._unreachable_policy = settings.unreachable_policy
        self._recovery_requires_metadata = settings.recovery_requires_metadata
        self._startup_timeout = settings.startup_timeout
        self._sign_out_timeout = settings.sign_out_timeout
        self._profile_timeout = settings.profile_timeout
        self._revalidation_interval = settings.revalidation_interval

        self._state = AuthState.ANONYMOUS
        self._profile: Optional[UserProfile] = None
        self._verified = False
        self._last_error: Optional[SiteCraftError] = None
        self._profile_error: Optional[SiteCraftError] = None

        self._queue: "asyncio.Queue[_Command]" = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._consumer: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._initialize_called = False
        self._initialization_cancelled = False
        self._startup_task: Optional[asyncio.Task] = None
        self._revalidation_task: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()
        self._pending_user_actions = 0
        self._revoked: deque[str] = deque(maxlen=REVOKED_CREDENTIALS_KEPT)

        self.last_remote_sign_out: Optional[asyncio.Task] = None

    # =========================================================================
    # Observable state
    # =========================================================================

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def current_session(self) -> Optional[Session]:
        return self._store.current()

    @property
    def current_user(self) -> Optional[Identity]:
        session = self._store.current()
        return session.identity if session else None

    @property
    def current_profile(self) -> Optional[UserProfile]:
        return self._profile

    @property
    def is_initializing(self) -> bool:
        return self._state is AuthState.INITIALIZING

    @property
    def is_loading(self) -> bool:
        """True while startup or a user-initiated operation is in flight."""
        return self.is_initializing or self._pending_user_actions > 0

    @property
    def is_verified(self) -> bool:
        """Whether the backend has accepted the current session."""
        return self._verified

    @property
    def last_error(self) -> Optional[SiteCraftError]:
        """The last error that left the machine anonymous, if any."""
        return self._last_error

    @property
    def profile_error(self) -> Optional[SiteCraftError]:
        """The last profile reconciliation failure, if any."""
        return self._profile_error

    @property
    def pending_update(self) -> Optional[PendingProfileUpdate]:
        return self._reconciler.pending_updates.get()

    # =========================================================================
    # Command queue
    # =========================================================================

    def _ensure_running(self) -> None:
        if self._consumer is not None and not self._consumer.done():
            return
        self._loop = asyncio.get_running_loop()
        self._consumer = self._loop.create_task(self._consume(), name="auth-state-machine")
        if self._unsubscribe is None:
            self._unsubscribe = self._provider.on_auth_state_change(self.handle_provider_event)

    async def _consume(self) -> None:
        while True:
            command = await self._queue.get()
            try:
                result = await command.run()
            except asyncio.CancelledError:
                if command.future is not None and not command.future.done():
                    command.future.cancel()
                raise
            except Exception as e:
                if command.future is None:
                    logger.exception(f"Auth command {command.name} failed")
                elif not command.future.done():
                    command.future.set_exception(e)
            else:
                if command.future is not None and not command.future.done():
                    command.future.set_result(result)
            finally:
                self._queue.task_done()

    async def _submit(
        self,
        name: str,
        run: Callable[[], Awaitable[Any]],
        user_action: bool = True,
    ) -> Any:
        self._ensure_running()
        future = self._loop.create_future()
        if user_action:
            self._pending_user_actions += 1
        try:
            self._queue.put_nowait(_Command(name, run, future))
            return await future
        finally:
            if user_action:
                self._pending_user_actions -= 1

    def _enqueue(self, name: str, run: Callable[[], Awaitable[Any]]) -> None:
        self._queue.put_nowait(_Command(name, run))

    def handle_provider_event(self, event: AuthEvent, session: Optional[Session]) -> None:
        """
        Subscription callback for identity provider events.

        Only enqueues; safe to call from any thread once the machine runs.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug(f"Dropping auth event {event.value}: state machine not running")
            return

        run = partial(self._handle_event, event, session)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._enqueue(f"event:{event.value}", run)
        else:
            loop.call_soon_threadsafe(self._enqueue, f"event:{event.value}", run)

    async def wait_idle(self) -> None:
        """Wait until every queued command has been processed."""
        await self._queue.join()

    async def close(self) -> None:
        """Stop the consumer and cancel background work."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cancel_initialization()
        self._cancel_revalidation()
        for task in list(self._background):
            task.cancel()

        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        while not self._queue.empty():
            command = self._queue.get_nowait()
            if command.future is not None and not command.future.done():
                command.future.cancel()
            self._queue.task_done()

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # =========================================================================
    # Startup recovery
    # =========================================================================

    async def initialize(self) -> AuthState:
        """
        Recover a persisted session, at most once per process.

        Resolves to Authenticated or Anonymous within the startup timeout.
        Later calls return the current state without re-entering
        Initializing.
        """
        if self._initialize_called:
            return self._state
        self._initialize_called = True
        return await self._submit("startup", self._startup)

    def cancel_initialization(self) -> None:
        """
        Abandon startup recovery. The machine lands Anonymous.

        Also applies when startup is queued but has not begun yet.
        """
        self._initialization_cancelled = True
        if self._startup_task is not None and not self._startup_task.done():
            logger.info("Cancelling session recovery")
            self._startup_task.cancel()

    async def _startup(self) -> AuthState:
        self._state = AuthState.INITIALIZING
        self._last_error = None

        if self._initialization_cancelled:
            logger.info("Session recovery cancelled before it started")
            self._state = AuthState.ANONYMOUS
            return self._state

        if self._recovery_requires_metadata:
            try:
                recent = self._metadata.had_recent_session()
            except Exception as e:
                logger.exception("Failed to read session metadata")
                self._fail_closed(
                    SiteCraftError(
                        f"Could not read session metadata: {e}",
                        code="METADATA_UNREADABLE",
                    )
                )
                return self._state
            if not recent:
                logger.info("No recent session recorded, starting anonymous")
                self._state = AuthState.ANONYMOUS
                return self._state

        task = asyncio.ensure_future(self._recover())
        self._startup_task = task
        try:
            done, _ = await asyncio.wait({task}, timeout=self._startup_timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            self._startup_task = None

        if not done:
            task.cancel()
            logger.warning(
                f"Session recovery exceeded {self._startup_timeout}s, starting anonymous"
            )
            self._fail_closed(AuthTimeoutError())
            return self._state

        if task.cancelled():
            self._state = AuthState.ANONYMOUS
            return self._state

        error = task.exception()
        if error is not None:
            logger.error(f"Session recovery failed: {error}")
            if not isinstance(error, SiteCraftError):
                error = IdentityProviderError("recover_session", str(error))
            self._fail_closed(error)
            return self._state

        await self._apply_recovery(task.result())
        return self._state

    async def _recover(self) -> _Recovery:
        session = await self._provider.get_current_session()
        if session is None:
            return _Recovery()

        if session.is_expired(self._clock()):
            if not session.refresh_token:
                logger.info("Recovered session expired and cannot be refreshed")
                return _Recovery()
            try:
                session = await self._provider.refresh_session(session.refresh_token)
            except InvalidCredentialError:
                logger.info("Refresh token rejected during recovery")
                return _Recovery()

        result = await self._validator.validate(session)
        return _Recovery(session=session, result=result)

    async def _apply_recovery(self, recovery: _Recovery) -> None:
        session = recovery.session
        if session is None:
            logger.info("No session to recover, starting anonymous")
            self._metadata.clear()
            self._state = AuthState.ANONYMOUS
            return

        if recovery.result is ValidationResult.VALID:
            logger.info(f"Recovered session for {session.owner_identity_id}")
            await self._authenticate(session, verified=True)
        elif recovery.result is ValidationResult.INVALID:
            logger.info("Recovered session rejected by backend, starting anonymous")
            self._revoked.append(session.credential)
            self._metadata.clear()
            self._state = AuthState.ANONYMOUS
            self._start_remote_sign_out()
        elif self._unreachable_policy is UnreachablePolicy.FAIL_OPEN:
            logger.warning(
                f"Backend unreachable, continuing with unverified session for "
                f"{session.owner_identity_id}"
            )
            await self._authenticate(session, verified=False)
            self._schedule_revalidation()
        else:
            logger.warning("Backend unreachable, starting anonymous")
            self._fail_closed(TransientNetworkError("resource_api", "could not validate session"))

    def _fail_closed(self, error: SiteCraftError) -> None:
        self._teardown_local()
        self._state = AuthState.ANONYMOUS
        self._last_error = error

    # =========================================================================
    # Transitions shared by several operations
    # =========================================================================

    async def _authenticate(self, session: Session, verified: bool) -> None:
        current = self._store.current()
        if current is not None and current.owner_identity_id != session.owner_identity_id:
            logger.info(f"Replacing session of {current.owner_identity_id}")
            self._teardown_local()

        self._store.set_session(session)
        self._verified = verified
        self._state = AuthState.AUTHENTICATED
        self._last_error = None
        await self._reconcile(session.identity)

    async def _reconcile(self, identity: Identity) -> None:
        try:
            self._profile = await asyncio.wait_for(
                self._reconciler.ensure_profile(identity), self._profile_timeout
            )
            self._profile_error = None
        except asyncio.TimeoutError:
            logger.warning(f"Profile reconciliation for {identity.id} timed out")
            self._profile = None
            self._profile_error = AuthTimeoutError("Loading your profile timed out")
        except SiteCraftError as e:
            logger.warning(f"Profile reconciliation for {identity.id} failed: {e.message}")
            self._profile = None
            self._profile_error = e

    def _teardown_local(self, clear_pending: bool = False) -> None:
        self._cancel_revalidation()
        if self._store.current() is not None:
            self._store.clear_session()
        self._profile = None
        self._profile_error = None
        self._verified = False
        if clear_pending:
            self._reconciler.pending_updates.clear()

    async def _guarded(self, operation: str, run: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await run()
        except Exception as e:
            logger.warning(f"{operation} failed: {e}")
            self._teardown_local()
            self._state = AuthState.ANONYMOUS
            raise

    # =========================================================================
    # Sign-up and sign-in
    # =========================================================================

    async def sign_up(
        self,
        email: str,
        password: str,
        fields: Optional[ProfileFields] = None,
    ) -> SignUpResult:
        """
        Create an identity and, when a session is issued, its profile.

        When no session is issued (email verification), non-empty profile
        fields are kept as a pending update and applied at the next
        authenticated transition for the same identity.

        Raises:
            InvalidCredentialError, IdentityProviderError, TransientNetworkError:
                The machine is left Anonymous
        """
        fields = fields or ProfileFields()
        return await self._submit(
            "sign_up",
            partial(self._guarded, "Sign-up", partial(self._sign_up, email, password, fields)),
        )

    async def _sign_up(self, email: str, password: str, fields: ProfileFields) -> SignUpResult:
        metadata = fields.model_dump(exclude_none=True, exclude={"settings"})
        result = await self._provider.sign_up(email, password, metadata)

        if result.session is None:
            if not fields.is_empty():
                self._reconciler.pending_updates.put(
                    PendingProfileUpdate(
                        fields=fields,
                        identity_id=result.identity.id if result.identity else None,
                        email=email,
                        created_at=self._clock(),
                    )
                )
                logger.info(f"Profile fields for {email} kept until the first sign-in")
            return result

        session = result.session
        current = self._store.current()
        if current is not None and current.owner_identity_id != session.owner_identity_id:
            self._teardown_local()
        self._store.set_session(session)
        self._verified = True
        self._state = AuthState.AUTHENTICATED
        self._last_error = None

        try:
            self._profile = await asyncio.wait_for(
                self._reconciler.create_profile(session.identity, fields),
                self._profile_timeout,
            )
            self._profile_error = None
            return result
        except (ProfileWriteError, asyncio.TimeoutError) as e:
            logger.warning(
                f"Profile creation for {session.owner_identity_id} deferred: {e}"
            )
            self._profile = None
            self._profile_error = (
                e if isinstance(e, ProfileWriteError)
                else AuthTimeoutError("Creating your profile timed out")
            )
            conflict = isinstance(e, ProfileConflictError)

        self._reconciler.pending_updates.put(
            PendingProfileUpdate(
                fields=fields,
                identity_id=session.owner_identity_id,
                email=email,
                created_at=self._clock(),
            )
        )
        if conflict:
            # The row already exists (e.g. made by a database trigger): load it
            # and apply the sign-up fields to it now
            await self._reconcile(session.identity)
        return result

    async def sign_in(self, email: str, password: str) -> Identity:
        """
        Exchange email and password for a session.

        Raises:
            InvalidCredentialError, IdentityProviderError, TransientNetworkError:
                The machine is left Anonymous
        """
        return await self._submit(
            "sign_in",
            partial(self._guarded, "Sign-in", partial(self._sign_in, email, password)),
        )

    async def _sign_in(self, email: str, password: str) -> Identity:
        session = await self._provider.sign_in_with_password(email, password)
        await self._authenticate(session, verified=True)
        logger.info(f"Signed in {session.owner_identity_id}")
        return session.identity

    # =========================================================================
    # Sign-out
    # =========================================================================

    async def sign_out(self) -> None:
        """
        Sign out. Never raises.

        Local state is gone when this returns. The provider is told in
        the background, bounded by the sign-out timeout.
        """
        try:
            await self._submit("sign_out", self._sign_out)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Sign-out failed")

    async def _sign_out(self) -> None:
        session = self._store.current()
        if self._state is AuthState.ANONYMOUS and session is None:
            logger.debug("Sign-out while anonymous, nothing to do")
            return

        self._state = AuthState.SIGNING_OUT
        if session is not None:
            self._revoked.append(session.credential)
        self._teardown_local(clear_pending=True)
        self._state = AuthState.ANONYMOUS
        logger.info("Signed out locally")
        self._start_remote_sign_out()

    def _start_remote_sign_out(self) -> None:
        self.last_remote_sign_out = self._track(
            asyncio.ensure_future(self._remote_sign_out())
        )

    async def _remote_sign_out(self) -> SignOutOutcome:
        remote = self._track(asyncio.ensure_future(self._provider.sign_out()))
        remote.add_done_callback(_retrieve_result)

        done, _ = await asyncio.wait({remote}, timeout=self._sign_out_timeout)
        if not done:
            logger.warning(
                f"Remote sign-out still pending after {self._sign_out_timeout}s, "
                f"local sign-out already complete"
            )
            return SignOutOutcome.TIMED_OUT
        if remote.cancelled() or remote.exception() is not None:
            logger.warning(f"Remote sign-out failed: {_describe(remote)}")
            return SignOutOutcome.FAILED
        logger.info("Remote sign-out completed")
        return SignOutOutcome.COMPLETED

    # =========================================================================
    # Provider events
    # =========================================================================

    async def _handle_event(self, event: AuthEvent, session: Optional[Session]) -> None:
        if event is AuthEvent.SIGNED_OUT:
            await self._sign_out()
        elif event is AuthEvent.SIGNED_IN:
            await self._on_signed_in(session)
        elif event is AuthEvent.TOKEN_REFRESHED:
            await self._on_token_refreshed(session)
        else:
            logger.debug(f"Ignoring auth event {event.value}")

    async def _on_signed_in(self, session: Optional[Session]) -> None:
        if session is None:
            return
        if session.credential in self._revoked:
            logger.info("Ignoring sign-in event for a signed-out session")
            return
        current = self._store.current()
        if (
            self._state is AuthState.AUTHENTICATED
            and current is not None
            and current.credential == session.credential
        ):
            # Sent right after sign-up for the session we already hold
            if (
                self._profile is None
                or self._reconciler.pending_updates.get_for(session.identity) is not None
            ):
                await self._reconcile(session.identity)
            return
        await self._authenticate(session, verified=True)

    async def _on_token_refreshed(self, session: Optional[Session]) -> None:
        current = self._store.current()
        if (
            session is None
            or current is None
            or self._state is not AuthState.AUTHENTICATED
            or session.owner_identity_id != current.owner_identity_id
        ):
            logger.debug("Ignoring token refresh for a session that is not current")
            return
        self._store.set_session(session)
        await self._reconcile(session.identity)

    # =========================================================================
    # Re-validation
    # =========================================================================

    async def revalidate(self) -> Optional[ValidationResult]:
        """
        Ask the backend about the current session now.

        An Invalid answer signs out. Returns None when there is no session.
        """
        return await self._submit("revalidate", self._revalidate, user_action=False)

    async def _revalidate(self, expected_owner: Optional[str] = None) -> Optional[ValidationResult]:
        session = self._store.current()
        if self._state is not AuthState.AUTHENTICATED or session is None:
            return None
        if expected_owner is not None and session.owner_identity_id != expected_owner:
            return None

        result = await self._validator.validate(session)
        if result is ValidationResult.VALID:
            if not self._verified:
                logger.info(f"Session for {session.owner_identity_id} verified")
            self._verified = True
        elif result is ValidationResult.INVALID:
            logger.warning("Backend rejected the current session, signing out")
            await self._sign_out()
        elif not self._verified:
            self._schedule_revalidation()
        return result

    def _schedule_revalidation(self) -> None:
        session = self._store.current()
        if session is None:
            return
        self._cancel_revalidation()
        self._revalidation_task = self._track(
            asyncio.ensure_future(self._revalidate_later(session.owner_identity_id))
        )

    async def _revalidate_later(self, owner: str) -> None:
        await asyncio.sleep(self._revalidation_interval)
        self._enqueue("revalidate", partial(self._revalidate, owner))

    def _cancel_revalidation(self) -> None:
        if self._revalidation_task is not None:
            self._revalidation_task.cancel()
            self._revalidation_task = None

    # =========================================================================
    # Profile operations
    # =========================================================================

    async def create_profile(self, fields: ProfileFields) -> UserProfile:
        """
        Create the signed-in identity's profile.

        Raises:
            NotAuthenticatedError: If nobody is signed in
            ProfileConflictError, ProfileWriteError: If the insert failed
        """
        return await self._submit("create_profile", partial(self._create_profile, fields))

    async def _create_profile(self, fields: ProfileFields) -> UserProfile:
        identity = self._require_identity()
        self._profile = await self._reconciler.create_profile(identity, fields)
        return self._profile

    async def update_profile(self, fields: ProfileFields) -> UserProfile:
        """
        Update the signed-in identity's profile.

        Raises:
            NotAuthenticatedError: If nobody is signed in
            ProfileNotFoundError, ProfileWriteError: If the update failed
        """
        return await self._submit("update_profile", partial(self._update_profile, fields))

    async def _update_profile(self, fields: ProfileFields) -> UserProfile:
        identity = self._require_identity()
        self._profile = await self._reconciler.update_profile(identity, fields)
        return self._profile

    async def refresh_profile(self) -> Optional[UserProfile]:
        """
        Load (or create) the signed-in identity's profile again.

        Retries after a failed reconciliation and applies any pending
        update. Failures are recorded in profile_error rather than raised.

        Raises:
            NotAuthenticatedError: If nobody is signed in
        """
        return await self._submit("refresh_profile", self._refresh_profile)

    async def _refresh_profile(self) -> Optional[UserProfile]:
        identity = self._require_identity()
        await self._reconcile(identity)
        return self._profile

    def _require_identity(self) -> Identity:
        session = self._store.current()
        if self._state is not AuthState.AUTHENTICATED or session is None:
            raise NotAuthenticatedError()
        return session.identity


def _retrieve_result(task: asyncio.Task) -> None:
    # Detached calls must not leave "exception was never retrieved" behind
    if not task.cancelled():
        task.exception()


def _describe(task: asyncio.Task) -> str:
    if task.cancelled():
        return "cancelled"
    return str(task.exception())
