"""
Authentication module data models.

These models define the auth lifecycle states, the identity-provider
events the state machine reacts to, and provider call results.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from shared.models import Identity
from modules.session.models import Session


class AuthState(str, Enum):
    """Lifecycle states of the auth state machine."""

    ANONYMOUS = "anonymous"
    INITIALIZING = "initializing"  # Only during startup recovery, never re-entered
    AUTHENTICATED = "authenticated"
    SIGNING_OUT = "signing_out"


class AuthEvent(str, Enum):
    """Events delivered by the identity provider's subscription."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class SignOutOutcome(str, Enum):
    """How the remote half of a sign-out finished (logged only)."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class SignUpResult(BaseModel):
    """
    Result of a sign-up call.

    The provider may create the identity without issuing a session when
    the email address has to be verified first.
    """

    identity: Optional[Identity] = Field(None, description="Created identity, if returned")
    session: Optional[Session] = Field(None, description="Session, if issued immediately")

    @property
    def requires_verification(self) -> bool:
        return self.session is None
