"""
Session module data models.

These models define the live session, its non-authoritative metadata
shadow, and the outcome of validating a session against the backend.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import jwt
from pydantic import BaseModel, Field

from shared.models import Identity

from .exceptions import MalformedCredentialError


class ValidationResult(str, Enum):
    """Classification of a backend validation call."""

    VALID = "valid"              # Backend accepted the credential
    INVALID = "invalid"          # Backend rejected the credential (401)
    UNREACHABLE = "unreachable"  # Backend could not vouch either way


class Session(BaseModel):
    """
    The live proof of authentication for one identity.

    Owned exclusively by the SessionStore. The credential is excluded
    from repr so sessions can be logged safely.
    """

    credential: str = Field(..., repr=False, description="Opaque bearer token")
    identity: Identity = Field(..., description="Identity that owns the session")
    expires_at: datetime = Field(..., description="When the credential expires")
    refresh_token: Optional[str] = Field(
        None, repr=False, description="Refresh token, if the provider issued one"
    )

    model_config = {"frozen": True}

    @property
    def owner_identity_id(self) -> str:
        """ID of the identity that owns this session."""
        return self.identity.id

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the credential has expired."""
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now

    @classmethod
    def from_access_token(
        cls,
        token: str,
        identity: Identity,
        refresh_token: Optional[str] = None,
    ) -> "Session":
        """
        Build a session, reading the expiry from the token's own claims.

        The signature is not checked here; only the backend can vouch
        for a credential.

        Raises:
            MalformedCredentialError: If the token is not a JWT with an exp claim
        """
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            raise MalformedCredentialError(str(e)) from e

        exp = claims.get("exp")
        if exp is None:
            raise MalformedCredentialError("Token has no exp claim")

        return cls(
            credential=token,
            identity=identity,
            expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc),
            refresh_token=refresh_token,
        )


class SessionMetadata(BaseModel):
    """
    Best-effort breadcrumb that a session existed.

    Used only to decide whether startup should try to recover a session.
    Never trusted for authorization, and never holds a credential.
    """

    had_session: bool = Field(default=True, description="Whether a session was set")
    captured_at: datetime = Field(..., description="When the breadcrumb was written")
    owner_identity_id: Optional[str] = Field(None, description="Identity of the session")
    email: Optional[str] = Field(None, description="Email of the identity")
    expires_at: Optional[datetime] = Field(None, description="Session expiry")
    version: str = Field(default="1.0", description="Payload format version")

    @classmethod
    def from_session(cls, session: Session, now: Optional[datetime] = None) -> "SessionMetadata":
        """Capture the non-secret parts of a session."""
        return cls(
            had_session=True,
            captured_at=now or datetime.now(timezone.utc),
            owner_identity_id=session.owner_identity_id,
            email=session.identity.email,
            expires_at=session.expires_at,
        )

    def is_stale(self, max_age: timedelta, now: Optional[datetime] = None) -> bool:
        """Check whether the breadcrumb is too old to act on."""
        now = now or datetime.now(timezone.utc)
        return now - self.captured_at > max_age
