"""
Profile module data models.

These models define the application-owned user profile, the fields a
user can supply for it, and the deferred update kept while a session
does not exist yet.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from shared.models import Identity


class ProfileFields(BaseModel):
    """
    Profile fields supplied by the user (sign-up form, settings page).

    Unset fields are left untouched on update.
    """

    first_name: Optional[str] = Field(None, description="First name")
    last_name: Optional[str] = Field(None, description="Last name")
    company: Optional[str] = Field(None, description="Company name")
    settings: Optional[dict[str, Any]] = Field(None, description="UI/user settings")

    model_config = {"frozen": True, "extra": "ignore"}

    def to_update(self) -> dict[str, Any]:
        """Column values for the fields that were actually provided."""
        return self.model_dump(exclude_none=True)

    def is_empty(self) -> bool:
        """Whether no field was provided."""
        return not self.to_update()

    @classmethod
    def from_identity(cls, identity: Identity) -> "ProfileFields":
        """Read whatever the identity provider captured at sign-up."""
        metadata = identity.user_metadata or {}
        return cls(
            first_name=metadata.get("first_name"),
            last_name=metadata.get("last_name"),
            company=metadata.get("company"),
        )


class UserProfile(BaseModel):
    """
    Application-owned metadata about a user.

    Keyed by the identity ID; exactly one per identity.
    """

    id: str = Field(..., description="Identity ID (primary key)")
    email: Optional[str] = Field(None, description="Email address")
    first_name: Optional[str] = Field(None, description="First name")
    last_name: Optional[str] = Field(None, description="Last name")
    company: Optional[str] = Field(None, description="Company name")
    plan_type: str = Field(default="free", description="Subscription plan")
    settings: dict[str, Any] = Field(default_factory=dict, description="User settings")
    created_at: Optional[datetime] = Field(None, description="Creation time")
    updated_at: Optional[datetime] = Field(None, description="Last update time")

    model_config = {"extra": "ignore"}

    @classmethod
    def new(cls, identity: Identity, fields: ProfileFields) -> "UserProfile":
        """Build the initial profile row for an identity."""
        return cls(
            id=identity.id,
            email=identity.email,
            first_name=fields.first_name,
            last_name=fields.last_name,
            company=fields.company,
            settings=fields.settings or {},
        )


class PendingProfileUpdate(BaseModel):
    """
    Profile fields collected before a session existed to persist them.

    Consumed the next time the matching identity becomes authenticated.
    """

    fields: ProfileFields = Field(..., description="Fields to apply")
    identity_id: Optional[str] = Field(
        None, description="Identity ID, when the provider returned one"
    )
    email: Optional[str] = Field(None, description="Email used at sign-up")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the update was deferred",
    )

    model_config = {"frozen": True}

    def matches(self, identity: Identity) -> bool:
        """Whether this update belongs to the given identity."""
        if self.identity_id is not None:
            return self.identity_id == identity.id
        if self.email and identity.email:
            return self.email.strip().lower() == identity.email.strip().lower()
        return False
