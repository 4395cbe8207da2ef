"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class Identity(BaseModel):
    """
    The durable account record managed by the identity provider.

    Distinct from the application-owned UserProfile. The session store,
    the profile reconciler and the auth state machine all refer to the
    signed-in user through this model.
    """

    id: str = Field(..., description="Identity ID (UUID from Supabase Auth)")
    email: Optional[str] = Field(None, description="Email address")
    email_verified: bool = Field(default=False, description="Whether email is verified")
    user_metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata captured at sign-up (first_name, company, ...)",
    )
    created_at: Optional[datetime] = Field(None, description="Account creation time")

    model_config = {
        "frozen": True,  # Make immutable for safety
        "extra": "ignore",  # Ignore extra fields from the provider payload
    }
