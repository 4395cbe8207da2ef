"""
Usage tracking module data models.

These models define the data structures used by the usage module
and exposed to other modules through the interface.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


class UsageLogEntry(BaseModel):
    """
    A single metered action performed by a user.

    Stored in the usage_logs table; counted per calendar month.
    """

    id: Optional[str] = Field(None, description="Entry ID (set after save)")
    user_id: str = Field(..., description="Identity ID")
    action: str = Field(..., description="Action name (e.g., 'analysis')")
    resource_id: Optional[str] = Field(None, description="Resource acted on")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Free-form details")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the action happened",
    )


class UsagePeriod(BaseModel):
    """A half-open counting window [start, end)."""

    start: datetime = Field(..., description="First instant of the period")
    end: datetime = Field(..., description="First instant after the period")

    model_config = {"frozen": True}

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end
