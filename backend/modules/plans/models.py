"""
Plan module data models.

Plans are fixed tiers; everything here is derived data, never persisted.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PlanType(str, Enum):
    """Subscription plan tiers."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


class Feature(str, Enum):
    """Features gated by plan."""

    BASIC_ANALYSIS = "basic_analysis"
    DETAILED_ANALYSIS = "detailed_analysis"
    PDF_EXPORT = "pdf_export"
    PROJECT_MANAGEMENT = "project_management"
    TEAM_COLLABORATION = "team_collaboration"
    API_ACCESS = "api_access"


class PlanLimits(BaseModel):
    """What a plan allows."""

    plan_type: PlanType = Field(..., description="Plan these limits belong to")
    analyses_per_month: int = Field(..., description="Analyses allowed per calendar month")
    projects_max: int = Field(..., description="Maximum tracked projects")
    features: frozenset[str] = Field(..., description="Enabled feature names")

    model_config = {"frozen": True}


PLAN_LIMITS: dict[PlanType, PlanLimits] = {
    PlanType.FREE: PlanLimits(
        plan_type=PlanType.FREE,
        analyses_per_month=5,
        projects_max=2,
        features=frozenset({
            Feature.BASIC_ANALYSIS.value,
            Feature.PDF_EXPORT.value,
        }),
    ),
    PlanType.BASIC: PlanLimits(
        plan_type=PlanType.BASIC,
        analyses_per_month=50,
        projects_max=10,
        features=frozenset({
            Feature.BASIC_ANALYSIS.value,
            Feature.DETAILED_ANALYSIS.value,
            Feature.PDF_EXPORT.value,
            Feature.PROJECT_MANAGEMENT.value,
        }),
    ),
    PlanType.PREMIUM: PlanLimits(
        plan_type=PlanType.PREMIUM,
        analyses_per_month=200,
        projects_max=50,
        features=frozenset({
            Feature.BASIC_ANALYSIS.value,
            Feature.DETAILED_ANALYSIS.value,
            Feature.PDF_EXPORT.value,
            Feature.PROJECT_MANAGEMENT.value,
            Feature.TEAM_COLLABORATION.value,
            Feature.API_ACCESS.value,
        }),
    ),
}


class QuotaStatus(BaseModel):
    """Usage of one metered action against the plan's monthly allowance."""

    plan_type: PlanType = Field(..., description="Plan the limit comes from")
    action: str = Field(..., description="Metered action (e.g. 'analysis')")
    used: int = Field(..., description="Uses this period")
    limit: int = Field(..., description="Uses allowed this period")
    remaining: int = Field(..., description="Uses left this period (never negative)")
    resets_at: datetime = Field(..., description="Start of the next period")

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0
