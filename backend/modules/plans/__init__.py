"""
Plan module.

Maps a plan tier to its monthly allowances and feature set.

Public API:
- PlanType, Feature: Enumerations
- PlanLimits, QuotaStatus: Models
- limits_for, has_feature, quota_status: Pure lookups
"""

from .models import PlanType, Feature, PlanLimits, QuotaStatus, PLAN_LIMITS
from .service import parse_plan_type, limits_for, has_feature, quota_status

__all__ = [
    "PlanType",
    "Feature",
    "PlanLimits",
    "QuotaStatus",
    "PLAN_LIMITS",
    "parse_plan_type",
    "limits_for",
    "has_feature",
    "quota_status",
]
