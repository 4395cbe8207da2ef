"""
Plan limits and feature checks.

Pure functions of the plan type. Unknown or missing plans get the free tier.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from .models import PlanType, PlanLimits, QuotaStatus, PLAN_LIMITS

logger = logging.getLogger(__name__)


def parse_plan_type(plan_type: Union[PlanType, str, None]) -> PlanType:
    """Normalize a stored plan value, falling back to free."""
    if isinstance(plan_type, PlanType):
        return plan_type
    if not plan_type:
        return PlanType.FREE
    try:
        return PlanType(plan_type.strip().lower())
    except ValueError:
        logger.warning(f"Unknown plan type {plan_type!r}, using free tier limits")
        return PlanType.FREE


def limits_for(plan_type: Union[PlanType, str, None]) -> PlanLimits:
    """Get the limits for a plan."""
    return PLAN_LIMITS[parse_plan_type(plan_type)]


def has_feature(plan_type: Union[PlanType, str, None], feature: str) -> bool:
    """Check whether a plan includes a feature."""
    return feature in limits_for(plan_type).features


def quota_status(
    plan_type: Union[PlanType, str, None],
    action: str,
    used: int,
    resets_at: datetime,
    limit: Optional[int] = None,
) -> QuotaStatus:
    """
    Summarize usage of an action against the plan's monthly allowance.

    Args:
        plan_type: The user's plan
        action: Metered action name
        used: Uses counted in the current period
        resets_at: Start of the next period
        limit: Override for the allowance (defaults to analyses_per_month)
    """
    limits = limits_for(plan_type)
    allowed = limits.analyses_per_month if limit is None else limit
    return QuotaStatus(
        plan_type=limits.plan_type,
        action=action,
        used=used,
        limit=allowed,
        remaining=max(allowed - used, 0),
        resets_at=resets_at,
    )
