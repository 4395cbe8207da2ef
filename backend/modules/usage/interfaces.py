"""
Usage tracking module interface.

The auth facade depends on IUsageService, not the concrete implementation,
so quota checks can be tested without a database.
"""

from typing import Any, Protocol, Optional, runtime_checkable
from datetime import datetime

from .models import UsageLogEntry, UsagePeriod


@runtime_checkable
class IUsageService(Protocol):
    """
    Interface for usage-log operations.

    The usage log itself lives behind the resource API; this module only
    owns the rule for which entries count toward the current month.
    """

    def get_current_period(self, now: Optional[datetime] = None) -> UsagePeriod:
        """
        Get the current counting window.

        Args:
            now: Reference instant (defaults to the current time)

        Returns:
            Period from 00:00:00 on the 1st of the month to the same
            instant one month later, in the configured timezone
        """
        ...

    async def monthly_usage(
        self,
        user_id: str,
        action: str,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Count a user's entries for an action in the current month.

        Raises:
            UsageQueryError: If the usage log could not be read
        """
        ...

    async def log_action(
        self,
        user_id: str,
        action: str,
        resource_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> UsageLogEntry:
        """
        Record that a user performed an action.

        Raises:
            UsageWriteError: If the entry could not be written
        """
        ...
