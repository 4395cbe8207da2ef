"""
Usage tracking service implementation.

Provides both in-memory (for testing) and Supabase-backed (for production)
implementations of usage counting.
"""

import logging
import uuid
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Optional

import httpx
from dateutil import tz
from dateutil.relativedelta import relativedelta
from postgrest.exceptions import APIError
from supabase import AsyncClient

from .models import UsageLogEntry, UsagePeriod
from .exceptions import UsageQueryError, UsageWriteError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_timezone(name: str) -> tzinfo:
    """
    Resolve a timezone name ("UTC", "Europe/Berlin", ...).

    Raises:
        ValueError: If the name is unknown
    """
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name}")
    return zone


def month_period(now: datetime, zone: tzinfo = timezone.utc) -> UsagePeriod:
    """
    Get the calendar month containing `now`, as seen in `zone`.

    The period starts at 00:00:00.000000 on the 1st and ends (exclusive)
    at the same wall-clock instant one month later.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    local = now.astimezone(zone)
    start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end = start + relativedelta(months=1)
    return UsagePeriod(start=start, end=end)


class UsageService:
    """
    Usage tracking service with in-memory storage.

    For testing and development. Use SupabaseUsageService for production.
    """

    def __init__(
        self,
        zone: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the usage service.

        Args:
            zone: Timezone whose calendar defines the monthly window
            clock: Source of "now" for new entries and default periods
        """
        # In-memory storage for testing
        self._entries: dict[str, list[UsageLogEntry]] = {}
        self._zone = zone
        self._clock = clock

    def get_current_period(self, now: Optional[datetime] = None) -> UsagePeriod:
        """Get the current tracking period (monthly)."""
        return month_period(now or self._clock(), self._zone)

    async def monthly_usage(
        self,
        user_id: str,
        action: str,
        now: Optional[datetime] = None,
    ) -> int:
        """Count a user's entries for an action in the current month."""
        period = self.get_current_period(now)
        return sum(
            1
            for entry in self._entries.get(user_id, [])
            if entry.action == action and period.contains(entry.created_at)
        )

    async def log_action(
        self,
        user_id: str,
        action: str,
        resource_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> UsageLogEntry:
        """Record that a user performed an action."""
        entry = UsageLogEntry(
            id=str(uuid.uuid4()),
            user_id=user_id,
            action=action,
            resource_id=resource_id,
            metadata=metadata or {},
            created_at=self._clock(),
        )

        # Store in memory
        if user_id not in self._entries:
            self._entries[user_id] = []
        self._entries[user_id].insert(0, entry)

        return entry


class SupabaseUsageService(UsageService):
    """
    Usage service with Supabase persistence.

    Extends the base UsageService to read and write the usage_logs table
    while keeping the same counting window.
    """

    TABLE = "usage_logs"

    def __init__(
        self,
        supabase_client: AsyncClient,
        zone: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize with Supabase client.

        Args:
            supabase_client: Supabase async client instance
            zone: Timezone whose calendar defines the monthly window
            clock: Source of "now"
        """
        super().__init__(zone=zone, clock=clock)
        self._db = supabase_client

    async def monthly_usage(
        self,
        user_id: str,
        action: str,
        now: Optional[datetime] = None,
    ) -> int:
        """Count entries in the database for the current month."""
        period = self.get_current_period(now)
        query = (
            self._db.table(self.TABLE)
            .select("id", count="exact")
            .eq("user_id", user_id)
            .eq("action", action)
            .gte("created_at", period.start.isoformat())
            .lt("created_at", period.end.isoformat())
        )
        try:
            result = await query.execute()
        except APIError as e:
            raise UsageQueryError(user_id, e.message or str(e)) from e
        except httpx.TransportError as e:
            raise UsageQueryError(user_id, str(e)) from e

        if result.count is not None:
            return result.count
        return len(result.data or [])

    async def log_action(
        self,
        user_id: str,
        action: str,
        resource_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> UsageLogEntry:
        """Insert a usage_logs row."""
        entry = UsageLogEntry(
            id=str(uuid.uuid4()),
            user_id=user_id,
            action=action,
            resource_id=resource_id,
            metadata=metadata or {},
            created_at=self._clock(),
        )
        try:
            await self._db.table(self.TABLE).insert(entry.model_dump(mode="json")).execute()
        except APIError as e:
            raise UsageWriteError(user_id, e.message or str(e)) from e
        except httpx.TransportError as e:
            raise UsageWriteError(user_id, str(e)) from e

        logger.debug(f"Logged {action} for {user_id}")
        return entry
