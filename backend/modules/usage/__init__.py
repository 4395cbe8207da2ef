"""
Usage tracking module.

Counts metered actions per calendar month and records new ones.

Public API:
- IUsageService: Interface for usage operations
- UsageLogEntry, UsagePeriod: Models
- UsageService, SupabaseUsageService: Implementations
- month_period, resolve_timezone: Counting-window helpers
"""

from .interfaces import IUsageService
from .models import UsageLogEntry, UsagePeriod
from .exceptions import UsageError, UsageQueryError, UsageWriteError
from .service import (
    UsageService,
    SupabaseUsageService,
    month_period,
    resolve_timezone,
)

__all__ = [
    # Interfaces
    "IUsageService",
    # Models
    "UsageLogEntry",
    "UsagePeriod",
    # Exceptions
    "UsageError",
    "UsageQueryError",
    "UsageWriteError",
    # Service
    "UsageService",
    "SupabaseUsageService",
    "month_period",
    "resolve_timezone",
]
