"""
Usage tracking module exceptions.
"""

from shared.exceptions import ExternalServiceError


class UsageError(ExternalServiceError):
    """Base exception for usage-log access errors."""

    pass


class UsageQueryError(UsageError):
    """Raised when usage could not be counted."""

    def __init__(self, user_id: str, message: str):
        super().__init__(
            f"Failed to count usage for {user_id}: {message}",
            service="supabase",
            code="USAGE_QUERY_FAILED",
            details={"user_id": user_id},
        )


class UsageWriteError(UsageError):
    """Raised when a usage-log entry could not be written."""

    def __init__(self, user_id: str, message: str):
        super().__init__(
            f"Failed to log usage for {user_id}: {message}",
            service="supabase",
            code="USAGE_WRITE_FAILED",
            details={"user_id": user_id},
        )
