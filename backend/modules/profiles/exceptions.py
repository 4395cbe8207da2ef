"""
Profile module exceptions.

ProfileNotFoundError is an expected condition (it triggers creation);
ProfileWriteError is recoverable and is deferred or retried later.
"""

from shared.exceptions import SiteCraftError, NotFoundError, ExternalServiceError


class ProfileNotFoundError(NotFoundError):
    """Raised when no profile row exists for an identity."""

    def __init__(self, identity_id: str):
        super().__init__(
            f"Profile not found: {identity_id}",
            code="PROFILE_NOT_FOUND",
            details={"identity_id": identity_id},
        )


class ProfileWriteError(SiteCraftError):
    """Raised when creating or updating a profile fails."""

    def __init__(self, identity_id: str, message: str, code: str = "PROFILE_WRITE_FAILED"):
        super().__init__(
            f"Failed to write profile {identity_id}: {message}",
            code=code,
            details={"identity_id": identity_id},
        )


class ProfileConflictError(ProfileWriteError):
    """Raised when a profile insert collides with an existing row."""

    def __init__(self, identity_id: str):
        super().__init__(identity_id, "profile already exists", code="PROFILE_CONFLICT")


class ProfileFetchError(ExternalServiceError):
    """Raised when reading a profile fails for a reason other than 'no rows'."""

    def __init__(self, identity_id: str, message: str):
        super().__init__(
            f"Failed to fetch profile {identity_id}: {message}",
            service="supabase",
            code="PROFILE_FETCH_FAILED",
            details={"identity_id": identity_id},
        )
