"""
Authentication module exceptions.

These exceptions are raised by the auth module and surfaced to the
application so it can show a message to the user.
"""

from typing import Optional

from shared.exceptions import AuthenticationError, ExternalServiceError


class InvalidCredentialError(AuthenticationError):
    """Raised when credentials are rejected. Destroys any session state."""

    def __init__(self, message: str = "Invalid login credentials"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class AuthTimeoutError(AuthenticationError):
    """Raised when startup recovery exceeds its hard time bound."""

    def __init__(self, message: str = "Signing in timed out, please retry"):
        super().__init__(message, code="AUTH_TIMEOUT")


class NotAuthenticatedError(AuthenticationError):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="NOT_AUTHENTICATED")


class IdentityProviderError(ExternalServiceError):
    """Raised when the identity provider rejects or fails a request."""

    def __init__(self, operation: str, message: str, status: Optional[int] = None):
        super().__init__(
            message,
            service="supabase_auth",
            code="IDENTITY_PROVIDER_ERROR",
            details={"operation": operation, "status": status},
        )
        self.operation = operation
        self.status = status
