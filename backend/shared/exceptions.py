"""
Base exception classes for the SiteCraft session manager.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class SiteCraftError(Exception):
    """
    Base exception for all SiteCraft errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for display or reporting."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(SiteCraftError):
    """Resource not found."""

    pass


class ValidationError(SiteCraftError):
    """Input validation failed."""

    pass


class AuthenticationError(SiteCraftError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class ExternalServiceError(SiteCraftError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class TransientNetworkError(ExternalServiceError):
    """
    A network-level failure talking to an external service.

    Retriable. Must never be treated as proof that a session is invalid.
    """

    def __init__(self, service: str, message: str = "Service unreachable"):
        super().__init__(
            f"{service}: {message}",
            service=service,
            code="TRANSIENT_NETWORK_ERROR",
        )
