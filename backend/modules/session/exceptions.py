"""
Session module exceptions.
"""

from shared.exceptions import AuthenticationError


class MalformedCredentialError(AuthenticationError):
    """Raised when a credential cannot be read as a token."""

    def __init__(self, message: str = "Malformed credential"):
        super().__init__(message, code="MALFORMED_CREDENTIAL")
