"""
Backend validator.

Asks the resource API whether it accepts a session's credential by making
one cheap authenticated request. Only an explicit 401 means the credential
is invalid; anything the backend cannot answer cleanly is UNREACHABLE, so
a network blip never destroys a good session.
"""

import logging
from typing import Optional

import httpx

from .models import Session, ValidationResult

logger = logging.getLogger(__name__)


class BackendValidator:
    """
    Validates sessions against the resource API.

    Classification:
    - 401 -> INVALID
    - 2xx/3xx -> VALID
    - timeout, connection refused, DNS failure -> UNREACHABLE
    - any other status (5xx, 429, other 4xx) -> UNREACHABLE
    """

    def __init__(
        self,
        base_url: str,
        path: str = "/api/analysis/stats",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the validator.

        Args:
            base_url: Resource API base URL
            path: Endpoint that returns 401 on bad credentials
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests mount an ASGI app here)
        """
        self._base_url = base_url.rstrip("/")
        self._path = path
        self._timeout = timeout
        self._transport = transport

    async def validate(self, session: Session) -> ValidationResult:
        """Classify the session's credential."""
        if not session.credential:
            return ValidationResult.INVALID

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                transport=self._transport,
                timeout=self._timeout,
                follow_redirects=False,
            ) as client:
                response = await client.get(
                    self._path,
                    headers={
                        "Authorization": f"Bearer {session.credential}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TransportError as e:
            logger.warning(
                f"Session validation could not reach backend: {type(e).__name__}"
            )
            return ValidationResult.UNREACHABLE

        result = self.classify_status(response.status_code)
        logger.debug(
            f"Session validation for {session.owner_identity_id}: "
            f"status={response.status_code} result={result.value}"
        )
        return result

    @staticmethod
    def classify_status(status_code: int) -> ValidationResult:
        """Map an HTTP status code to a validation result."""
        if status_code == 401:
            return ValidationResult.INVALID
        if 200 <= status_code < 400:
            return ValidationResult.VALID
        return ValidationResult.UNREACHABLE
