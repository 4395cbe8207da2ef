"""Tests for the backend validator against a fake resource API."""

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from modules.session.interfaces import ISessionValidator
from modules.session.models import ValidationResult
from modules.session.validator import BackendValidator


def create_resource_api(valid_token: str, status_override: dict[str, int]) -> FastAPI:
    """A stand-in for the resource API's stats endpoint."""
    app = FastAPI()

    @app.get("/api/analysis/stats")
    async def stats(request: Request):
        header = request.headers.get("Authorization", "")
        token = header.removeprefix("Bearer ")
        if token in status_override:
            return JSONResponse({"error": "scripted"}, status_code=status_override[token])
        if token != valid_token:
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        return {"analyses": 3}

    @app.get("/api/redirect")
    async def redirect():
        return RedirectResponse("/login", status_code=302)

    return app


class FailingTransport(httpx.AsyncBaseTransport):
    def __init__(self, error: Exception):
        self._error = error

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        raise self._error


@pytest.fixture
def status_override() -> dict[str, int]:
    return {}


@pytest.fixture
def validator_for(session, status_override):
    app = create_resource_api(session.credential, status_override)

    def factory(path: str = "/api/analysis/stats") -> BackendValidator:
        return BackendValidator(
            "http://resource-api",
            path=path,
            transport=httpx.ASGITransport(app=app),
        )

    return factory


class TestBackendValidator:
    @pytest.mark.asyncio
    async def test_accepted_credential_is_valid(self, validator_for, session):
        """A 200 should mean the session is valid."""
        assert await validator_for().validate(session) == ValidationResult.VALID

    @pytest.mark.asyncio
    async def test_401_is_invalid(self, validator_for, session_factory):
        """Only a 401 should mean the credential is invalid."""
        other = session_factory("someone-else", "else@example.com")
        assert await validator_for().validate(other) == ValidationResult.INVALID

    @pytest.mark.asyncio
    async def test_empty_credential_is_invalid_without_request(self, session):
        """An empty credential cannot be valid."""
        validator = BackendValidator(
            "http://resource-api",
            transport=FailingTransport(AssertionError("should not be called")),
        )
        empty = session.model_copy(update={"credential": ""})

        assert await validator.validate(empty) == ValidationResult.INVALID

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [403, 404, 429, 500, 502, 503])
    async def test_other_statuses_are_unreachable(
        self, validator_for, session, status_override, status
    ):
        """Anything but 401 or success means the backend could not vouch either way."""
        status_override[session.credential] = status
        assert await validator_for().validate(session) == ValidationResult.UNREACHABLE

    @pytest.mark.asyncio
    async def test_redirect_is_valid(self, validator_for, session):
        """A 3xx is an answer, not a rejection, and is not followed."""
        assert await validator_for("/api/redirect").validate(session) == ValidationResult.VALID

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            httpx.ConnectError("connection refused"),
            httpx.ConnectTimeout("timed out"),
            httpx.ReadTimeout("timed out"),
        ],
    )
    async def test_network_failures_are_unreachable(self, session, error):
        """Network failures must never destroy a session."""
        validator = BackendValidator("http://resource-api", transport=FailingTransport(error))

        assert await validator.validate(session) == ValidationResult.UNREACHABLE

    def test_classify_status(self):
        assert BackendValidator.classify_status(200) == ValidationResult.VALID
        assert BackendValidator.classify_status(204) == ValidationResult.VALID
        assert BackendValidator.classify_status(401) == ValidationResult.INVALID
        assert BackendValidator.classify_status(500) == ValidationResult.UNREACHABLE

    def test_implements_interface(self):
        assert isinstance(BackendValidator("http://resource-api"), ISessionValidator)
