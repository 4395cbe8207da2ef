"""Tests for the Supabase profile repository."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

from modules.profiles.exceptions import (
    ProfileConflictError,
    ProfileFetchError,
    ProfileNotFoundError,
    ProfileWriteError,
)
from modules.profiles.models import ProfileFields, UserProfile
from modules.profiles.repository import SupabaseProfileRepository

ROW = {
    "id": "user-123",
    "email": "test@example.com",
    "first_name": "Ada",
    "plan_type": "basic",
    "settings": {},
    "created_at": "2024-01-01T00:00:00+00:00",
}


def api_error(code: str, message: str = "error") -> APIError:
    return APIError({"code": code, "message": message, "details": None, "hint": None})


@pytest.fixture
def db():
    """Supabase client mock whose query chain ends in an awaitable execute()."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "limit", "insert", "update"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock()
    client.table.return_value = query
    client.query = query
    return client


class TestGet:
    @pytest.mark.asyncio
    async def test_returns_profile(self, db):
        db.query.execute.return_value = MagicMock(data=[ROW])

        profile = await SupabaseProfileRepository(db).get("user-123")

        db.table.assert_called_with("user_profiles")
        db.query.eq.assert_called_with("id", "user-123")
        assert profile.first_name == "Ada"
        assert profile.plan_type == "basic"

    @pytest.mark.asyncio
    async def test_no_rows_is_not_found(self, db):
        db.query.execute.return_value = MagicMock(data=[])

        with pytest.raises(ProfileNotFoundError):
            await SupabaseProfileRepository(db).get("user-123")

    @pytest.mark.asyncio
    async def test_pgrst116_is_not_found(self, db):
        db.query.execute.side_effect = api_error("PGRST116")

        with pytest.raises(ProfileNotFoundError):
            await SupabaseProfileRepository(db).get("user-123")

    @pytest.mark.asyncio
    async def test_other_api_error_is_fetch_error(self, db):
        """Errors other than 'no rows' must not look like a missing profile."""
        db.query.execute.side_effect = api_error("42501", "permission denied")

        with pytest.raises(ProfileFetchError):
            await SupabaseProfileRepository(db).get("user-123")


class TestInsert:
    @pytest.mark.asyncio
    async def test_insert(self, db, identity_factory):
        db.query.execute.return_value = MagicMock(data=[ROW])
        profile = UserProfile.new(identity_factory("user-123"), ProfileFields(first_name="Ada"))

        stored = await SupabaseProfileRepository(db).insert(profile)

        payload = db.query.insert.call_args[0][0]
        assert payload["id"] == "user-123"
        assert "created_at" not in payload
        assert stored.first_name == "Ada"

    @pytest.mark.asyncio
    async def test_unique_violation_is_conflict(self, db, identity_factory):
        db.query.execute.side_effect = api_error("23505", "duplicate key")
        profile = UserProfile.new(identity_factory(), ProfileFields())

        with pytest.raises(ProfileConflictError):
            await SupabaseProfileRepository(db).insert(profile)

    @pytest.mark.asyncio
    async def test_network_error_is_write_error(self, db, identity_factory):
        db.query.execute.side_effect = httpx.ConnectError("refused")
        profile = UserProfile.new(identity_factory(), ProfileFields())

        with pytest.raises(ProfileWriteError):
            await SupabaseProfileRepository(db).insert(profile)


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update(self, db):
        db.query.execute.return_value = MagicMock(data=[{**ROW, "company": "B"}])

        profile = await SupabaseProfileRepository(db).update("user-123", {"company": "B"})

        db.query.update.assert_called_with({"company": "B"})
        assert profile.company == "B"

    @pytest.mark.asyncio
    async def test_update_missing_row(self, db):
        db.query.execute.return_value = MagicMock(data=[])

        with pytest.raises(ProfileNotFoundError):
            await SupabaseProfileRepository(db).update("user-123", {"company": "B"})
