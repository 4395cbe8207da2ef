"""
Tests for shared models.
"""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from shared.models import Identity


class TestIdentity:
    """Tests for the Identity model in shared."""

    def test_create_with_required_fields(self):
        """Should create an identity with only an ID."""
        identity = Identity(id="user-123")
        assert identity.id == "user-123"
        assert identity.email is None

    def test_default_values(self):
        """Should have correct default values."""
        identity = Identity(id="user-123", email="test@example.com")
        assert identity.email_verified is False
        assert identity.user_metadata == {}
        assert identity.created_at is None

    def test_all_fields(self):
        """Should accept all fields."""
        now = datetime.now(timezone.utc)
        identity = Identity(
            id="user-123",
            email="test@example.com",
            email_verified=True,
            user_metadata={"first_name": "Ada"},
            created_at=now,
        )
        assert identity.email_verified is True
        assert identity.user_metadata["first_name"] == "Ada"
        assert identity.created_at == now

    def test_immutability(self):
        """Should be frozen/immutable."""
        identity = Identity(id="user-123")
        with pytest.raises(ValidationError):
            identity.id = "new-id"

    def test_extra_fields_ignored(self):
        """Should ignore extra fields from the provider payload."""
        identity = Identity(id="user-123", aud="authenticated")  # type: ignore
        assert not hasattr(identity, "aud")
