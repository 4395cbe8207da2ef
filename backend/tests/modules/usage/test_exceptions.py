"""Tests for usage module exceptions."""

from modules.usage.exceptions import UsageError, UsageQueryError, UsageWriteError
from shared.exceptions import ExternalServiceError, SiteCraftError


class TestUsageQueryError:
    def test_inherits_from_usage_error(self):
        """UsageQueryError should inherit from UsageError."""
        error = UsageQueryError("user-123", "timeout")
        assert isinstance(error, UsageError)
        assert isinstance(error, ExternalServiceError)
        assert isinstance(error, SiteCraftError)

    def test_error_message(self):
        """Should include the user and cause in the message."""
        error = UsageQueryError("user-123", "timeout")
        assert "user-123" in str(error)
        assert "timeout" in str(error)

    def test_error_code(self):
        """Should have correct error code."""
        error = UsageQueryError("user-123", "timeout")
        assert error.code == "USAGE_QUERY_FAILED"
        assert error.details["user_id"] == "user-123"
        assert error.details["service"] == "supabase"


class TestUsageWriteError:
    def test_error_code(self):
        """Should have correct error code."""
        error = UsageWriteError("user-123", "denied")
        assert isinstance(error, UsageError)
        assert error.code == "USAGE_WRITE_FAILED"
