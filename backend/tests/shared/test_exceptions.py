"""Tests for shared/exceptions.py."""

import pytest

from shared.exceptions import (
    SiteCraftError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    ExternalServiceError,
    TransientNetworkError,
)


class TestSiteCraftError:
    def test_sitecraft_error_message(self):
        """SiteCraftError should store message."""
        error = SiteCraftError("Test error")
        assert error.message == "Test error"
        assert str(error) == "Test error"

    def test_sitecraft_error_default_code(self):
        """SiteCraftError should default code to class name."""
        error = SiteCraftError("Test error")
        assert error.code == "SiteCraftError"

    def test_sitecraft_error_custom_code(self):
        """SiteCraftError should accept custom code."""
        error = SiteCraftError("Test error", code="CUSTOM_ERROR")
        assert error.code == "CUSTOM_ERROR"

    def test_sitecraft_error_default_details(self):
        """SiteCraftError should default details to empty dict."""
        error = SiteCraftError("Test error")
        assert error.details == {}

    def test_sitecraft_error_custom_details(self):
        """SiteCraftError should accept custom details."""
        error = SiteCraftError("Test error", details={"key": "value"})
        assert error.details == {"key": "value"}

    def test_sitecraft_error_to_dict(self):
        """SiteCraftError should convert to dict."""
        error = SiteCraftError("Test error", code="TEST_ERROR", details={"key": "value"})
        result = error.to_dict()

        assert result["error"] == "TEST_ERROR"
        assert result["message"] == "Test error"
        assert result["details"]["key"] == "value"

    def test_sitecraft_error_to_dict_minimal(self):
        """SiteCraftError.to_dict should work with minimal args."""
        error = SiteCraftError("Test error")
        result = error.to_dict()

        assert result["error"] == "SiteCraftError"
        assert result["message"] == "Test error"
        assert result["details"] == {}


class TestNotFoundError:
    def test_not_found_error_inherits_sitecraft_error(self):
        """NotFoundError should inherit from SiteCraftError."""
        error = NotFoundError("Resource not found")
        assert isinstance(error, SiteCraftError)

    def test_not_found_error_default_code(self):
        """NotFoundError should default code to class name."""
        error = NotFoundError("Resource not found")
        assert error.code == "NotFoundError"


class TestValidationError:
    def test_validation_error_inherits_sitecraft_error(self):
        """ValidationError should inherit from SiteCraftError."""
        error = ValidationError("Invalid input")
        assert isinstance(error, SiteCraftError)

    def test_validation_error_with_details(self):
        """ValidationError should support field-level details."""
        error = ValidationError(
            "Validation failed",
            details={"fields": {"email": "Invalid format"}}
        )
        assert error.details["fields"]["email"] == "Invalid format"


class TestAuthenticationError:
    def test_authentication_error_inherits_sitecraft_error(self):
        """AuthenticationError should inherit from SiteCraftError."""
        error = AuthenticationError("Invalid token")
        assert isinstance(error, SiteCraftError)


class TestExternalServiceError:
    def test_external_service_error_inherits_sitecraft_error(self):
        """ExternalServiceError should inherit from SiteCraftError."""
        error = ExternalServiceError("Connection failed", service="supabase")
        assert isinstance(error, SiteCraftError)

    def test_external_service_error_stores_service(self):
        """ExternalServiceError should store service name."""
        error = ExternalServiceError("Connection failed", service="supabase")
        assert error.service == "supabase"

    def test_external_service_error_includes_service_in_details(self):
        """ExternalServiceError should include service in details."""
        error = ExternalServiceError("Connection failed", service="supabase")
        result = error.to_dict()

        assert result["details"]["service"] == "supabase"

    def test_external_service_error_preserves_other_details(self):
        """ExternalServiceError should preserve other details."""
        error = ExternalServiceError(
            "Connection failed",
            service="supabase",
            details={"status_code": 500}
        )
        result = error.to_dict()

        assert result["details"]["service"] == "supabase"
        assert result["details"]["status_code"] == 500


class TestTransientNetworkError:
    def test_is_external_service_error(self):
        """TransientNetworkError should be an ExternalServiceError."""
        error = TransientNetworkError("resource_api")
        assert isinstance(error, ExternalServiceError)
        assert error.service == "resource_api"

    def test_code_and_message(self):
        error = TransientNetworkError("supabase", "connection refused")
        assert error.code == "TRANSIENT_NETWORK_ERROR"
        assert error.message == "supabase: connection refused"
