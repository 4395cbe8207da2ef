"""
Centralized configuration for the SiteCraft session manager.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., SUPABASE_*, SIGN_OUT_*).
"""

from enum import Enum
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class UnreachablePolicy(str, Enum):
    """What startup does when the backend cannot vouch for a session."""

    FAIL_OPEN = "fail_open"      # Continue with the unverified session
    FAIL_CLOSED = "fail_closed"  # Drop to anonymous


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "SiteCraft"
    app_version: str = "0.1.0"
    debug: bool = False

    # Supabase (identity provider + profile/usage tables)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Resource API used for credential validation
    resource_api_url: str = "http://localhost:3001"
    validation_path: str = "/api/analysis/stats"
    validation_request_timeout: float = 10.0  # seconds

    # Session lifecycle bounds (seconds)
    startup_timeout: float = 30.0
    sign_out_timeout: float = 5.0
    profile_timeout: float = 10.0
    revalidation_interval: float = 60.0

    # Recovery
    unreachable_policy: UnreachablePolicy = UnreachablePolicy.FAIL_OPEN
    recovery_requires_metadata: bool = True

    # Local durable storage for session metadata and the auth client
    local_storage_dir: str = ".sitecraft"
    metadata_max_age_days: int = 30

    # Usage windows are computed in this timezone
    usage_timezone: str = "UTC"

    # Frontend URLs (for redirects)
    frontend_url: str = "http://localhost:3000"
    reset_password_redirect_url: Optional[str] = None

    @property
    def reset_password_redirect(self) -> str:
        """Where password reset emails send the user."""
        if self.reset_password_redirect_url:
            return self.reset_password_redirect_url
        return f"{self.frontend_url.rstrip('/')}/reset-password"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
