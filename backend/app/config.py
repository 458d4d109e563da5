"""
Application configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "SafeTrack"
    app_env: str = "development"  # development, staging, production
    debug: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Upstream recruitment/safety API
    upstream_base_url: str = "http://localhost:5000/api"
    upstream_timeout_seconds: float = 10.0
    upstream_api_token: Optional[str] = None  # Forwarded as a bearer token

    # Polling cadences (seconds)
    family_poll_interval_seconds: float = 60.0
    map_poll_interval_seconds: float = 30.0

    # Subjects to start watching when the service boots
    watch_on_startup: list[str] = []

    # History window for the map view
    history_days: int = 1
    history_limit: int = 100

    # Check-in recency thresholds (hours)
    warning_after_hours: float = 8.0
    critical_after_hours: float = 24.0
    active_check_in_hours: float = 4.0  # Counted as "active" on the overview

    # Event type tags that the upstream uses for geo-fence violations
    violation_event_types: list[str] = ["geofence_violation", "geofence_exit", "exit"]

    # Display
    display_timezone: str = "Asia/Jerusalem"
    google_maps_api_key: Optional[str] = None

    # Admin API
    admin_api_key: Optional[str] = None  # Required for watch/overview endpoints

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
