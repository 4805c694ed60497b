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
    app_name: str = "TableQueue"
    app_env: str = "development"  # development, staging, production
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql://localhost:5432/tablequeue"

    # Staff API (front-of-house dashboard). Unset means open access.
    staff_api_key: Optional[str] = None

    cors_origins: list[str] = [
        "http://localhost:3000",  # Local web dev
        "http://localhost:5173",  # Vite dashboard
    ]

    # Live queue views ignore waiting tickets older than this
    queue_lookback_hours: int = 24

    # Wait-time estimation
    wait_time_history_days: int = 7
    wait_time_min_samples: int = 5

    # Restaurants without their own timezone fall back to this
    default_timezone: str = "America/Sao_Paulo"

    # Used when a restaurant has no queue settings row yet
    default_tolerance_minutes: int = 10
    default_max_party_size: int = 8
    default_queue_capacity: int = 50

    # Background retry of the CRM visit counter after seating
    enable_visit_sync: bool = True
    visit_sync_interval_seconds: int = 60

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
