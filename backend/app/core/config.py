"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development; provider keys
default to unset, in which case the fetcher degrades to placeholder data.

Usage:
    from backend.app.core.config import settings
    print(settings.AGGREGATION_CONCURRENCY)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "Outbreak Risk Monitor"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]
    CORS_ALLOW_ALL: bool = True  # False in production

    # ── Weather / air quality (weatherapi.com) ──
    WEATHER_API_KEY: Optional[str] = None
    WEATHER_API_BASE_URL: str = "https://api.weatherapi.com/v1"
    WEATHER_DEFAULT_COUNTRY: str = "India"  # appended to bare region names

    # ── Water quality (data.gov.in) ──
    WATER_API_KEY: Optional[str] = None
    WATER_API_BASE_URL: str = "https://api.data.gov.in/resource"
    WATER_RESOURCE_ID: str = "9c84d0d3-3d5a-4f62-9c5f-1a2f2a2b8e2c"
    WATER_PAGE_LIMIT: int = 100  # records per page
    WATER_MAX_PAGES: int = 5  # hard cap on pagination

    # ── Aggregation ──
    AGGREGATION_CONCURRENCY: int = 6  # simultaneous regions in flight
    PROVIDER_TIMEOUT_SECONDS: float = 8.0  # per upstream call

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def has_weather_key(self) -> bool:
        return bool(self.WEATHER_API_KEY)

    @property
    def has_water_key(self) -> bool:
        return bool(self.WATER_API_KEY)


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
