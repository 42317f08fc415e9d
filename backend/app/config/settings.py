"""
Application Settings for Tonr

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Free-tier policy values feed the EntitlementPolicy; changing them
    needs no code change.
    """

    # Supabase Auth (identity provider)
    supabase_url: str
    supabase_jwt_secret: Optional[str] = None

    # Google AI Configuration (accepts GOOGLE_API_KEY or GEMINI_API_KEY)
    google_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    scorer_temperature: float = 0.7

    # Stripe Configuration
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_price_id_pro: Optional[str] = None

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    frontend_url: str = "http://localhost:5001"
    allowed_origins: list[str] = [
        "http://localhost:5001",
        "http://localhost:3000",
        "http://127.0.0.1:5001",
    ]

    # Entitlement Policy
    free_tier_daily_limit: int = Field(default=3, ge=0)
    free_tier_tonality: str = "neutral"
    usage_timezone: str = "UTC"

    # Rate Limiting
    rate_limit_enabled: bool = True
    analysis_rate_limit: str = "50/hour"

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Normalize API keys and check the usage time zone and tonality."""
        # Normalize gemini_api_key to google_api_key
        if not self.google_api_key and self.gemini_api_key:
            self.google_api_key = self.gemini_api_key

        try:
            ZoneInfo(self.usage_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown USAGE_TIMEZONE: {self.usage_timezone}")

        if self.free_tier_tonality not in ("neutral", "assertive", "composed"):
            raise ValueError(f"Unknown FREE_TIER_TONALITY: {self.free_tier_tonality}")

        return self

    @property
    def usage_tz(self) -> ZoneInfo:
        """Time zone that defines the daily usage window."""
        return ZoneInfo(self.usage_timezone)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
