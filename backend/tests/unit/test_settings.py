"""
Unit tests for Pydantic Settings configuration.

Tests settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from app.config.settings import Settings


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_loads_from_env(self):
        """Settings should load from environment variables."""
        from app.config.settings import settings

        assert settings.supabase_url == "https://test-project.supabase.co"
        assert settings.supabase_jwt_secret is not None

    def test_settings_has_defaults(self):
        """Settings should have sensible defaults."""
        from app.config.settings import settings

        assert settings.gemini_model is not None
        assert settings.free_tier_daily_limit == 3
        assert settings.free_tier_tonality == "neutral"
        assert settings.analysis_rate_limit == "50/hour"

    def test_is_production_property(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        assert Settings().is_production is True
        assert Settings().is_development is False

    def test_allowed_origins_includes_localhost(self):
        from app.config.settings import settings

        assert "http://localhost:5001" in settings.allowed_origins
        assert "http://localhost:3000" in settings.allowed_origins

    def test_gemini_key_normalized(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.setenv("GEMINI_API_KEY", "gm-key")

        assert Settings(_env_file=None).google_api_key == "gm-key"

    def test_policy_from_env(self, monkeypatch):
        monkeypatch.setenv("FREE_TIER_DAILY_LIMIT", "5")
        monkeypatch.setenv("USAGE_TIMEZONE", "America/Sao_Paulo")

        loaded = Settings(_env_file=None)

        assert loaded.free_tier_daily_limit == 5
        assert loaded.usage_tz.key == "America/Sao_Paulo"

    def test_unknown_timezone_rejected(self, monkeypatch):
        monkeypatch.setenv("USAGE_TIMEZONE", "Mars/Olympus_Mons")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_unknown_free_tonality_rejected(self, monkeypatch):
        monkeypatch.setenv("FREE_TIER_TONALITY", "sarcastic")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_negative_limit_rejected(self, monkeypatch):
        monkeypatch.setenv("FREE_TIER_DAILY_LIMIT", "-1")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
