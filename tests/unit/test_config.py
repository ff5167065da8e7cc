"""Tests for application configuration."""

from habitscore.config import Settings


class TestSettings:
    def test_default_settings(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.app_name == "habitscore"
        assert settings.app_version == "0.1.0"
        assert settings.port == 8000
        assert settings.principal_header == "X-User-Id"
        assert settings.history_weeks == 12

    def test_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("APP_NAME", "test-app")
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("HISTORY_WEEKS", "26")
        settings = Settings(_env_file=None)
        assert settings.app_name == "test-app"
        assert settings.port == 9000
        assert settings.debug is True
        assert settings.history_weeks == 26

    def test_database_url_default(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert "postgresql+asyncpg" in settings.database_url
