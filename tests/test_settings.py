"""Tests for environment-driven settings."""

from erpsync.settings import Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.api_base_url == "http://localhost:5000/api"
        assert settings.ws_base_url == "ws://localhost:5000/ws"
        assert settings.reconnect_interval_seconds == 3.0
        assert settings.max_reconnect_attempts == 5
        assert settings.notification_limit == 50
        assert settings.session_cookie_name == "connect.sid"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("ERPSYNC_API_BASE_URL", "https://erp.example.com/api")
        monkeypatch.setenv("ERPSYNC_MAX_RECONNECT_ATTEMPTS", "2")
        settings = Settings()
        assert settings.api_base_url == "https://erp.example.com/api"
        assert settings.max_reconnect_attempts == 2

    def test_unprefixed_env_ignored(self, monkeypatch):
        monkeypatch.setenv("API_BASE_URL", "https://other.example.com")
        assert Settings().api_base_url == "http://localhost:5000/api"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
