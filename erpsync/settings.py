"""Centralized settings for erpsync.

Uses pydantic-settings to load from environment variables (prefixed ERPSYNC_)
with defaults that match a local development server.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """erpsync settings loaded from environment variables."""

    # --- REST API ---
    api_base_url: str = "http://localhost:5000/api"
    request_timeout: float = 30.0
    session_cookie_name: str = "connect.sid"
    session_cookie: str = ""

    # --- Push channels ---
    ws_base_url: str = "ws://localhost:5000/ws"
    ws_open_timeout: float = 10.0
    ws_ping_interval: float = 20.0
    reconnect_interval_seconds: float = 3.0
    max_reconnect_attempts: int = 5

    # --- Notifications ---
    notification_limit: int = 50

    # --- Logging ---
    log_level: str = "INFO"
    log_format: str = "json"
    slow_request_ms: float = 1000.0

    model_config = {
        "env_prefix": "ERPSYNC_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
