"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "collab-presence"
    debug: bool = False
    log_level: str = "INFO"

    # Tracker timing
    cursor_throttle_ms: int = 500
    heartbeat_interval_seconds: float = 5.0
    poll_interval_seconds: float = 2.0
    staleness_seconds: float = 10.0

    # Roster panel
    roster_display_limit: int = 5

    # Remote entity store (HttpEntityStore)
    store_base_url: str = "http://localhost:8000"
    store_timeout_seconds: float = 10.0

    model_config = {"env_prefix": "COLLAB_PRESENCE_"}


settings = Settings()
