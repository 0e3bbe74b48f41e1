from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Remote read API
    api_base_url: str = "http://odds-board.local"
    events_path: str = "/events"
    odds_path: str = "/odds"
    reset_path: str = "/reset"
    request_timeout_seconds: float = 30.0

    # Serve the API from the in-process demo feed instead of the network
    use_mock_feed: bool = True
    mock_event_count: int = 100

    # Bulk fetch retry (per call)
    fetch_max_attempts: int = 5
    fetch_backoff_seconds: float = 0.5
    fetch_backoff_max_seconds: float = 5.0

    # Pagination
    page_size: int = 40

    # Checkpointing
    checkpoint_interval_seconds: float = 10.0

    # Incremental update channel (demo broadcaster)
    stream_interval_seconds: float = 1.0
    stream_max_batch: int = 10

    # Database
    db_path: str = "odds_board.db"

    # Logging
    log_level: str = "INFO"
