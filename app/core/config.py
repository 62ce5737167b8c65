from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Record store
    db_path: str = "/data/companion_sync.db"
    record_type: str = "HealthDatas"

    # Local metrics provider
    metrics_url: str = "http://127.0.0.1:8765"
    metrics_api_key: str | None = None
    metrics_timeout: float = 10.0

    # Sync loop
    sync_interval_seconds: int = 300
    tz: str = "Europe/London"

    # Identity gate for start/stop (unset = open)
    api_key: str | None = None
    debug: bool = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
