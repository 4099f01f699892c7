"""Configuration settings for shopsync."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings loaded from SHOPSYNC_* environment variables or .env."""

    # Supabase
    supabase_url: str | None = None
    supabase_key: str | None = None  # anon/publishable key for client apps

    # Local store
    data_dir: Path = Path.home() / ".shopsync"
    db_path: Path | None = None  # defaults to <data_dir>/shopsync.db

    # Connectivity probe
    health_url: str | None = None  # e.g. https://<project>.supabase.co/rest/v1/
    connectivity_interval: float = 30.0  # seconds between probes
    connectivity_timeout: float = 5.0

    log_level: str = "WARNING"

    class Config:
        env_prefix = "SHOPSYNC_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model

    @property
    def resolved_db_path(self) -> Path:
        return (self.db_path or self.data_dir / "shopsync.db").expanduser()

    @property
    def has_remote(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
