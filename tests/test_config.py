"""Tests for settings loading."""

from pathlib import Path

import pytest

from shopsync.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "SHOPSYNC_SUPABASE_URL",
        "SHOPSYNC_SUPABASE_KEY",
        "SHOPSYNC_DATA_DIR",
        "SHOPSYNC_DB_PATH",
        "SHOPSYNC_HEALTH_URL",
        "SHOPSYNC_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.supabase_url is None
    assert settings.has_remote is False
    assert settings.log_level == "WARNING"
    assert settings.connectivity_interval == 30.0
    assert settings.resolved_db_path == Path.home() / ".shopsync" / "shopsync.db"


def test_env_prefix(monkeypatch, tmp_path):
    monkeypatch.setenv("SHOPSYNC_SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setenv("SHOPSYNC_SUPABASE_KEY", "anon")
    monkeypatch.setenv("SHOPSYNC_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("SUPABASE_URL", "https://ignored.supabase.co")

    settings = Settings(_env_file=None)

    assert settings.supabase_url == "https://x.supabase.co"
    assert settings.has_remote is True
    assert settings.resolved_db_path == tmp_path / "shopsync.db"


def test_explicit_db_path_wins(tmp_path):
    settings = Settings(_env_file=None, data_dir=tmp_path, db_path=tmp_path / "other.db")

    assert settings.resolved_db_path == tmp_path / "other.db"


def test_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("SHOPSYNC_LOG_LEVEL=debug\nUNRELATED=1\n")

    settings = Settings(_env_file=env_file)

    assert settings.log_level == "debug"


def test_get_settings_cached():
    assert get_settings() is get_settings()
