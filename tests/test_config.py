"""Tests for configuration loading."""

from __future__ import annotations

from unittest.mock import patch

from relay_server.config import ConfigLoader, Settings


def test_settings_direct_construction() -> None:
    """Direct Settings() construction works without YAML (for tests)."""
    s = Settings(storage_dir="/tmp/relay", queue_backend="sql")
    assert s.storage_dir == "/tmp/relay"
    assert s.queue_backend == "sql"
    assert s.session_ttl_seconds == 90
    assert s.rate_limit_ms == 500


def test_load_settings_missing_env_uses_defaults() -> None:
    """load_settings for a nonexistent env falls back to field defaults."""
    with patch.dict("os.environ", {"RELAY_ENV": "nonexistent"}, clear=False):
        s = ConfigLoader.load_settings()
    assert s.telegram_polling is False
    assert s.database_url == "sqlite+aiosqlite:///relay.db"


def test_load_settings_dev_loads_yaml() -> None:
    """load_settings with RELAY_ENV=dev loads from config/dev/settings.yaml."""
    with patch.dict("os.environ", {"RELAY_ENV": "dev"}, clear=False):
        s = ConfigLoader.load_settings()
    assert s.telegram_polling is True


def test_load_settings_explicit_overrides_yaml() -> None:
    """Explicit kwargs to load_settings override YAML values."""
    with patch.dict("os.environ", {"RELAY_ENV": "dev"}, clear=False):
        s = ConfigLoader.load_settings(telegram_polling=False)
    assert s.telegram_polling is False


def test_load_settings_env_var_overrides_yaml() -> None:
    """Environment variables override YAML values."""
    env = {"RELAY_ENV": "dev", "RELAY_STORAGE_DIR": "/var/relay"}
    with patch.dict("os.environ", env, clear=False):
        s = ConfigLoader.load_settings()
    assert s.storage_dir == "/var/relay"


def test_operator_ids_from_comma_separated_env() -> None:
    env = {"RELAY_ENV": "dev", "RELAY_OPERATOR_IDS": "101, 202"}
    with patch.dict("os.environ", env, clear=False):
        s = ConfigLoader.load_settings()
    assert s.operator_ids == [101, 202]


def test_operator_ids_from_list() -> None:
    assert Settings(operator_ids=[7, 8]).operator_ids == [7, 8]
