"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from app.config import CustomSettings


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides):
        return CustomSettings(database_path=str(tmp_path / "db" / "epg.db"), **overrides)
    return _make


class TestCustomSettings:
    def test_defaults(self, make_settings):
        config = make_settings()

        assert config.storage_backend == "sqlite"
        assert config.local_timezone == "Europe/London"
        assert config.analytics_default_window_days == 30
        assert config.email_secondary_delay_ms == 500

    def test_database_directory_created(self, tmp_path, make_settings):
        make_settings()

        assert (tmp_path / "db").is_dir()

    def test_backend_name_normalized(self, make_settings):
        assert make_settings(storage_backend=" Memory ").storage_backend == "memory"

    def test_log_level_uppercased(self, make_settings):
        assert make_settings(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"local_timezone": "Mars/Olympus"},
            {"analytics_default_window_days": 0},
            {"analytics_default_window_days": 400},
            {"email_secondary_delay_ms": -1},
            {"dashboard_recent_entries": 0},
            {"log_level": "LOUD"},
            {"storage_backend": "redis"},
        ],
    )
    def test_invalid_values_rejected(self, make_settings, overrides):
        with pytest.raises(ValidationError):
            make_settings(**overrides)

    def test_env_override(self, monkeypatch, make_settings):
        monkeypatch.setenv("ANALYTICS_DEFAULT_WINDOW_DAYS", "14")

        assert make_settings().analytics_default_window_days == 14
