"""Tests for configuration loading."""

import logging
from pathlib import Path

import pytest

from pagestreak.config import DEFAULT_TIMEZONE, Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear pagestreak environment variables around each test."""
    for name in (
        "PAGESTREAK_DB_PATH",
        "PAGESTREAK_TIMEZONE",
        "PAGESTREAK_DEFAULT_THRESHOLD",
        "PAGESTREAK_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestFromEnv:
    """Tests for Config.from_env."""

    def test_defaults(self):
        config = Config.from_env()

        assert config.db_path == Path.home() / ".pagestreak" / "pagestreak.db"
        assert config.default_timezone == DEFAULT_TIMEZONE == "America/New_York"
        assert config.default_threshold == 1
        assert config.log_level == "WARNING"

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PAGESTREAK_DB_PATH", str(tmp_path / "s.db"))
        monkeypatch.setenv("PAGESTREAK_TIMEZONE", "Europe/Berlin")
        monkeypatch.setenv("PAGESTREAK_DEFAULT_THRESHOLD", "20")
        monkeypatch.setenv("PAGESTREAK_LOG_LEVEL", "debug")

        config = Config.from_env()

        assert config.db_path == tmp_path / "s.db"
        assert config.default_timezone == "Europe/Berlin"
        assert config.default_threshold == 20
        assert config.log_level == "DEBUG"

    def test_global_instance(self):
        assert get_config() is get_config()


class TestValidate:
    """Tests for Config.validate."""

    def _config(self, tmp_path, **overrides) -> Config:
        values = {
            "db_path": tmp_path / "s.db",
            "default_timezone": "UTC",
            "default_threshold": 1,
            "log_level": "INFO",
        }
        values.update(overrides)
        return Config(**values)

    def test_valid(self, tmp_path):
        assert self._config(tmp_path).validate() == []

    def test_invalid_timezone(self, tmp_path):
        errors = self._config(tmp_path, default_timezone="Mars/Olympus").validate()

        assert errors == ["Invalid timezone: Mars/Olympus"]

    @pytest.mark.parametrize("value", [0, 10000])
    def test_threshold_out_of_range(self, tmp_path, value):
        errors = self._config(tmp_path, default_threshold=value).validate()

        assert "Default threshold must be between 1 and 9999" in errors

    def test_unknown_log_level(self, tmp_path):
        errors = self._config(tmp_path, log_level="LOUD").validate()

        assert errors == ["Unknown log level: LOUD"]

    def test_creates_missing_directory(self, tmp_path):
        config = self._config(tmp_path, db_path=tmp_path / "nested" / "s.db")

        assert config.validate() == []
        assert (tmp_path / "nested").is_dir()


class TestLogging:
    """Tests for configure_logging."""

    def test_verbose_uses_debug(self, tmp_path, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))

        Config(tmp_path / "s.db", "UTC", 1, "ERROR").configure_logging(verbose=True)

        assert calls["level"] == logging.DEBUG

    def test_configured_level(self, tmp_path, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))

        Config(tmp_path / "s.db", "UTC", 1, "ERROR").configure_logging()

        assert calls["level"] == logging.ERROR
