"""Tests for environment-driven settings."""

from __future__ import annotations

import logging

import pytest

from config import Settings, configure_logging
from errors import ConfigError, DemoError


def test_defaults_with_empty_environment():
    settings = Settings.from_env({})
    assert settings == Settings()
    assert settings.model == "gpt-4o"
    assert settings.extract_model == "gpt-4o-2024-08-06"
    assert settings.base_url is None
    assert settings.max_retries == 0


def test_reads_demo_variables():
    settings = Settings.from_env(
        {
            "DEMO_BASE_URL": "http://127.0.0.1:8080/v1",
            "DEMO_MODEL": "gpt-4o-mini",
            "DEMO_EXTRACT_MODEL": "gpt-4o-mini",
            "DEMO_TIMEOUT": "12.5",
            "DEMO_MAX_RETRIES": "2",
            "DEMO_LOG_LEVEL": "debug",
        }
    )
    assert settings.base_url == "http://127.0.0.1:8080/v1"
    assert settings.model == "gpt-4o-mini"
    assert settings.timeout == 12.5
    assert settings.max_retries == 2
    assert settings.log_level == "DEBUG"


def test_empty_base_url_means_default():
    assert Settings.from_env({"DEMO_BASE_URL": ""}).base_url is None


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("DEMO_MODEL", "from-env")
    assert Settings.from_env().model == "from-env"


def test_bad_timeout():
    with pytest.raises(ConfigError, match="DEMO_TIMEOUT"):
        Settings.from_env({"DEMO_TIMEOUT": "soon"})


def test_bad_max_retries():
    with pytest.raises(ConfigError, match="DEMO_MAX_RETRIES"):
        Settings.from_env({"DEMO_MAX_RETRIES": "2.5"})


def test_config_error_is_demo_error():
    assert issubclass(ConfigError, DemoError)


def test_settings_are_frozen():
    with pytest.raises(AttributeError):
        Settings().model = "other"


def test_configure_logging_uses_level(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    configure_logging(Settings(log_level="WARNING"))
    assert calls[0]["level"] == logging.WARNING
    assert calls[0]["format"] == "[%(levelname)s] %(message)s"


def test_unknown_level_falls_back_to_info(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    configure_logging(Settings(log_level="CHATTY"))
    assert calls[0]["level"] == logging.INFO
