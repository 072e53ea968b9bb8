"""Tests for config.py"""

import logging

import config
from config import Config, setup_logging


def test_setup_logging_defaults_to_configured_level(monkeypatch):
    captured = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))
    monkeypatch.setattr(Config, "LOG_LEVEL", "warning")

    setup_logging()
    assert captured["level"] == "WARNING"

    setup_logging(None)
    assert captured["level"] == "WARNING"

    setup_logging("debug")
    assert captured["level"] == "DEBUG"


def test_backoff_schedule_parsing():
    assert config._floats("1,2") == (1.0, 2.0)
    assert config._floats(" 0.5, 3 ,") == (0.5, 3.0)
