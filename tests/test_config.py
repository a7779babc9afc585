"""Tests for environment settings and JSON logging."""

from __future__ import annotations

import json
import logging
import sys

import pytest
from pydantic import ValidationError

from clash_tracker.config import Settings, load_settings
from clash_tracker.logging_setup import JsonFormatter, setup_logging


def test_defaults_when_environment_is_empty():
    assert load_settings({}) == Settings()
    settings = load_settings({})
    assert settings.events_config_source is None
    assert settings.upcoming_days_ahead == 30
    assert settings.active_cache_ttl_ms == 1000


def test_values_read_from_environment():
    settings = load_settings(
        {
            "EVENTS_CONFIG_SOURCE": "https://example.com/events.json",
            "LOG_LEVEL": "DEBUG",
            "UPCOMING_DAYS_AHEAD": "14",
            "FETCH_TIMEOUT_SECONDS": "2.5",
            "ACTIVE_CACHE_TTL_MS": "250",
            "UNRELATED": "ignored",
        }
    )
    assert settings.events_config_source == "https://example.com/events.json"
    assert settings.log_level == "DEBUG"
    assert settings.upcoming_days_ahead == 14
    assert settings.fetch_timeout_seconds == 2.5
    assert settings.active_cache_ttl_ms == 250


def test_empty_variables_fall_back_to_defaults():
    assert load_settings({"UPCOMING_DAYS_AHEAD": ""}).upcoming_days_ahead == 30


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        load_settings({"UPCOMING_DAYS_AHEAD": "0"})


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def test_json_formatter_includes_exception():
    formatter = JsonFormatter()
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.getLogger("clash_tracker.test").makeRecord(
            "clash_tracker.test",
            logging.ERROR,
            __file__,
            1,
            "Error processing event '%s'",
            ("Raid Weekend",),
            exc_info=sys.exc_info(),
        )

    payload = json.loads(formatter.format(record))
    assert payload["level"] == "ERROR"
    assert payload["logger"] == "clash_tracker.test"
    assert payload["message"] == "Error processing event 'Raid Weekend'"
    assert "ValueError: boom" in payload["exception"]


def test_json_formatter_includes_event_context():
    record = logging.getLogger("clash_tracker.test").makeRecord(
        "clash_tracker.test",
        logging.ERROR,
        __file__,
        1,
        "Error processing event",
        (),
        exc_info=None,
        extra={"event_title": "Raid Weekend", "query": "active events"},
    )

    payload = json.loads(JsonFormatter().format(record))
    assert payload["event_title"] == "Raid Weekend"
    assert payload["query"] == "active events"
    assert "exception" not in payload


def test_json_formatter_omits_missing_context():
    record = logging.getLogger("clash_tracker.test").makeRecord(
        "clash_tracker.test", logging.INFO, __file__, 1, "loaded", (), exc_info=None
    )
    payload = json.loads(JsonFormatter().format(record))
    assert "event_title" not in payload


def test_setup_logging_installs_single_json_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("warning")
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
