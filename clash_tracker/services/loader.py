"""Service for loading and validating the events configuration document.

The document has two arrays, ``repeating_events`` and ``one_time_events``
(``non_repeating_events`` is accepted as an older name for the latter). Each
entry resolves to exactly one window strategy:

* recurrence: ``baseDate`` + ``modifier`` + ``durationDays``;
* explicit bounds: ``start`` + ``end``.

An entry carrying both is rejected unless ``ignoreDate`` is set, which marks
it as recurrence-driven and makes the explicit bounds inert.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import dateparser
import requests
from pydantic import TypeAdapter, ValidationError

from clash_tracker.domain.errors import ConfigurationError
from clash_tracker.domain.models import (
    EventConfig,
    EventDefinition,
    FixedEventDefinition,
    RecurringEventDefinition,
    as_utc,
)
from clash_tracker.services.recurrence import parse_recurrence

logger = logging.getLogger(__name__)

_RECURRENCE_KEYS = ("baseDate", "modifier", "durationDays")
_ONE_TIME_SECTIONS = ("one_time_events", "non_repeating_events")

_FLAG = TypeAdapter(bool)
_ISO_DATE = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}")
_DATEPARSER_SETTINGS = {
    "TIMEZONE": "UTC",
    "TO_TIMEZONE": "UTC",
    "RETURN_AS_TIMEZONE_AWARE": True,
    "PARSERS": ["absolute-time"],
    "STRICT_PARSING": True,
    "REQUIRE_PARTS": ["day", "month", "year"],
}

ConfigSource = EventConfig | Mapping[str, Any] | str | Path


def load_event_config(source: ConfigSource, timeout: float = 10.0) -> EventConfig:
    """Load a configuration from a mapping, a JSON file path or an HTTP(S) URL.

    Raises ``ConfigurationError`` when the document cannot be fetched, read,
    decoded or validated.
    """
    if isinstance(source, EventConfig):
        return source

    if isinstance(source, Mapping):
        document = source
    elif isinstance(source, str) and source.startswith(("http://", "https://")):
        document = _fetch_document(source, timeout)
    else:
        document = _read_document(Path(source))

    config = parse_event_config(document)
    logger.info(
        f"Events configuration loaded: {len(config.repeating_events)} repeating, "
        f"{len(config.one_time_events)} one-time"
    )
    return config


def _fetch_document(url: str, timeout: float) -> Any:
    logger.info(f"Fetching events configuration from {url}")
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise ConfigurationError(f"Failed to load events: {e}") from e

    if not response.ok:
        raise ConfigurationError(
            f"Failed to load events: {response.status_code} {response.reason}"
        )
    try:
        return response.json()
    except ValueError as e:
        raise ConfigurationError(f"Events configuration is not valid JSON: {e}") from e


def _read_document(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Failed to read events file {path}: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Events file {path} is not valid JSON: {e}") from e


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def parse_event_config(document: Any) -> EventConfig:
    """Validate a decoded configuration document into an ``EventConfig``."""
    if not document:
        raise ConfigurationError("Events configuration is empty")
    if not isinstance(document, Mapping):
        raise ConfigurationError("Events configuration must be a JSON object")

    one_time_keys = [key for key in _ONE_TIME_SECTIONS if key in document]
    if len(one_time_keys) > 1:
        raise ConfigurationError(
            "Configuration must not have both one_time_events and non_repeating_events"
        )
    if "repeating_events" not in document and not one_time_keys:
        raise ConfigurationError(
            "Configuration must have repeating_events or one_time_events"
        )

    one_time_key = one_time_keys[0] if one_time_keys else "one_time_events"
    return EventConfig(
        repeating_events=_parse_section(document, "repeating_events"),
        one_time_events=_parse_section(document, one_time_key),
    )


def _parse_section(document: Mapping[str, Any], section: str) -> tuple[EventDefinition, ...]:
    entries = document.get(section)
    if entries is None:
        return ()
    if not isinstance(entries, list):
        raise ConfigurationError(f"{section} must be a list")
    return tuple(
        parse_event_definition(raw, section=section, index=index)
        for index, raw in enumerate(entries)
    )


def parse_event_definition(
    raw: Any, section: str = "events", index: int = 0
) -> EventDefinition:
    """Validate one configuration entry and resolve its window strategy."""
    where = f"{section}[{index}]"
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Invalid event at {where}: expected an object")

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ConfigurationError(f"Invalid event at {where}: missing title")
    where = f"{where} ({title!r})"

    recurrence_keys = [key for key in _RECURRENCE_KEYS if raw.get(key) is not None]
    has_bounds = raw.get("start") is not None or raw.get("end") is not None
    try:
        ignore_date = _FLAG.validate_python(raw.get("ignoreDate", False))
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid event at {where}: ignoreDate must be true or false"
        ) from e

    if ignore_date and not recurrence_keys:
        raise ConfigurationError(
            f"Invalid event at {where}: ignoreDate requires baseDate, modifier "
            "and durationDays"
        )
    if recurrence_keys and has_bounds and not ignore_date:
        raise ConfigurationError(
            f"Ambiguous event at {where}: both a recurrence rule and explicit "
            "start/end are set; set ignoreDate to use the recurrence"
        )

    common = {
        "title": title,
        "icon": raw.get("icon"),
        "description": raw.get("description") or "",
        "image": raw.get("image"),
        "type": raw.get("type"),
        "active": raw.get("active", True),
    }

    try:
        if recurrence_keys:
            missing = [key for key in _RECURRENCE_KEYS if key not in recurrence_keys]
            if missing:
                raise ConfigurationError(
                    f"Invalid event at {where}: missing {', '.join(missing)}"
                )
            if has_bounds:
                logger.debug(f"Event {where} uses its recurrence; start/end ignored")
            return RecurringEventDefinition(
                recurrence=parse_recurrence(raw["modifier"], raw["baseDate"]),
                duration_days=raw["durationDays"],
                **common,
            )

        if raw.get("start") is None or raw.get("end") is None:
            raise ConfigurationError(
                f"Invalid event at {where}: needs baseDate/modifier/durationDays "
                "or both start and end"
            )
        return FixedEventDefinition(
            start=parse_instant(raw["start"]),
            end=parse_instant(raw["end"]),
            **common,
        )
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid event at {where}: {_describe_validation_error(e)}"
        ) from e
    except ValueError as e:
        raise ConfigurationError(f"Invalid event at {where}: {e}") from e


def parse_instant(value: Any) -> datetime:
    """Parse a configured instant; values without an offset are taken as UTC.

    ISO 8601 strings are parsed directly, anything else goes through
    ``dateparser`` (e.g. ``"March 1 2026 08:00"``). Only absolute dates naming
    day, month and year are accepted; relative phrases such as ``"tomorrow"``
    and malformed ISO dates such as ``"2026-13-01"`` are rejected.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid instant: {value!r}")

    text = value.strip()
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        if _ISO_DATE.match(text):
            raise ValueError(f"Invalid instant: {value!r}") from None

    result = dateparser.parse(text, settings=_DATEPARSER_SETTINGS)
    if result is None:
        raise ValueError(f"Invalid instant: {value!r}")
    return result.astimezone(timezone.utc)


def _describe_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in item['loc']) or 'event'}: {item['msg']}"
        for item in error.errors()
    )
