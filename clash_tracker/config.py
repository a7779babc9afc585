"""Runtime settings read from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field


class Settings(BaseModel):
    events_config_source: str | None = None
    log_level: str = "INFO"
    upcoming_days_ahead: int = Field(default=30, gt=0)
    fetch_timeout_seconds: float = Field(default=10.0, gt=0)
    active_cache_ttl_ms: int = Field(default=1000, ge=0)


_ENV_KEYS = {
    "events_config_source": "EVENTS_CONFIG_SOURCE",
    "log_level": "LOG_LEVEL",
    "upcoming_days_ahead": "UPCOMING_DAYS_AHEAD",
    "fetch_timeout_seconds": "FETCH_TIMEOUT_SECONDS",
    "active_cache_ttl_ms": "ACTIVE_CACHE_TTL_MS",
}


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from *environ* (defaults to ``os.environ``).

    Unset or empty variables fall back to the model defaults.
    """
    environ = os.environ if environ is None else environ
    values = {
        field: environ[key]
        for field, key in _ENV_KEYS.items()
        if environ.get(key)
    }
    return Settings(**values)
