"""FastAPI application — JSON query surface over the in-game event calendar."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from fastapi import Body, FastAPI, HTTPException, Path, Query

from clash_tracker.config import load_settings
from clash_tracker.domain.errors import ConfigurationError
from clash_tracker.domain.models import ActiveEvent, CalendarMarker, UpcomingEvent
from clash_tracker.logging_setup import setup_logging
from clash_tracker.repos.memory import ActiveEventsCache
from clash_tracker.services.calculator import MAX_DAYS_AHEAD, EventWindowCalculator

logger = logging.getLogger(__name__)

# ── Singletons (created at import time for simplicity) ────────────────
settings = load_settings()
calculator = EventWindowCalculator(
    cache=ActiveEventsCache(ttl=timedelta(milliseconds=settings.active_cache_ttl_ms)),
    days_ahead=settings.upcoming_days_ahead,
    fetch_timeout=settings.fetch_timeout_seconds,
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging(settings.log_level)
    if settings.events_config_source:
        calculator.load(settings.events_config_source)
    else:
        logger.warning("EVENTS_CONFIG_SOURCE is not set; waiting for POST /events/config")
    yield


app = FastAPI(title="Clash Tracker Events", lifespan=lifespan)


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/events/config")
def load_config(document: dict = Body(...)) -> dict:
    """Replace the loaded events configuration with the posted document."""
    try:
        config = calculator.load(document)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "repeating_events": len(config.repeating_events),
        "one_time_events": len(config.one_time_events),
    }


@app.get("/events/active", response_model=list[ActiveEvent])
def active_events(now: datetime | None = None, refresh: bool = False) -> list[ActiveEvent]:
    """Return the events running at *now*, soonest-ending first."""
    return calculator.get_active_events(now, force_refresh=refresh)


@app.get("/events/upcoming", response_model=list[UpcomingEvent])
def upcoming_events(
    now: datetime | None = None,
    days_ahead: int | None = Query(default=None, ge=0, le=MAX_DAYS_AHEAD),
) -> list[UpcomingEvent]:
    """Return running and future events within the look-ahead period."""
    return calculator.get_upcoming_events(now, days_ahead=days_ahead)


@app.get("/events/calendar/{year}/{month}", response_model=list[CalendarMarker])
def month_calendar(
    year: int = Path(ge=1, le=9998),
    month: int = Path(ge=1, le=12),
) -> list[CalendarMarker]:
    """Return the start/end markers for a UTC calendar month."""
    return calculator.get_calendar_for_month(year, month)


@app.get("/events/{title}/active")
def event_active(title: str, now: datetime | None = None) -> dict:
    return {"title": title, "active": calculator.is_event_active(title, now)}
