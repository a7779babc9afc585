"""Query surface over the loaded event definitions.

``EventWindowCalculator`` owns the validated configuration and a short-lived
cache of the active-event list. Every query is a function of the
configuration and a reference instant, which defaults to the current time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta

from clash_tracker.domain.models import (
    ActiveEvent,
    CalendarMarker,
    Countdown,
    EventConfig,
    EventDefinition,
    EventWindow,
    RecurringEventDefinition,
    UpcomingEvent,
    WeeklyRule,
    as_utc,
    utcnow,
)
from clash_tracker.repos.memory import ActiveEventsCache
from clash_tracker.services.countdown import countdown, format_countdown
from clash_tracker.services.loader import ConfigSource, load_event_config
from clash_tracker.services.recurrence import compute_window, overlaps

logger = logging.getLogger(__name__)

DEFAULT_DAYS_AHEAD = 30
MAX_DAYS_AHEAD = 3650


class EventWindowCalculator:
    def __init__(
        self,
        config: EventConfig | None = None,
        cache: ActiveEventsCache | None = None,
        days_ahead: int = DEFAULT_DAYS_AHEAD,
        fetch_timeout: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config
        self._cache = cache if cache is not None else ActiveEventsCache()
        self._days_ahead = days_ahead
        self._fetch_timeout = fetch_timeout
        self._clock = clock

    @property
    def config(self) -> EventConfig | None:
        return self._config

    @property
    def is_loaded(self) -> bool:
        return self._config is not None

    def load(self, source: ConfigSource) -> EventConfig:
        """Validate *source* and replace the current configuration.

        Validation errors propagate and leave the previous configuration
        in place.
        """
        config = load_event_config(source, timeout=self._fetch_timeout)
        self._config = config
        self._cache.clear()
        return config

    # ── Internals ─────────────────────────────────────────────────────

    def _resolve(self, reference: datetime | None) -> datetime:
        return self._clock() if reference is None else as_utc(reference)

    def _active_definitions(self) -> tuple[EventDefinition, ...] | None:
        if self._config is None:
            logger.warning("Events configuration not loaded")
            return None
        return tuple(d for d in self._config.definitions if d.active)

    def _windows(
        self, definitions: tuple[EventDefinition, ...], reference: datetime, query: str
    ) -> Iterator[tuple[EventDefinition, EventWindow]]:
        """Yield each definition with its window, skipping ones that fail."""
        for definition in definitions:
            try:
                window = compute_window(definition, reference)
            except Exception:
                logger.exception(
                    f"Error processing event '{definition.title}' for {query}",
                    extra={"event_title": definition.title, "query": query},
                )
                continue
            yield definition, window

    # ── Queries ───────────────────────────────────────────────────────

    def get_active_events(
        self, reference: datetime | None = None, force_refresh: bool = False
    ) -> list[ActiveEvent]:
        """Return events running at *reference*, soonest-ending first.

        A list computed for a reference within the cache TTL is returned
        as-is (the same list object) unless *force_refresh* is set.
        """
        reference = self._resolve(reference)

        if not force_refresh:
            cached = self._cache.get(reference)
            if cached is not None:
                return cached

        definitions = self._active_definitions()
        if definitions is None:
            return []

        active: list[ActiveEvent] = []
        for definition, window in self._windows(definitions, reference, "active events"):
            if not window.contains(reference):
                continue
            remaining = countdown(window.end, reference)
            active.append(
                ActiveEvent(
                    title=definition.title,
                    icon=definition.icon,
                    image=definition.image,
                    description=definition.description,
                    type=definition.display_type,
                    modifier=definition.modifier,
                    start=window.start,
                    end=window.end,
                    countdown=remaining,
                    countdown_text=format_countdown(remaining),
                )
            )

        # list.sort is stable, so equal end times keep configuration order
        active.sort(key=lambda event: event.end)
        self._cache.put(reference, active)
        return active

    def get_upcoming_events(
        self, reference: datetime | None = None, days_ahead: int | None = None
    ) -> list[UpcomingEvent]:
        """Return events whose window overlaps ``[reference, reference + days_ahead)``.

        Running events are included with ``is_active`` set; their countdown
        runs to the end, the others' to the start.
        """
        reference = self._resolve(reference)
        days_ahead = self._days_ahead if days_ahead is None else days_ahead
        if not 0 <= days_ahead <= MAX_DAYS_AHEAD:
            raise ValueError(
                f"days_ahead must be between 0 and {MAX_DAYS_AHEAD}, got {days_ahead}"
            )
        horizon = reference + timedelta(days=days_ahead)

        definitions = self._active_definitions()
        if definitions is None:
            return []

        upcoming: list[UpcomingEvent] = []
        for definition, window in self._windows(definitions, reference, "upcoming events"):
            if not overlaps(window, reference, horizon):
                continue
            running = window.contains(reference)
            remaining = countdown(window.end if running else window.start, reference)
            upcoming.append(
                UpcomingEvent(
                    title=definition.title,
                    icon=definition.icon,
                    image=definition.image,
                    description=definition.description,
                    type=definition.display_type,
                    modifier=definition.modifier,
                    start=window.start,
                    end=window.end,
                    is_active=running,
                    countdown=remaining,
                    countdown_text=format_countdown(remaining),
                )
            )

        upcoming.sort(key=lambda event: event.start)
        return upcoming

    def get_calendar_for_month(self, year: int, month: int) -> list[CalendarMarker]:
        """Return start/end markers falling inside the given UTC month (1-12).

        Weekly events contribute a marker for every occurrence bound inside
        the month; monthly and fixed events contribute at most two markers.
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {month}")

        definitions = self._active_definitions()
        if definitions is None:
            return []

        month_start = datetime(year, month, 1, tzinfo=timezone.utc)
        month_end = month_start + relativedelta(months=1)

        markers: list[CalendarMarker] = []
        for definition in definitions:
            try:
                windows = _month_windows(definition, month_start, month_end)
            except Exception:
                logger.exception(
                    f"Error processing event '{definition.title}' for calendar",
                    extra={"event_title": definition.title, "query": "calendar"},
                )
                continue
            for window in windows:
                markers.extend(_markers(definition, window, month_start, month_end))
        return markers

    def is_event_active(self, title: str, reference: datetime | None = None) -> bool:
        return any(event.title == title for event in self.get_active_events(reference))

    def format_countdown(self, value: Countdown) -> str:
        return format_countdown(value)


def _month_windows(
    definition: EventDefinition, month_start: datetime, month_end: datetime
) -> list[EventWindow]:
    """Windows of *definition* that intersect ``[month_start, month_end)``.

    Weekly occurrences are exactly one week apart, so every occurrence of the
    month is reached by stepping the month-start window a week at a time.
    """
    window = compute_window(definition, month_start)

    if not (
        isinstance(definition, RecurringEventDefinition)
        and isinstance(definition.recurrence, WeeklyRule)
    ):
        return [window] if overlaps(window, month_start, month_end) else []

    week = timedelta(weeks=1)
    # Occurrences longer than a week can overlap; include earlier ones still running.
    while window.end - week > month_start:
        window = EventWindow(start=window.start - week, end=window.end - week)

    windows: list[EventWindow] = []
    while window.start < month_end:
        if overlaps(window, month_start, month_end):
            windows.append(window)
        window = EventWindow(start=window.start + week, end=window.end + week)
    return windows


def _markers(
    definition: EventDefinition,
    window: EventWindow,
    month_start: datetime,
    month_end: datetime,
) -> Iterator[CalendarMarker]:
    for instant, is_start in ((window.start, True), (window.end, False)):
        if month_start <= instant < month_end:
            yield CalendarMarker(
                date=instant.day,
                full_date=instant,
                title=definition.title,
                icon=definition.icon,
                type=definition.display_type,
                is_start=is_start,
                is_end=not is_start,
            )
