"""Service for turning recurrence rules into concrete event windows.

Every recurring occurrence starts at the daily reset, 08:00 UTC, and lasts a
whole number of days. Windows are half-open: an event ending at 08:00 is no
longer active at 08:00.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from clash_tracker.domain.errors import (
    RecurrenceError,
    UnknownRecurrenceModifier,
    UnknownWeekday,
)
from clash_tracker.domain.models import (
    EventDefinition,
    EventWindow,
    FixedEventDefinition,
    MonthlyRule,
    RecurrenceModifier,
    WeeklyRule,
    as_utc,
)

RESET_HOUR = 8

# Sunday first, matching the configuration's day numbering.
_DAY_NAMES = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)


def parse_recurrence(modifier: object, base_date: object) -> MonthlyRule | WeeklyRule:
    """Compile the configuration's ``modifier``/``baseDate`` pair into a rule.

    ``baseDate`` is a day of month (``"01"`` .. ``"31"``) for monthly events
    and a weekday name (``"Friday"``) for weekly ones. Both are matched
    case-insensitively.
    """
    kind = str(modifier).strip().lower() if modifier is not None else ""

    if kind == RecurrenceModifier.MONTHLY:
        try:
            day = int(str(base_date).strip(), 10)
        except ValueError:
            raise RecurrenceError(f"Invalid day of month: {base_date!r}") from None
        if not 1 <= day <= 31:
            raise RecurrenceError(f"Day of month out of range: {base_date!r}")
        return MonthlyRule(day_of_month=day)

    if kind == RecurrenceModifier.WEEKLY:
        name = str(base_date).strip().lower()
        if name not in _DAY_NAMES:
            raise UnknownWeekday(base_date)
        return WeeklyRule(day_of_week=_DAY_NAMES.index(name))

    raise UnknownRecurrenceModifier(modifier)


def _at_reset(day: datetime) -> datetime:
    return day.replace(hour=RESET_HOUR, minute=0, second=0, microsecond=0)


def _weekday(instant: datetime) -> int:
    """UTC day of week with Sunday as 0."""
    return (instant.weekday() + 1) % 7


def _window(start: datetime, duration_days: int) -> EventWindow:
    return EventWindow(start=start, end=start + timedelta(days=duration_days))


# ---------------------------------------------------------------------------
# Monthly
# ---------------------------------------------------------------------------


def monthly_start(month: datetime, day_of_month: int) -> datetime:
    """Reset instant on *day_of_month* of *month*'s UTC month.

    Days past the end of a short month clamp to its last day, so day 31
    lands on April 30 and on February 28 or 29.
    """
    first = _at_reset(month.replace(day=1))
    return first + relativedelta(day=day_of_month)


def compute_monthly_window(
    day_of_month: int, duration_days: int, reference: datetime
) -> EventWindow:
    """Return this month's occurrence unless it has already ended, else next month's."""
    reference = as_utc(reference)
    start = monthly_start(reference, day_of_month)
    window = _window(start, duration_days)

    if reference < window.end:
        # Either not started yet or still running.
        return window

    next_month = reference.replace(day=1) + relativedelta(months=1)
    return _window(monthly_start(next_month, day_of_month), duration_days)


# ---------------------------------------------------------------------------
# Weekly
# ---------------------------------------------------------------------------


def previous_weekly_window(
    day_of_week: int, duration_days: int, reference: datetime
) -> EventWindow | None:
    """Return an occurrence that started on or before *reference* and still contains it.

    A three-day event starting Friday is still running on the following
    Sunday, so the lookback starts from the most recent target weekday
    (today included) and walks back one week at a time for as long as an
    occurrence that old could still be running. The most recent match wins.
    """
    reference = as_utc(reference)
    days_since_target = (_weekday(reference) - day_of_week + 7) % 7

    for offset in range(days_since_target, duration_days + 1, 7):
        window = _window(_at_reset(reference - timedelta(days=offset)), duration_days)
        if window.contains(reference):
            return window
    return None


def compute_weekly_window(
    day_of_week: int, duration_days: int, reference: datetime
) -> EventWindow:
    """Return the running occurrence, or the first one starting after *reference*."""
    reference = as_utc(reference)

    previous = previous_weekly_window(day_of_week, duration_days, reference)
    if previous is not None:
        return previous

    days_until_target = (day_of_week - _weekday(reference)) % 7
    start = _at_reset(reference + timedelta(days=days_until_target))
    if start <= reference:
        start += timedelta(weeks=1)
    return _window(start, duration_days)


# ---------------------------------------------------------------------------
# Fixed / dispatch
# ---------------------------------------------------------------------------


def compute_fixed_window(start: datetime, end: datetime) -> EventWindow:
    return EventWindow(start=as_utc(start), end=as_utc(end))


def compute_window(definition: EventDefinition, reference: datetime) -> EventWindow:
    """Return the window of *definition* containing or following *reference*."""
    if isinstance(definition, FixedEventDefinition):
        return compute_fixed_window(definition.start, definition.end)

    rule = definition.recurrence
    if isinstance(rule, MonthlyRule):
        return compute_monthly_window(
            rule.day_of_month, definition.duration_days, reference
        )
    if isinstance(rule, WeeklyRule):
        return compute_weekly_window(
            rule.day_of_week, definition.duration_days, reference
        )
    raise UnknownRecurrenceModifier(getattr(rule, "kind", rule))


def is_active(window: EventWindow, reference: datetime) -> bool:
    return window.contains(as_utc(reference))


def overlaps(window: EventWindow, range_start: datetime, range_end: datetime) -> bool:
    """Overlap rule: ``window.start < range_end`` and ``range_start < window.end``.

    Boundary touches (window ends exactly at *range_start*) do not overlap.
    """
    return window.start < range_end and range_start < window.end
