"""Countdown decomposition and formatting."""

from __future__ import annotations

from datetime import datetime, timedelta

from clash_tracker.domain.models import Countdown, as_utc

_MS_PER_SECOND = 1000
_MS_PER_MINUTE = 60 * _MS_PER_SECOND
_MS_PER_HOUR = 60 * _MS_PER_MINUTE
_MS_PER_DAY = 24 * _MS_PER_HOUR


def countdown(end: datetime, reference: datetime) -> Countdown:
    """Split the time left until *end* into whole days, hours, minutes and seconds.

    Each unit is floored; sub-second remainders are only visible in
    ``total_ms``. An end at or before *reference* yields an all-zero countdown.
    """
    remaining = as_utc(end) - as_utc(reference)
    if remaining <= timedelta(0):
        return Countdown()

    total_ms = remaining // timedelta(milliseconds=1)
    days, rest = divmod(total_ms, _MS_PER_DAY)
    hours, rest = divmod(rest, _MS_PER_HOUR)
    minutes, rest = divmod(rest, _MS_PER_MINUTE)
    seconds = rest // _MS_PER_SECOND

    return Countdown(
        days=days, hours=hours, minutes=minutes, seconds=seconds, total_ms=total_ms
    )


def format_countdown(value: Countdown) -> str:
    """Render the two most significant non-zero units, e.g. ``"2d 4h"`` or ``"5h 30m"``."""
    if value.days > 0:
        return f"{value.days}d {value.hours}h"
    if value.hours > 0:
        return f"{value.hours}h {value.minutes}m"
    if value.minutes > 0:
        return f"{value.minutes}m {value.seconds}s"
    return f"{value.seconds}s"
