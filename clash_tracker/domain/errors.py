"""Exceptions raised while loading event definitions and computing windows."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for every error raised by the event tracker."""


class ConfigurationError(TrackerError):
    """The events configuration is missing, malformed or ambiguous."""


class RecurrenceError(TrackerError, ValueError):
    """A recurrence rule cannot be turned into a window."""


class UnknownRecurrenceModifier(RecurrenceError):
    def __init__(self, modifier: object) -> None:
        self.modifier = modifier
        super().__init__(
            f"Unknown modifier: {modifier!r} (expected 'monthly' or 'weekly')"
        )


class UnknownWeekday(RecurrenceError):
    def __init__(self, base_date: object) -> None:
        self.base_date = base_date
        super().__init__(f"Invalid day of week: {base_date!r}")
