"""In-memory store for the most recently computed active-event list."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

from clash_tracker.domain.models import ActiveEvent


class ActiveEventsCache:
    """Holds one computed list and the reference instant it was computed for.

    A lookup hits when the requested reference is within ``ttl`` of the
    cached one, in either direction. Reads and writes take a lock so the two
    fields are always replaced together.
    """

    def __init__(self, ttl: timedelta = timedelta(seconds=1)) -> None:
        self._ttl = ttl
        self._lock = threading.Lock()
        self._events: list[ActiveEvent] | None = None
        self._computed_at: datetime | None = None

    def get(self, reference: datetime) -> list[ActiveEvent] | None:
        with self._lock:
            if self._events is None or self._computed_at is None:
                return None
            if abs(reference - self._computed_at) >= self._ttl:
                return None
            return self._events

    def put(self, reference: datetime, events: list[ActiveEvent]) -> None:
        with self._lock:
            self._events = events
            self._computed_at = reference

    def clear(self) -> None:
        with self._lock:
            self._events = None
            self._computed_at = None
