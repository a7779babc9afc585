"""Domain models for in-game event definitions and their computed windows."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RecurrenceModifier(StrEnum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Recurrence rules
# ---------------------------------------------------------------------------


class MonthlyRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["monthly"] = "monthly"
    day_of_month: int = Field(ge=1, le=31)


class WeeklyRule(BaseModel):
    """Weekly recurrence; ``day_of_week`` counts from Sunday (0) to Saturday (6)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["weekly"] = "weekly"
    day_of_week: int = Field(ge=0, le=6)


RecurrenceRule = Annotated[MonthlyRule | WeeklyRule, Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Event definitions
# ---------------------------------------------------------------------------


class _DefinitionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    icon: str | None = None
    description: str = ""
    image: str | None = None
    type: str | None = None
    active: bool = True

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value


class RecurringEventDefinition(_DefinitionBase):
    recurrence: RecurrenceRule
    duration_days: int = Field(gt=0)

    @property
    def modifier(self) -> str:
        return self.recurrence.kind

    @property
    def display_type(self) -> str:
        return self.type or "repeating"


class FixedEventDefinition(_DefinitionBase):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _normalise_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _end_after_start(self) -> FixedEventDefinition:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @property
    def modifier(self) -> None:
        return None

    @property
    def display_type(self) -> str:
        return self.type or "one-time"


EventDefinition = RecurringEventDefinition | FixedEventDefinition


class EventConfig(BaseModel):
    """A validated events configuration document."""

    model_config = ConfigDict(frozen=True)

    repeating_events: tuple[EventDefinition, ...] = ()
    one_time_events: tuple[EventDefinition, ...] = ()

    @property
    def definitions(self) -> tuple[EventDefinition, ...]:
        return self.repeating_events + self.one_time_events


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


class EventWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _end_after_start(self) -> EventWindow:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    def contains(self, instant: datetime) -> bool:
        """Half-open membership: the start is inside, the end is not."""
        return self.start <= instant < self.end


class Countdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    total_ms: int = 0


class ActiveEvent(BaseModel):
    title: str
    icon: str | None = None
    image: str | None = None
    description: str = ""
    type: str
    modifier: str | None = None
    start: datetime
    end: datetime
    countdown: Countdown
    countdown_text: str


class UpcomingEvent(BaseModel):
    title: str
    icon: str | None = None
    image: str | None = None
    description: str = ""
    type: str
    modifier: str | None = None
    start: datetime
    end: datetime
    is_active: bool
    countdown: Countdown
    countdown_text: str


class CalendarMarker(BaseModel):
    date: int
    full_date: datetime
    title: str
    icon: str | None = None
    type: str
    is_start: bool
    is_end: bool
