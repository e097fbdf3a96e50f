from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Mapping

from ._exceptions import ConfigurationError

DurationUnit = Literal["day", "hour", "minute", "second", "millisecond"]

UNITS: tuple[str, ...] = ("day", "hour", "minute", "second", "millisecond")

MINUTE_MS: int = 60 * 1000
HOUR_MS: int = 60 * MINUTE_MS
DAY_MS: int = 24 * HOUR_MS

# Weekdays are numbered Sunday = 0 ... Saturday = 6.
WEEKDAYS: tuple[int, ...] = tuple(range(7))

DEFAULT_DURATION_UNIT: str = "minute"


@dataclass(frozen=True)
class ShiftInterval:
    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int

    @property
    def start_ms(self) -> int:
        return self.start_hour * HOUR_MS + self.start_minute * MINUTE_MS

    @property
    def end_ms(self) -> int:
        return self.end_hour * HOUR_MS + self.end_minute * MINUTE_MS

    @property
    def hours(self) -> float:
        return (self.end_ms - self.start_ms) / HOUR_MS

    def __str__(self) -> str:
        return (
            f"{self.start_hour:02d}:{self.start_minute:02d}-"
            f"{self.end_hour:02d}:{self.end_minute:02d}"
        )


@dataclass(frozen=True)
class DaySchedule:
    active: bool
    shifts: tuple[ShiftInterval, ...] = ()

    @classmethod
    def closed(cls) -> DaySchedule:
        return cls(False, ())


@dataclass(frozen=True)
class ExceptionDay:
    """Date-specific override of the weekday schedule; no shifts means closed."""

    date: dt.date
    shifts: tuple[ShiftInterval, ...] = ()

    @property
    def closed(self) -> bool:
        return not self.shifts


@dataclass(frozen=True)
class TimePeriod:
    # Only hours_per_day takes part in duration math.
    hours_per_day: int = 8
    hours_per_week: int = 40
    hours_per_month: int = 160
    hours_per_year: int = 1920


DEFAULT_SHIFT = ShiftInterval(8, 0, 16, 0)


def default_schedules() -> dict[int, DaySchedule]:
    """Mon–Fri 08:00–16:00, weekend off."""
    return {
        day: DaySchedule(True, (DEFAULT_SHIFT,)) if 1 <= day <= 5 else DaySchedule.closed()
        for day in WEEKDAYS
    }


def conversion_factor(unit: str, time_period: TimePeriod) -> int:
    """Milliseconds per ``unit``; ``day`` follows the configured hours per day."""
    if unit == "day":
        return time_period.hours_per_day * HOUR_MS
    if unit == "hour":
        return HOUR_MS
    if unit == "minute":
        return MINUTE_MS
    if unit == "second":
        return 1000
    return 1


@dataclass(frozen=True)
class CalendarConfig:
    """
    Immutable calendar configuration consumed by :class:`Calendar`.

    ``time_zone_offset`` is in minutes behind UTC (UTC+05:30 is ``-330``);
    zone-local wall time is UTC minus the offset.
    """

    time_zone_offset: int = 0
    active_days: Mapping[int, DaySchedule] = field(
        default_factory=lambda: MappingProxyType(default_schedules())
    )
    exceptions: Mapping[dt.date, ExceptionDay] = field(
        default_factory=lambda: MappingProxyType({})
    )
    time_period: TimePeriod = field(default_factory=TimePeriod)
    duration_unit: str = DEFAULT_DURATION_UNIT
    is_time_zone_offset_set: bool = False
    is_work_time_set: bool = False
    are_exceptions_set: bool = False
    is_time_period_set: bool = False
    is_duration_unit_set: bool = False

    def __post_init__(self) -> None:
        missing = set(WEEKDAYS) - set(self.active_days)
        if missing:
            raise ConfigurationError(f"No schedule for weekday(s) {sorted(missing)}.")
        if self.duration_unit not in UNITS:
            raise ConfigurationError(f"Duration unit is invalid: {self.duration_unit!r}.")
        # Freeze whatever mappings the caller handed in.
        object.__setattr__(
            self, "active_days", MappingProxyType(dict(self.active_days))
        )
        object.__setattr__(
            self, "exceptions", MappingProxyType(dict(self.exceptions))
        )
