from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from numbers import Integral
from typing import Any, Literal, Optional, Sequence, Union

from workcal.calendar import (
    UNITS,
    Calendar,
    CalendarConfig,
    ConfigurationError,
    DaySchedule,
    ExceptionDay,
    InvalidInstantError,
    ShiftInterval,
    TimePeriod,
    ValidationRejected,
)
from workcal.calendar._geometry import date_of_day, day_of, to_epoch_ms
from workcal.calendar.config import (
    DEFAULT_DURATION_UNIT,
    MINUTE_MS,
    WEEKDAYS,
    default_schedules,
)

logger = logging.getLogger(__name__)

ShiftSpec = Union[Sequence[int], Literal[False]]

_TIME_PERIOD_FIELDS = frozenset(f.name for f in dataclasses.fields(TimePeriod))


def parse_shift_spec(
    shift_hours: Sequence[int],
    shift_minutes: Optional[Sequence[Optional[int]]] = None,
    setting: str = "work time",
) -> tuple[ShiftInterval, ...]:
    """
    Turn flat hour/minute boundary lists into validated shifts.

    Boundaries are read pairwise as ``(start, end)``.  Missing minutes
    default to 0.  A pair starting exactly where the previous one ended is
    merged into it and zero-length pairs are dropped.  Raises
    :class:`ValidationRejected` for empty or odd-length input, times outside
    00:00–24:00, inverted pairs, and pairs overlapping their predecessor.
    """
    try:
        hours = list(shift_hours)
    except TypeError:
        raise ValidationRejected(setting, f"not a list of hours: {shift_hours!r}") from None
    if not hours:
        raise ValidationRejected(setting, "no shift boundaries given")
    if len(hours) % 2:
        raise ValidationRejected(setting, "odd number of shift boundaries")

    minutes = list(shift_minutes or ())[: len(hours)]
    minutes += [0] * (len(hours) - len(minutes))

    bounds: list[tuple[int, int]] = []
    for h, m in zip(hours, minutes):
        try:
            h, m = int(h), int(m or 0)
        except (TypeError, ValueError):
            raise ValidationRejected(setting, f"not a time: {h!r}:{m!r}") from None
        if not (0 <= h <= 24 and 0 <= m < 60) or (h == 24 and m):
            raise ValidationRejected(setting, f"time out of range: {h:02d}:{m:02d}")
        bounds.append((h, m))

    shifts: list[list[tuple[int, int]]] = []
    last_end: Optional[tuple[int, int]] = None
    for start, end in zip(bounds[::2], bounds[1::2]):
        if start > end:
            raise ValidationRejected(setting, "shift end time is behind shift start time")
        if last_end is not None and start < last_end:
            raise ValidationRejected(setting, "a later shift starts before the previous shift ends")
        last_end = end
        if start == end:
            continue
        if shifts and shifts[-1][1] == start:
            shifts[-1][1] = end
        else:
            shifts.append([start, end])

    if not shifts:
        raise ValidationRejected(setting, "every shift is empty")
    return tuple(ShiftInterval(s[0], s[1], e[0], e[1]) for s, e in shifts)


class CalendarBuilder:
    """
    Accumulates a calendar configuration through chainable setters.

    Bad shift specifications never raise: they are logged at WARNING,
    appended to :attr:`rejections`, and the previous value stays in place.
    A bad duration unit or a time-zone change after exceptions were added
    raises :class:`ConfigurationError` immediately.

    Weekday precedence is a lookup order: a schedule set with
    :meth:`set_individual_work_time` always wins over the bulk default of
    :meth:`set_default_work_time`, whichever was called last.
    """

    def __init__(self) -> None:
        self._time_zone_offset: Optional[int] = None
        self._default_days: dict[int, DaySchedule] = default_schedules()
        self._individual_days: dict[int, DaySchedule] = {}
        self._is_default_work_time_set: bool = False
        self._exceptions: dict[dt.date, ExceptionDay] = {}
        self._time_period: Optional[TimePeriod] = None
        self._duration_unit: Optional[str] = None
        self.rejections: list[ValidationRejected] = []

    # ── diagnostics ──────────────────────────────────────────────────────

    def _reject(self, rejection: ValidationRejected) -> None:
        logger.warning("%s; keeping the previous value.", rejection)
        self.rejections.append(rejection)

    def _schedule(
        self,
        setting: str,
        shift_hours: ShiftSpec,
        shift_minutes: Optional[Sequence[Optional[int]]],
    ) -> Optional[DaySchedule]:
        if shift_hours is False:
            return DaySchedule.closed()
        try:
            return DaySchedule(True, parse_shift_spec(shift_hours, shift_minutes, setting))
        except ValidationRejected as rejection:
            self._reject(rejection)
            return None

    # ── time zone ────────────────────────────────────────────────────────

    @property
    def _offset_minutes(self) -> int:
        return self._time_zone_offset if self._time_zone_offset is not None else 0

    def set_time_zone_offset(
        self, minutes: Optional[int] = None, host_offset: int = 0
    ) -> CalendarBuilder:
        """
        Set the zone offset in minutes behind UTC (UTC+05:30 is ``-330``).

        ``host_offset`` is the offset the caller's own instants are already
        expressed in; the stored offset is ``minutes - host_offset``.
        Omitting ``minutes`` resets to no offset.  Exception dates are keyed
        with the offset in force, so it cannot change once any are set.
        """
        if self._exceptions:
            raise ConfigurationError(
                "Time-zone can't be modified after exceptions are added."
            )
        if minutes is None:
            self._time_zone_offset = None
            return self
        for value in (minutes, host_offset):
            if isinstance(value, bool) or not isinstance(value, Integral):
                raise ConfigurationError(f"Time-zone offset must be whole minutes; got {value!r}.")
        self._time_zone_offset = int(minutes) - int(host_offset)
        return self

    # ── work time ────────────────────────────────────────────────────────

    def set_default_work_time(
        self,
        shift_hours: ShiftSpec,
        shift_minutes: Optional[Sequence[Optional[int]]] = None,
    ) -> CalendarBuilder:
        schedule = self._schedule("default work time", shift_hours, shift_minutes)
        if schedule is not None:
            for day in WEEKDAYS:
                self._default_days[day] = schedule
            self._is_default_work_time_set = True
        return self

    def set_individual_work_time(
        self,
        day: int,
        shift_hours: ShiftSpec,
        shift_minutes: Optional[Sequence[Optional[int]]] = None,
    ) -> CalendarBuilder:
        setting = f"work time of day {day!r}"
        if isinstance(day, bool) or not isinstance(day, Integral) or day not in WEEKDAYS:
            self._reject(ValidationRejected(setting, "weekday must be 0 (Sunday) to 6"))
            return self
        schedule = self._schedule(setting, shift_hours, shift_minutes)
        if schedule is not None:
            self._individual_days[int(day)] = schedule
        return self

    # ── exceptions ───────────────────────────────────────────────────────

    def _exception_date(self, value: Any) -> dt.date:
        if isinstance(value, dt.date) and not isinstance(value, dt.datetime):
            return value
        if isinstance(value, str):
            # A bare date names the zone-local day as written.
            try:
                return dt.date.fromisoformat(value.strip())
            except ValueError:
                pass
        try:
            local = to_epoch_ms(value) - self._offset_minutes * MINUTE_MS
        except InvalidInstantError as exc:
            raise ConfigurationError(f"Invalid exception date: {value!r}.") from exc
        return date_of_day(day_of(local))

    def set_exception(
        self,
        date: Any,
        shift_hours: Optional[ShiftSpec] = None,
        shift_minutes: Optional[Sequence[Optional[int]]] = None,
    ) -> CalendarBuilder:
        """
        Override one calendar date: ``False`` closes it, a shift spec
        replaces its shifts.  Setting the same date again replaces the
        earlier record; an invalid shift spec leaves it untouched.
        """
        if shift_hours is None:
            raise ConfigurationError("An exception needs both a date and a shift specification.")
        key = self._exception_date(date)
        schedule = self._schedule(f"exception on {key.isoformat()}", shift_hours, shift_minutes)
        if schedule is not None:
            self._exceptions[key] = ExceptionDay(key, schedule.shifts)
        return self

    # ── units ────────────────────────────────────────────────────────────

    def set_time_period(self, **fields: int) -> CalendarBuilder:
        unknown = set(fields) - _TIME_PERIOD_FIELDS
        if unknown:
            raise ConfigurationError(f"Unknown time period field(s): {sorted(unknown)}.")
        try:
            values = {name: int(value) for name, value in fields.items()}
        except (TypeError, ValueError):
            self._reject(ValidationRejected("time period", f"not a whole number of hours: {fields!r}"))
            return self
        if any(value <= 0 for value in values.values()):
            self._reject(ValidationRejected("time period", f"hours must be positive: {values!r}"))
            return self
        self._time_period = dataclasses.replace(self._time_period or TimePeriod(), **values)
        return self

    def set_duration_unit(self, unit: str) -> CalendarBuilder:
        if unit not in UNITS:
            raise ConfigurationError(f"Duration unit is invalid: {unit!r}.")
        self._duration_unit = unit
        return self

    # ── build ────────────────────────────────────────────────────────────

    def to_config(self) -> CalendarConfig:
        """Frozen snapshot of the current draft."""
        return CalendarConfig(
            time_zone_offset=self._offset_minutes,
            active_days={
                day: self._individual_days.get(day, self._default_days[day])
                for day in WEEKDAYS
            },
            exceptions=dict(self._exceptions),
            time_period=self._time_period or TimePeriod(),
            duration_unit=self._duration_unit or DEFAULT_DURATION_UNIT,
            is_time_zone_offset_set=self._time_zone_offset is not None,
            is_work_time_set=(
                self._is_default_work_time_set or len(self._individual_days) == len(WEEKDAYS)
            ),
            are_exceptions_set=bool(self._exceptions),
            is_time_period_set=self._time_period is not None,
            is_duration_unit_set=self._duration_unit is not None,
        )

    def build(self) -> Calendar:
        calendar = Calendar(self.to_config())
        logger.debug("Built %r.", calendar)
        return calendar

    def __repr__(self) -> str:
        return (
            f"CalendarBuilder(individual_days={sorted(self._individual_days)}, "
            f"exceptions={len(self._exceptions)}, "
            f"rejections={len(self.rejections)})"
        )
