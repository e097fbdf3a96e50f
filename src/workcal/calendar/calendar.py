from __future__ import annotations

import datetime as dt
import logging
import math
from bisect import bisect_left, bisect_right
from typing import Any, Mapping, Optional, Union

import numpy as np

from ._exceptions import CalendarError, ConfigurationError, InvalidInstantError
from ._geometry import (
    CLOSED,
    WorkTime,
    day_of,
    day_of_date,
    from_epoch_ms,
    to_epoch_ms,
    tzinfo_of,
    weekday_of,
)
from .config import (
    DAY_MS,
    MINUTE_MS,
    UNITS,
    WEEKDAYS,
    CalendarConfig,
    ExceptionDay,
    TimePeriod,
    conversion_factor,
)

logger = logging.getLogger(__name__)

InstantLike = Union[dt.datetime, dt.date, str, int, float, np.datetime64]
ArrayLike = Union[InstantLike, "np.ndarray"]


def _instant_array(values: Any) -> np.ndarray:
    """UTC epoch milliseconds for an array-like of instants."""
    arr = np.asarray(values)
    if arr.dtype.kind == "M":
        if np.isnat(arr).any():
            raise InvalidInstantError("Invalid date: NaT.")
        return arr.astype("datetime64[ms]").astype(np.int64)
    flat = [to_epoch_ms(v) for v in arr.ravel().tolist()]
    return np.array(flat, dtype=np.int64).reshape(arr.shape)


class Calendar:
    """
    Compiled business calendar over a frozen :class:`CalendarConfig`.

    Shift geometry is resolved once per weekday and once per exception date.
    Every query converts its instants to zone-local epoch milliseconds on the
    way in and back to UTC on the way out; everything in between works on
    zone-local integers only.
    """

    def __init__(self, config: Optional[CalendarConfig] = None) -> None:
        self._config: CalendarConfig = config if config is not None else CalendarConfig()
        self._offset_ms: int = self._config.time_zone_offset * MINUTE_MS

        self._weekly: tuple[WorkTime, ...] = tuple(
            WorkTime(schedule.shifts) if schedule.active else CLOSED
            for schedule in (self._config.active_days[d] for d in WEEKDAYS)
        )
        self._exception_days: dict[int, WorkTime] = {
            day_of_date(date): WorkTime(exception.shifts)
            for date, exception in self._config.exceptions.items()
        }
        self._open_exception_days: list[int] = sorted(
            day for day, work_time in self._exception_days.items() if work_time
        )
        self._has_active_weekday: bool = any(self._weekly)
        # Each closed exception can push the next open weekday back by a week.
        self._search_limit: int = 7 * (len(self._exception_days) + 1) + 1

    # ── zone normalization ───────────────────────────────────────────────

    def _to_local(self, value: Any) -> int:
        return to_epoch_ms(value) - self._offset_ms

    def _from_local(self, local: int, like: Any = None) -> dt.datetime:
        return from_epoch_ms(local + self._offset_ms, tzinfo_of(like))

    def _resolve_unit(self, unit: Optional[str]) -> str:
        if unit in UNITS:
            return unit  # type: ignore[return-value]
        if unit is not None:
            logger.debug(
                "Unknown duration unit %r, using %r.", unit, self._config.duration_unit
            )
        return self._config.duration_unit

    # ── day geometry ─────────────────────────────────────────────────────

    def _work_time(self, day: int) -> WorkTime:
        exception = self._exception_days.get(day)
        if exception is not None:
            return exception
        return self._weekly[weekday_of(day)]

    def _spans(self, local: int, forward: bool = True) -> list[tuple[int, int]]:
        """
        Shift spans that can contain ``local``.

        At midnight a shift of the previous day ending at 24:00 also contains
        the instant; it is checked last going forward and first going back.
        """
        day = day_of(local)
        spans = self._work_time(day).spans_on(day)
        if local % DAY_MS == 0:
            previous = [s for s in self._work_time(day - 1).spans_on(day - 1) if s[1] == local]
            spans = spans + previous if forward else previous + spans
        return spans

    def _find_working_day(self, day: int, step: int) -> int:
        if not self._has_active_weekday:
            days = self._open_exception_days
            if step > 0:
                i = bisect_left(days, day)
                if i < len(days):
                    return days[i]
            else:
                i = bisect_right(days, day)
                if i:
                    return days[i - 1]
            raise ConfigurationError("No working day reachable.")

        for _ in range(self._search_limit):
            if self._work_time(day):
                return day
            day += step
        raise ConfigurationError("No working day reachable.")

    def _is_work_time(self, local: int) -> bool:
        return any(start <= local <= end for start, end in self._spans(local))

    def _remaining_in_shift(self, local: int, forward: bool) -> int:
        for start, end in self._spans(local, forward):
            if start <= local <= end:
                return end - local if forward else local - start
        return 0

    def _closest_past(self, local: int) -> int:
        day = day_of(local)
        spans = self._work_time(day).spans_on(day)
        if spans:
            day_end = spans[-1][1]
            if local > day_end:
                return day_end
            if local > spans[0][0]:
                for (_, prev_end), (next_start, _) in zip(spans, spans[1:]):
                    if prev_end < local <= next_start:
                        return prev_end
                return local

        day = self._find_working_day(day - 1, -1)
        return self._work_time(day).spans_on(day)[-1][1]

    def _closest_future(self, local: int) -> int:
        day = day_of(local)
        spans = self._work_time(day).spans_on(day)
        if spans:
            day_start = spans[0][0]
            if local < day_start:
                return day_start
            if local < spans[-1][1]:
                for (_, prev_end), (next_start, _) in zip(spans, spans[1:]):
                    if prev_end <= local < next_start:
                        return next_start
                return local

        day = self._find_working_day(day + 1, 1)
        return self._work_time(day).spans_on(day)[0][0]

    # ── duration arithmetic ──────────────────────────────────────────────

    def _working_duration_ms(self, start_ms: int, end_ms: int) -> int:
        if start_ms == end_ms:
            return 0
        if start_ms > end_ms:
            start_ms, end_ms = end_ms, start_ms

        current = self._closest_future(start_ms - self._offset_ms)
        end = self._closest_future(end_ms - self._offset_ms)
        total = 0
        while current < end:
            available = self._remaining_in_shift(current, True)
            boundary = current + available
            if boundary < end:
                total += available
                current = self._closest_future(boundary)
            else:
                total += end - current
                current = end
        return total

    def _walk(self, local: int, amount: int, forward: bool) -> int:
        sign = 1 if forward else -1
        while True:
            available = self._remaining_in_shift(local, forward)
            if amount <= available:
                return local + sign * amount
            local += sign * available
            amount -= available
            local = self._closest_future(local) if forward else self._closest_past(local)

    def _end_date_ms(self, start_ms: int, duration: float, factor: int) -> int:
        if not math.isfinite(duration):
            raise CalendarError(f"Duration must be finite; got {duration}.")
        amount = round(abs(duration) * factor)
        if amount == 0:
            return start_ms
        local = self._walk(start_ms - self._offset_ms, amount, duration > 0)
        return local + self._offset_ms

    # ── public queries ───────────────────────────────────────────────────

    def get_work_time(self, date: InstantLike) -> WorkTime:
        """Shift geometry of the zone-local calendar day containing ``date``."""
        return self._work_time(day_of(self._to_local(date)))

    def get_week_offs(self) -> frozenset[int]:
        return frozenset(
            day for day in WEEKDAYS if not self._config.active_days[day].active
        )

    def is_working_day(self, date: InstantLike) -> bool:
        return bool(self.get_work_time(date))

    def is_work_time(self, date: InstantLike) -> bool:
        return self._is_work_time(self._to_local(date))

    def get_closest_past_work_date(self, date: InstantLike) -> dt.datetime:
        """
        Latest working instant at or before ``date``.

        Inside a shift the instant itself is returned; in a break or after
        the last shift it snaps to the preceding shift end, otherwise to the
        last shift end of the previous working day.
        """
        return self._from_local(self._closest_past(self._to_local(date)), date)

    def get_closest_future_work_date(self, date: InstantLike) -> dt.datetime:
        """
        Earliest working instant at or after ``date``.

        Inside a shift the instant itself is returned; in a break or before
        the first shift it snaps to the following shift start, otherwise to
        the first shift start of the next working day.
        """
        return self._from_local(self._closest_future(self._to_local(date)), date)

    def calculate_working_duration(
        self,
        start: ArrayLike,
        end: ArrayLike,
        unit: Optional[str] = None,
    ) -> Union[float, np.ndarray]:
        """
        Working time between ``start`` and ``end`` in ``unit``.

        Argument order does not matter and the result is never negative.
        Array-likes are broadcast against each other.
        """
        factor = conversion_factor(self._resolve_unit(unit), self._config.time_period)
        if np.ndim(start) == 0 and np.ndim(end) == 0:
            return self._working_duration_ms(to_epoch_ms(start), to_epoch_ms(end)) / factor

        s, e = np.broadcast_arrays(_instant_array(start), _instant_array(end))
        result = np.fromiter(
            (self._working_duration_ms(int(a), int(b)) for a, b in zip(s.ravel(), e.ravel())),
            dtype=np.float64,
            count=s.size,
        )
        return result.reshape(s.shape) / factor

    def calculate_end_date(
        self,
        from_date: ArrayLike,
        duration: Union[float, np.ndarray],
        unit: Optional[str] = None,
    ) -> Union[dt.datetime, np.ndarray]:
        """
        Instant reached by travelling ``duration`` of working time from
        ``from_date``; negative durations travel backwards.

        Scalars return a ``datetime``; array-likes return ``datetime64[ms]``.
        """
        factor = conversion_factor(self._resolve_unit(unit), self._config.time_period)
        if np.ndim(from_date) == 0 and np.ndim(duration) == 0:
            start_ms = to_epoch_ms(from_date)
            return from_epoch_ms(
                self._end_date_ms(start_ms, float(duration), factor), tzinfo_of(from_date)
            )

        s, d = np.broadcast_arrays(
            _instant_array(from_date), np.asarray(duration, dtype=np.float64)
        )
        result = np.fromiter(
            (self._end_date_ms(int(a), float(b), factor) for a, b in zip(s.ravel(), d.ravel())),
            dtype=np.int64,
            count=s.size,
        )
        return result.reshape(s.shape).astype("datetime64[ms]")

    # ── properties / repr ────────────────────────────────────────────────

    @property
    def config(self) -> CalendarConfig:
        return self._config

    @property
    def time_zone_offset(self) -> int:
        return self._config.time_zone_offset

    @property
    def exceptions(self) -> Mapping[dt.date, ExceptionDay]:
        return self._config.exceptions

    @property
    def time_period(self) -> TimePeriod:
        return self._config.time_period

    @property
    def duration_unit(self) -> str:
        return self._config.duration_unit

    @property
    def is_time_zone_offset_set(self) -> bool:
        return self._config.is_time_zone_offset_set

    @property
    def is_work_time_set(self) -> bool:
        return self._config.is_work_time_set

    @property
    def are_exceptions_set(self) -> bool:
        return self._config.are_exceptions_set

    @property
    def is_time_period_set(self) -> bool:
        return self._config.is_time_period_set

    @property
    def is_duration_unit_set(self) -> bool:
        return self._config.is_duration_unit_set

    def __repr__(self) -> str:
        return (
            f"Calendar(week_offs={sorted(self.get_week_offs())}, "
            f"exceptions={len(self._exception_days)}, "
            f"time_zone_offset={self.time_zone_offset}, "
            f"duration_unit={self.duration_unit!r})"
        )
