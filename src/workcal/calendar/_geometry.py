"""
Day and shift geometry shared by the builder and the engine.

Instants are handled as integer milliseconds since the Unix epoch.  Day
indices count whole days since 1970-01-01, which was a Thursday, so the
weekday (Sunday = 0) of day ``d`` is ``(d + 4) % 7``.
"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Optional

import numpy as np

from ._exceptions import InvalidInstantError
from .config import DAY_MS, HOUR_MS, ShiftInterval

_EPOCH = dt.datetime(1970, 1, 1)
_EPOCH_DATE = _EPOCH.date()
_ONE_MS = dt.timedelta(milliseconds=1)


# ── instant conversion ────────────────────────────────────────────────────

def to_epoch_ms(value: Any) -> int:
    """
    Convert an instant to UTC epoch milliseconds.

    Accepts datetimes (naive ones are taken as UTC), dates, ISO-8601
    strings, ``numpy.datetime64`` and epoch milliseconds.
    """
    if isinstance(value, np.ndarray) and value.ndim == 0:
        value = value[()]

    if isinstance(value, np.datetime64):
        if np.isnat(value):
            raise InvalidInstantError("Invalid date: NaT.")
        return int(value.astype("datetime64[ms]").astype(np.int64))

    if isinstance(value, str):
        try:
            value = dt.datetime.fromisoformat(value.strip())
        except ValueError:
            raise InvalidInstantError(f"Invalid date: {value!r}.") from None

    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return (value - _EPOCH) // _ONE_MS

    if isinstance(value, dt.date):
        return (value - _EPOCH_DATE).days * DAY_MS

    if isinstance(value, (bool, np.bool_)) or not isinstance(value, Real):
        raise InvalidInstantError(f"Invalid date: {value!r}.")

    ms = float(value)
    if not math.isfinite(ms):
        raise InvalidInstantError(f"Invalid date: {value!r}.")
    return math.trunc(ms)


def from_epoch_ms(ms: int, tzinfo: Optional[dt.tzinfo] = None) -> dt.datetime:
    """Naive UTC datetime for ``ms``, or an aware one in ``tzinfo``."""
    result = _EPOCH + ms * _ONE_MS
    if tzinfo is None:
        return result
    return result.replace(tzinfo=dt.timezone.utc).astimezone(tzinfo)


def tzinfo_of(value: Any) -> Optional[dt.tzinfo]:
    if isinstance(value, dt.datetime):
        return value.tzinfo
    return None


# ── day arithmetic ────────────────────────────────────────────────────────

def day_of(ms: int) -> int:
    return ms // DAY_MS


def weekday_of(day: int) -> int:
    return (day + 4) % 7


def date_of_day(day: int) -> dt.date:
    return _EPOCH_DATE + dt.timedelta(days=day)


def day_of_date(date: dt.date) -> int:
    return (date - _EPOCH_DATE).days


# ── per-day geometry ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class WorkTime:
    """
    Shift geometry of one calendar day.

    ``shift_duration`` holds the hours worked in each shift and
    ``break_duration`` the hours of break preceding each shift, so the first
    entry of ``break_duration`` is always 0.  A closed day has no shifts.
    """

    shifts: tuple[ShiftInterval, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.shifts)

    @property
    def shift_hours(self) -> tuple[int, ...]:
        return tuple(h for s in self.shifts for h in (s.start_hour, s.end_hour))

    @property
    def shift_minutes(self) -> tuple[int, ...]:
        return tuple(m for s in self.shifts for m in (s.start_minute, s.end_minute))

    @property
    def shift_duration(self) -> tuple[float, ...]:
        return tuple(s.hours for s in self.shifts)

    @property
    def break_duration(self) -> tuple[float, ...]:
        if not self.shifts:
            return ()
        gaps = [
            (nxt.start_ms - prev.end_ms) / HOUR_MS
            for prev, nxt in zip(self.shifts, self.shifts[1:])
        ]
        return (0.0, *gaps)

    @property
    def total_hours(self) -> float:
        return sum(self.shift_duration)

    def spans_on(self, day: int) -> list[tuple[int, int]]:
        """Absolute ``(start, end)`` millisecond bounds of each shift on ``day``."""
        base = day * DAY_MS
        return [(base + s.start_ms, base + s.end_ms) for s in self.shifts]


CLOSED = WorkTime()
