"""
workcal.calendar
~~~~~~~~~~~~~~~~

Business-calendar arithmetic.  A Calendar knows which weekdays are worked,
the shifts of each day, date-specific exceptions and a time-zone offset, and
answers questions in working time: is this instant inside a shift, what is
the nearest working instant, how much working time lies between two
instants, and which instant is reached after a working duration.

Basic usage::

    from datetime import datetime
    from workcal.calendar import Calendar

    cal = Calendar()                                   # Mon–Fri 08:00–16:00
    cal.calculate_working_duration(
        datetime(2024, 1, 5, 15), datetime(2024, 1, 8, 9), "hour"
    )                                                  # → 2.0
    cal.calculate_end_date(datetime(2024, 1, 5, 15), 90)   # → Mon 08:30

Calendars are normally produced by :class:`workcal.builder.CalendarBuilder`.

NumPy arrays are accepted by the duration operations::

    import numpy as np
    starts = np.array(["2024-01-05T15:00", "2024-01-08T08:00"], dtype="datetime64[ms]")
    ends   = cal.calculate_end_date(starts, [1.0, 2.5], "hour")

Public API
----------
Calendar            The engine.
CalendarConfig      Frozen configuration consumed by the engine.
WorkTime            Shift geometry of one day.
CalendarError       Base exception for all calendar-related errors.
"""

from __future__ import annotations

from workcal.calendar._exceptions import (
    CalendarError,
    ConfigurationError,
    InvalidInstantError,
    ValidationRejected,
)
from workcal.calendar._geometry import WorkTime
from workcal.calendar.calendar import Calendar
from workcal.calendar.config import (
    UNITS,
    CalendarConfig,
    DaySchedule,
    ExceptionDay,
    ShiftInterval,
    TimePeriod,
)

__all__ = [
    "Calendar",
    "CalendarConfig",
    "CalendarError",
    "ConfigurationError",
    "DaySchedule",
    "ExceptionDay",
    "InvalidInstantError",
    "ShiftInterval",
    "TimePeriod",
    "UNITS",
    "ValidationRejected",
    "WorkTime",
]
