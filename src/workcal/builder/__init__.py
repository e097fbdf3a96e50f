"""
workcal.builder
~~~~~~~~~~~~~~~

Chainable construction of business calendars.

Basic usage::

    from workcal.builder import CalendarBuilder

    cal = (
        CalendarBuilder()
        .set_time_zone_offset(-330)                    # UTC+05:30
        .set_default_work_time([9, 13, 14, 18])        # two shifts a day
        .set_individual_work_time(6, False)            # Saturday off
        .set_exception("2024-01-26", False)            # public holiday
        .set_duration_unit("hour")
        .build()
    )

Rejected shift specifications are logged through the ``workcal.builder``
logger and collected on ``CalendarBuilder.rejections``.
"""

from workcal.builder.builder import CalendarBuilder, parse_shift_spec

__all__ = ["CalendarBuilder", "parse_shift_spec"]
