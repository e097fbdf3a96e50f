class CalendarError(Exception):
    """Base exception for all calendar-related errors."""


class ConfigurationError(CalendarError):
    """A configuration value that would corrupt all downstream arithmetic."""


class InvalidInstantError(CalendarError, ValueError):
    """A date-valued input that does not resolve to a real instant."""


class ValidationRejected(CalendarError):
    """
    A shift specification the builder refused.

    Not raised by the builder: it is logged and recorded on
    ``CalendarBuilder.rejections`` while the previous value is kept.
    """

    def __init__(self, setting: str, reason: str) -> None:
        super().__init__(f"{setting}: {reason}")
        self.setting = setting
        self.reason = reason
