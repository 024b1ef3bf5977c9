from __future__ import annotations

"""Exception types shared by the stores, the timer and the sensor adapters.

None of these are fatal: the timer and statistics engine catch them at their
boundary and surface them as signals / state fields.
"""


class PomodoroError(Exception):
    pass


class ValidationError(PomodoroError):
    """Rejected settings or goal write; stored state is left untouched."""


class PersistenceError(PomodoroError):
    """SQLite read/write failure in one of the stores."""


class SensorUnavailable(PomodoroError):
    """The device has no accelerometer (or it was never attached)."""


class HistoryFeedError(PomodoroError):
    pass


__all__ = [
    "PomodoroError",
    "ValidationError",
    "PersistenceError",
    "SensorUnavailable",
    "HistoryFeedError",
]
