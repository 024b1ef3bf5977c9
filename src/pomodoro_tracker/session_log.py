from __future__ import annotations

"""Append-only log of completed work sessions, one accumulated row per day."""

from datetime import date
import logging
import sqlite3

from PyQt6.QtCore import QObject, pyqtSignal

from .database_manager import DatabaseManager
from .errors import PersistenceError
from .models import DaySession
from .repositories import add_completed_session, get_day_session, list_day_sessions

_log = logging.getLogger(__name__)


class SessionLog(QObject):
    changed = pyqtSignal(object)  # DaySession that was just updated

    def __init__(self, db: DatabaseManager):
        super().__init__()
        self._db = db

    def read_all(self) -> dict[date, DaySession]:
        try:
            return list_day_sessions(self._db)
        except sqlite3.Error as e:
            raise PersistenceError(f"could not read session log: {e}") from e

    def read_one(self, day: date) -> DaySession | None:
        try:
            return get_day_session(self._db, day)
        except (sqlite3.Error, ValueError) as e:
            raise PersistenceError(f"could not read {day.isoformat()}: {e}") from e

    def append_session(self, day: date, duration_minutes: int) -> DaySession:
        if duration_minutes < 0:
            raise ValueError("duration_minutes must be >= 0")
        try:
            updated = add_completed_session(self._db, day, duration_minutes)
        except (sqlite3.Error, TypeError, ValueError) as e:
            # ValueError/TypeError: the stored row for this day is unreadable
            _log.warning("session write failed for %s: %s", day.isoformat(), e)
            raise PersistenceError(f"could not record session: {e}") from e
        _log.info(
            "session recorded",
            extra={
                "_json_day": day.isoformat(),
                "_json_minutes": duration_minutes,
                "_json_sessions": updated.completed_sessions,
            },
        )
        self.changed.emit(updated)
        return updated


__all__ = ["SessionLog"]
