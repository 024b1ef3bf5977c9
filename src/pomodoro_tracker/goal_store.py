from __future__ import annotations

"""Per-period session goals (weekly / monthly / yearly) stored as settings rows."""

import logging
import sqlite3

from PyQt6.QtCore import QObject, pyqtSignal

from .database_manager import DatabaseManager
from .errors import PersistenceError, ValidationError
from .models import DEFAULT_GOALS, PERIODS
from .repositories import get_setting, set_setting

GOAL_KEY_PREFIX = "goal."

_log = logging.getLogger(__name__)


def goal_key(period: str) -> str:
    if period not in PERIODS:
        raise ValueError(f"unknown period: {period!r}")
    return GOAL_KEY_PREFIX + period


class GoalStore(QObject):
    changed = pyqtSignal(str, int)  # period, new target

    def __init__(self, db: DatabaseManager):
        super().__init__()
        self._db = db

    def get(self, period: str) -> int:
        key = goal_key(period)
        try:
            v = get_setting(self._db, key)
        except sqlite3.Error as e:
            raise PersistenceError(f"could not read goal {period}: {e}") from e
        if not v:
            return DEFAULT_GOALS[period]
        try:
            return int(v)
        except ValueError:
            _log.warning("ignoring non-integer goal %s=%r", key, v)
            return DEFAULT_GOALS[period]

    def set(self, period: str, target: int) -> None:
        key = goal_key(period)
        if target <= 0:
            raise ValidationError("Goal must be positive")
        try:
            set_setting(self._db, key, str(target))
        except sqlite3.Error as e:
            raise PersistenceError(f"could not save goal {period}: {e}") from e
        _log.info("goal updated", extra={"_json_period": period, "_json_target": target})
        self.changed.emit(period, target)


__all__ = ["GoalStore", "goal_key", "GOAL_KEY_PREFIX"]
