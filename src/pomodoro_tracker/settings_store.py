from __future__ import annotations

"""SettingsStore persists timer durations in the ``settings`` table and emits
``changed`` with the new ``Settings`` after every accepted save."""

import logging
import sqlite3

from PyQt6.QtCore import QObject, pyqtSignal

from .database_manager import DatabaseManager
from .errors import PersistenceError, ValidationError
from .models import Settings
from .repositories import get_setting, set_settings

POMO_WORK = "pomo.work"
POMO_SB = "pomo.short"
POMO_LB = "pomo.long"
POMO_CYC = "pomo.cycles"
NOTIFY_ENABLED = "notifications.enabled"

_log = logging.getLogger(__name__)


def _int_setting(db: DatabaseManager, key: str, default: int) -> int:
    v = get_setting(db, key)
    if not v:
        return default
    try:
        return int(v)
    except ValueError:
        _log.warning("ignoring non-integer setting %s=%r", key, v)
        return default


class SettingsStore(QObject):
    changed = pyqtSignal(object)  # Settings

    def __init__(self, db: DatabaseManager):
        super().__init__()
        self._db = db

    def read(self) -> Settings:
        defaults = Settings()
        try:
            settings = Settings(
                work_minutes=_int_setting(self._db, POMO_WORK, defaults.work_minutes),
                short_break_minutes=_int_setting(self._db, POMO_SB, defaults.short_break_minutes),
                long_break_minutes=_int_setting(self._db, POMO_LB, defaults.long_break_minutes),
                cycle_length=_int_setting(self._db, POMO_CYC, defaults.cycle_length),
                notifications_enabled=get_setting(self._db, NOTIFY_ENABLED) == "1",
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"could not read settings: {e}") from e
        if not settings.is_valid():
            # Hand-edited or legacy rows; never feed out-of-range values to the timer
            _log.warning("stored settings out of range (%s); using defaults", ", ".join(settings.invalid_fields()))
            return defaults
        return settings

    def save(self, settings: Settings) -> None:
        bad = settings.invalid_fields()
        if bad:
            raise ValidationError(f"Invalid settings values: {', '.join(bad)}")
        try:
            set_settings(
                self._db,
                {
                    POMO_WORK: str(settings.work_minutes),
                    POMO_SB: str(settings.short_break_minutes),
                    POMO_LB: str(settings.long_break_minutes),
                    POMO_CYC: str(settings.cycle_length),
                    NOTIFY_ENABLED: "1" if settings.notifications_enabled else "0",
                },
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"could not save settings: {e}") from e
        _log.info("settings saved", extra={"_json_settings": str(settings)})
        self.changed.emit(settings)


__all__ = ["SettingsStore", "POMO_WORK", "POMO_SB", "POMO_LB", "POMO_CYC", "NOTIFY_ENABLED"]
