from __future__ import annotations

"""Settings page: phase durations, cycle length and notifications."""

from PyQt6.QtWidgets import (
    QCheckBox,
    QFormLayout,
    QHBoxLayout,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from .errors import PersistenceError, ValidationError
from .models import CYCLE_RANGE, LONG_BREAK_RANGE, SHORT_BREAK_RANGE, WORK_RANGE, Settings
from .settings_store import SettingsStore
from .toast import show_toast


def _spin(bounds: tuple[int, int], suffix: str = "") -> QSpinBox:
    s = QSpinBox()
    s.setRange(*bounds)
    if suffix:
        s.setSuffix(suffix)
    return s


class SettingsPage(QWidget):  # pragma: no cover UI heavy
    def __init__(self, store: SettingsStore):
        super().__init__()
        self._store = store

        self.work_spin = _spin(WORK_RANGE, " min")
        self.short_spin = _spin(SHORT_BREAK_RANGE, " min")
        self.long_spin = _spin(LONG_BREAK_RANGE, " min")
        self.cycles_spin = _spin(CYCLE_RANGE)
        self.notify_cb = QCheckBox("Show a notification when a phase ends")

        form = QFormLayout()
        form.addRow("Pomodoro", self.work_spin)
        form.addRow("Short break", self.short_spin)
        form.addRow("Long break", self.long_spin)
        form.addRow("Pomodoros before long break", self.cycles_spin)
        form.addRow("", self.notify_cb)

        self.btn_save = QPushButton("Save Settings")
        self.btn_defaults = QPushButton("Restore Defaults")
        btn_row = QHBoxLayout()
        btn_row.addWidget(self.btn_save)
        btn_row.addWidget(self.btn_defaults)
        btn_row.addStretch(1)

        layout = QVBoxLayout(self)
        layout.addLayout(form)
        layout.addLayout(btn_row)
        layout.addStretch(1)

        self.btn_save.clicked.connect(self._save)
        self.btn_defaults.clicked.connect(lambda: self._load(Settings()))
        self._store.changed.connect(self._load)
        self._load(self._read())

    def _read(self) -> Settings:
        try:
            return self._store.read()
        except PersistenceError as e:
            show_toast(self, f"Settings could not be loaded: {e}", kind="error")
            return Settings()

    def _load(self, settings: Settings) -> None:
        self.work_spin.setValue(settings.work_minutes)
        self.short_spin.setValue(settings.short_break_minutes)
        self.long_spin.setValue(settings.long_break_minutes)
        self.cycles_spin.setValue(settings.cycle_length)
        self.notify_cb.setChecked(settings.notifications_enabled)

    def _save(self) -> None:
        settings = Settings(
            work_minutes=self.work_spin.value(),
            short_break_minutes=self.short_spin.value(),
            long_break_minutes=self.long_spin.value(),
            cycle_length=self.cycles_spin.value(),
            notifications_enabled=self.notify_cb.isChecked(),
        )
        try:
            self._store.save(settings)
        except (ValidationError, PersistenceError) as e:
            show_toast(self, str(e), kind="error")
            return
        show_toast(self, "Settings saved")


__all__ = ["SettingsPage"]
