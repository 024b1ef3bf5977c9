from __future__ import annotations

"""System-tray sink for the running timer.

 - Tray tooltip mirrors ``(time_remaining, paused)`` after every state change.
 - Tray menu offers Play/Pause, Reset, Show/Hide and Quit. The tray actions are
   plain callbacks handed in by the owner at construction and disconnected in
   ``teardown``.
 - Phase completion messages are shown only when notifications are enabled in
   the settings.
"""

from typing import Callable

from PyQt6.QtCore import QObject
from PyQt6.QtGui import QIcon
from PyQt6.QtWidgets import QApplication, QMenu, QSystemTrayIcon, QWidget

from .models import Settings, TimerState
from .pomodoro import PomodoroService
from .settings_store import SettingsStore

PHASE_LABELS = {"work": "Focus", "short_break": "Short break", "long_break": "Long break"}

_COMPLETION_MESSAGES = {
    "work": "Great work! Time for a break.",
    "short_break": "Break is over. Ready to focus?",
    "long_break": "Long break finished. Ready for a new round?",
}


def format_remaining(seconds: int) -> str:
    seconds = max(0, seconds)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def describe_state(state: TimerState) -> str:
    status = "paused" if state.paused else "running"
    return f"{PHASE_LABELS[state.phase]} {format_remaining(state.time_remaining)} ({status})"


def completion_message(finished_phase: str) -> str:
    return _COMPLETION_MESSAGES.get(finished_phase, "Phase finished")


class NotificationManager(QObject):  # pragma: no cover - UI heavy
    def __init__(
        self,
        parent: QWidget,
        timer: PomodoroService,
        settings_store: SettingsStore,
        on_play_pause: Callable[[], None],
        on_reset: Callable[[], None],
    ) -> None:
        super().__init__(parent)
        self._timer = timer
        self._settings_store = settings_store
        self._parent_widget = parent
        self._on_play_pause = on_play_pause
        self._on_reset = on_reset
        self._notifications_enabled = timer.settings.notifications_enabled

        self._tray = QSystemTrayIcon(parent)
        self._tray.setIcon(QIcon())
        self._tray.setVisible(QSystemTrayIcon.isSystemTrayAvailable())

        self._menu = QMenu()
        self._act_play = self._menu.addAction("Play / Pause")
        self._act_reset = self._menu.addAction("Reset")
        self._menu.addSeparator()
        self._act_show = self._menu.addAction("Show / Hide")
        self._act_quit = self._menu.addAction("Quit")
        self._tray.setContextMenu(self._menu)

        self._act_play.triggered.connect(self._on_play_pause)
        self._act_reset.triggered.connect(self._on_reset)
        self._act_show.triggered.connect(self._toggle_main_visibility)
        self._act_quit.triggered.connect(QApplication.instance().quit)  # type: ignore[union-attr]

        self._timer.state_changed.connect(self._on_state_changed)
        self._timer.phase_completed.connect(self._on_phase_completed)
        self._settings_store.changed.connect(self._on_settings_changed)
        self._on_state_changed(timer.state)

    def teardown(self) -> None:
        for signal, slot in (
            (self._act_play.triggered, self._on_play_pause),
            (self._act_reset.triggered, self._on_reset),
            (self._timer.state_changed, self._on_state_changed),
            (self._timer.phase_completed, self._on_phase_completed),
            (self._settings_store.changed, self._on_settings_changed),
        ):
            try:
                signal.disconnect(slot)
            except TypeError:
                pass
        self._tray.hide()

    # --- Slots ---------------------------------------------------------
    def _on_state_changed(self, state: TimerState) -> None:
        self._tray.setToolTip(describe_state(state))
        self._act_play.setText("Pause" if state.running else "Play")

    def _on_settings_changed(self, settings: Settings) -> None:
        self._notifications_enabled = settings.notifications_enabled

    def _on_phase_completed(self, finished: str, _next_phase: str) -> None:
        if not self._notifications_enabled:
            return
        try:
            self._tray.showMessage("Pomodoro", completion_message(finished), QSystemTrayIcon.MessageIcon.Information, 4000)
        except RuntimeError:
            pass

    def _toggle_main_visibility(self) -> None:
        w = self._parent_widget
        if w.isVisible():
            w.hide()
        else:
            w.show()
            w.activateWindow()


__all__ = ["NotificationManager", "format_remaining", "describe_state", "completion_message"]
