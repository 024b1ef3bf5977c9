from __future__ import annotations

"""Pomodoro phase state machine.

Features:
 - work / short_break / long_break phases sized from the live ``Settings``.
 - One-second ``QTimer`` tick loop; every new phase starts paused.
 - Natural completion of a work phase records one session in the ``SessionLog``
   before the transition; ``skip`` never records.
 - A failed session write is surfaced (``error`` signal + ``TimerState.error``)
   but the phase still advances.
 - Emits ``state_changed`` after every mutation of displayed fields so UI and
   tray sinks stay in sync.
"""

from dataclasses import replace
from datetime import date
import logging
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .errors import PersistenceError
from .models import Settings, TimerState
from .session_log import SessionLog
from .settings_store import SettingsStore

DayProvider = Callable[[], date]

TICK_INTERVAL_MS = 1000

_log = logging.getLogger(__name__)


def initial_state(settings: Settings) -> TimerState:
    seconds = settings.phase_seconds("work")
    return TimerState(
        time_remaining=seconds,
        total_time=seconds,
        paused=True,
        current_cycle=1,
        total_cycles=settings.cycle_length,
        phase="work",
    )


def next_phase(state: TimerState, settings: Settings) -> TimerState:
    """Return the paused state that follows ``state`` once its phase ends."""
    if state.phase == "work":
        phase = "long_break" if state.current_cycle >= state.total_cycles else "short_break"
        cycle = state.current_cycle
    elif state.phase == "long_break":
        phase, cycle = "work", 1
    else:
        phase, cycle = "work", min(state.current_cycle + 1, state.total_cycles)
    seconds = settings.phase_seconds(phase)
    return replace(
        state,
        phase=phase,
        current_cycle=cycle,
        time_remaining=seconds,
        total_time=seconds,
        paused=True,
        error=None,
    )


class PomodoroService(QObject):
    state_changed = pyqtSignal(object)  # TimerState
    phase_changed = pyqtSignal(str)  # work|short_break|long_break
    running_changed = pyqtSignal(bool)
    phase_completed = pyqtSignal(str, str)  # finished phase, next phase (tick-driven only)
    session_recorded = pyqtSignal(object)  # DaySession
    error = pyqtSignal(str)

    def __init__(
        self,
        settings_store: SettingsStore,
        session_log: SessionLog,
        today_provider: Optional[DayProvider] = None,
    ):
        super().__init__()
        self._settings_store = settings_store
        self._session_log = session_log
        self._today: DayProvider = today_provider or date.today
        self._settings = Settings()
        self._timer = QTimer(self)
        self._timer.setInterval(TICK_INTERVAL_MS)
        self._timer.timeout.connect(self.tick)
        self._state = initial_state(self._current_settings())
        self._settings_store.changed.connect(self._on_settings_changed)

    # --- Properties -----------------------------------------------------
    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def settings(self) -> Settings:
        return self._settings

    def _set_state(self, new_state: TimerState) -> None:
        old = self._state
        if new_state == old:
            return
        self._state = new_state
        if new_state.phase != old.phase:
            self.phase_changed.emit(new_state.phase)
        if new_state.paused != old.paused:
            self.running_changed.emit(not new_state.paused)
        self.state_changed.emit(new_state)

    def _current_settings(self) -> Settings:
        try:
            self._settings = self._settings_store.read()
        except PersistenceError as e:
            _log.warning("settings unavailable, keeping last known values: %s", e)
        return self._settings

    # --- Commands -------------------------------------------------------
    def play(self) -> None:
        s = self._state
        if not s.paused or s.time_remaining <= 0:
            return
        self._set_state(replace(s, paused=False, error=None))
        self._timer.start()

    def pause(self) -> None:
        if self._state.paused:
            return
        self._timer.stop()
        self._set_state(replace(self._state, paused=True))

    def toggle(self) -> None:
        if self._state.paused:
            self.play()
        else:
            self.pause()

    def skip(self) -> None:
        self._timer.stop()
        _log.info("phase skipped", extra={"_json_phase": self._state.phase})
        self._complete_phase(record=False)

    def restart(self) -> None:
        self._timer.stop()
        self._set_state(initial_state(self._current_settings()))
        _log.info("timer restarted")

    def tick(self) -> None:
        s = self._state
        if s.paused or s.time_remaining <= 0:
            return
        remaining = s.time_remaining - 1
        self._set_state(replace(s, time_remaining=remaining))
        if remaining == 0:
            self._complete_phase(record=True)

    def shutdown(self) -> None:
        self._timer.stop()
        try:
            self._settings_store.changed.disconnect(self._on_settings_changed)
        except TypeError:
            pass

    # --- Internal -------------------------------------------------------
    def _complete_phase(self, *, record: bool) -> None:
        finished = self._state
        self._timer.stop()
        settings = self._current_settings()
        error: str | None = None
        if record and finished.phase == "work":
            try:
                day_session = self._session_log.append_session(self._today(), settings.work_minutes)
            except PersistenceError as e:
                error = f"Session could not be saved: {e}"
            else:
                self.session_recorded.emit(day_session)
        nxt = next_phase(finished, settings)
        if error:
            nxt = replace(nxt, error=error)
        self._set_state(nxt)
        _log.info(
            "phase transition",
            extra={
                "_json_from": finished.phase,
                "_json_to": nxt.phase,
                "_json_cycle": nxt.current_cycle,
                "_json_natural": record,
            },
        )
        if error:
            self.error.emit(error)
        if record:
            self.phase_completed.emit(finished.phase, nxt.phase)

    def _on_settings_changed(self, settings: Settings) -> None:
        self._settings = settings
        s = self._state
        total = settings.cycle_length
        cycle = min(s.current_cycle, total)
        if s.paused and s.phase == "work" and s.current_cycle == 1:
            seconds = settings.phase_seconds("work")
            self._set_state(
                replace(s, time_remaining=seconds, total_time=seconds, total_cycles=total, current_cycle=cycle)
            )
        else:
            self._set_state(replace(s, total_cycles=total, current_cycle=cycle))


__all__ = ["PomodoroService", "initial_state", "next_phase", "TICK_INTERVAL_MS"]
