from __future__ import annotations

"""Sensor-driven timer controls.

ShakeToggle
    While enabled, every ``shaken`` signal from the shake source presses the
    timer's play/pause control.

FaceDownGuard ("face-down to focus")
    disabled -> armed (enabled, timer paused) -> monitoring (enabled, timer
    running). While monitoring it polls the orientation source once per second
    for the warm-up polls, then every 3 seconds. Any poll that finds the device
    not face-down pauses the timer once and ends the loop. Enabling while the
    timer runs pauses it so the next ``play()`` starts from a fresh face-down
    check.

Each pending poll carries a generation number; pausing, disabling or a new
monitoring run bumps the generation so a poll that was already queued exits
silently instead of dispatching a stale pause.
"""

import logging
from typing import Literal, Protocol

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .errors import SensorUnavailable
from .pomodoro import PomodoroService

GuardState = Literal["disabled", "armed", "monitoring"]

WARMUP_POLLS = 5
WARMUP_INTERVAL_MS = 1000
STEADY_INTERVAL_MS = 3000

_log = logging.getLogger(__name__)


class OrientationSource(Protocol):
    @property
    def available(self) -> bool: ...

    def is_face_down(self) -> bool: ...


class ShakeToggle(QObject):
    toggled = pyqtSignal(str)  # "play" | "pause"
    enabled_changed = pyqtSignal(bool)
    unavailable = pyqtSignal()

    def __init__(self, timer: PomodoroService, source):
        super().__init__()
        self._timer = timer
        self._source = source
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> bool:
        if enabled == self._enabled:
            return self._enabled
        if enabled:
            if not self._source.available:
                _log.info("shake toggle requested but no accelerometer")
                self.unavailable.emit()
                return False
            self._source.shaken.connect(self._on_shake)
        else:
            self._source.shaken.disconnect(self._on_shake)
        self._enabled = enabled
        self.enabled_changed.emit(enabled)
        return enabled

    def toggle(self) -> bool:
        return self.set_enabled(not self._enabled)

    def _on_shake(self) -> None:
        if not self._enabled:
            return
        was_paused = self._timer.state.paused
        self._timer.toggle()
        self.toggled.emit("play" if was_paused else "pause")


class FaceDownGuard(QObject):
    state_changed = pyqtSignal(str)  # GuardState
    tripped = pyqtSignal()  # timer paused because the device was lifted
    unavailable = pyqtSignal()

    def __init__(self, timer: PomodoroService, source: OrientationSource):
        super().__init__()
        self._timer = timer
        self._source = source
        self._enabled = False
        self._state: GuardState = "disabled"
        self._generation = 0
        self._polls = 0
        self._poll_timer = QTimer(self)
        self._poll_timer.setSingleShot(True)
        self._poll_timer.timeout.connect(self._on_poll_timer)
        self._pending_generation = 0
        self._timer.running_changed.connect(self._on_running_changed)

    # --- Properties -----------------------------------------------------
    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def polls(self) -> int:
        return self._polls

    def _set_state(self, new_state: GuardState) -> None:
        if new_state != self._state:
            self._state = new_state
            self.state_changed.emit(new_state)

    # --- Public API -----------------------------------------------------
    def set_enabled(self, enabled: bool) -> bool:
        if enabled == self._enabled:
            return self._enabled
        if enabled:
            if not self._source.available:
                _log.info("face-down guard requested but no accelerometer")
                self.unavailable.emit()
                return False
            if self._timer.state.running:
                # Require a fresh face-down confirmation before counting down
                self._timer.pause()
            self._enabled = True
            self._set_state("armed")
        else:
            self._enabled = False
            self._cancel()
            self._set_state("disabled")
        return enabled

    def toggle(self) -> bool:
        return self.set_enabled(not self._enabled)

    # --- Monitoring loop -----------------------------------------------
    def _on_running_changed(self, running: bool) -> None:
        if not self._enabled:
            return
        if running:
            self._start_monitoring()
        else:
            self._cancel()
            self._set_state("armed")

    def _start_monitoring(self) -> None:
        self._cancel()
        self._polls = 0
        self._set_state("monitoring")
        self._schedule(WARMUP_INTERVAL_MS)

    def _schedule(self, interval_ms: int) -> None:
        self._pending_generation = self._generation
        self._poll_timer.start(interval_ms)

    def _cancel(self) -> None:
        self._generation += 1
        self._poll_timer.stop()

    def _on_poll_timer(self) -> None:
        self._poll(self._pending_generation)

    def _poll(self, generation: int) -> None:
        if generation != self._generation:
            return
        if not self._enabled or self._timer.state.paused:
            return
        try:
            face_down = self._source.is_face_down()
        except SensorUnavailable:
            _log.warning("orientation source went away; disabling face-down guard")
            self.set_enabled(False)
            self.unavailable.emit()
            return
        self._polls += 1
        _log.debug("orientation poll", extra={"_json_poll": self._polls, "_json_face_down": face_down})
        if not face_down:
            self._cancel()
            self._timer.pause()
            self.tripped.emit()
            return
        self._schedule(WARMUP_INTERVAL_MS if self._polls < WARMUP_POLLS else STEADY_INTERVAL_MS)

    def shutdown(self) -> None:
        self._cancel()
        try:
            self._timer.running_changed.disconnect(self._on_running_changed)
        except TypeError:
            pass


__all__ = [
    "ShakeToggle",
    "FaceDownGuard",
    "GuardState",
    "WARMUP_POLLS",
    "WARMUP_INTERVAL_MS",
    "STEADY_INTERVAL_MS",
]
