from __future__ import annotations

"""Timer page: countdown, phase / cycle indicator and sensor toggles."""

from PyQt6.QtCore import Qt, QSignalBlocker
from PyQt6.QtWidgets import (
    QCheckBox,
    QHBoxLayout,
    QLabel,
    QProgressBar,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from .models import TimerState
from .notification_manager import PHASE_LABELS, completion_message, format_remaining
from .pomodoro import PomodoroService
from .sensor_policy import FaceDownGuard, ShakeToggle
from .toast import show_toast


class TimerPage(QWidget):  # pragma: no cover UI heavy
    def __init__(self, timer: PomodoroService, shake: ShakeToggle, guard: FaceDownGuard):
        super().__init__()
        self._timer = timer
        self._shake = shake
        self._guard = guard

        self.phase_label = QLabel()
        self.phase_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.timer_label = QLabel("00:00")
        self.timer_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        font = self.timer_label.font()
        font.setPointSize(36)
        self.timer_label.setFont(font)
        self.cycle_label = QLabel()
        self.cycle_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.progress = QProgressBar()
        self.progress.setRange(0, 1000)
        self.progress.setTextVisible(False)
        self.error_label = QLabel()
        self.error_label.setStyleSheet("color: #a33;")
        self.error_label.hide()

        self.btn_play = QPushButton("Play")
        self.btn_skip = QPushButton("Skip")
        self.btn_restart = QPushButton("Restart")
        btn_row = QHBoxLayout()
        for b in (self.btn_restart, self.btn_play, self.btn_skip):
            btn_row.addWidget(b)

        self.shake_cb = QCheckBox("Shake to play / pause")
        self.face_down_cb = QCheckBox("Face-down to focus")
        self.face_down_status = QLabel("off")
        sensor_row = QHBoxLayout()
        sensor_row.addWidget(self.shake_cb)
        sensor_row.addWidget(self.face_down_cb)
        sensor_row.addWidget(self.face_down_status)
        sensor_row.addStretch(1)

        layout = QVBoxLayout(self)
        layout.addWidget(self.phase_label)
        layout.addWidget(self.timer_label)
        layout.addWidget(self.progress)
        layout.addWidget(self.cycle_label)
        layout.addLayout(btn_row)
        layout.addWidget(self.error_label)
        layout.addLayout(sensor_row)
        layout.addStretch(1)

        self.btn_play.clicked.connect(self._timer.toggle)
        self.btn_skip.clicked.connect(self._timer.skip)
        self.btn_restart.clicked.connect(self._timer.restart)
        self.shake_cb.toggled.connect(self._on_shake_toggled)
        self.face_down_cb.toggled.connect(self._on_face_down_toggled)

        self._timer.state_changed.connect(self._render)
        self._timer.phase_completed.connect(self._on_phase_completed)
        self._timer.error.connect(lambda msg: show_toast(self, msg, kind="error"))
        self._shake.toggled.connect(lambda action: show_toast(self, f"Shake detected: {action}"))
        self._shake.unavailable.connect(lambda: self._sensor_unavailable(self.shake_cb))
        self._guard.unavailable.connect(lambda: self._sensor_unavailable(self.face_down_cb))
        self._guard.state_changed.connect(self.face_down_status.setText)
        self._guard.tripped.connect(lambda: show_toast(self, "Phone lifted: timer paused"))
        self._render(self._timer.state)

    # --- Rendering -----------------------------------------------------
    def _render(self, state: TimerState) -> None:
        self.phase_label.setText(PHASE_LABELS[state.phase])
        self.timer_label.setText(format_remaining(state.time_remaining))
        self.cycle_label.setText(f"Pomodoro {state.current_cycle} / {state.total_cycles}")
        self.progress.setValue(int(state.progress * 1000))
        self.btn_play.setText("Pause" if state.running else "Play")
        if state.error:
            self.error_label.setText(state.error)
            self.error_label.show()
        else:
            self.error_label.hide()

    def _on_phase_completed(self, finished: str, _next: str) -> None:
        show_toast(self, completion_message(finished))

    # --- Sensors -------------------------------------------------------
    def _on_shake_toggled(self, checked: bool) -> None:
        self._shake.set_enabled(checked)

    def _on_face_down_toggled(self, checked: bool) -> None:
        self._guard.set_enabled(checked)

    def _sensor_unavailable(self, checkbox: QCheckBox) -> None:
        with QSignalBlocker(checkbox):
            checkbox.setChecked(False)
        checkbox.setEnabled(False)
        checkbox.setToolTip("No motion sensor available on this device")
        show_toast(self, "Motion sensor unavailable", kind="error")


__all__ = ["TimerPage"]
