from __future__ import annotations

"""Statistics page.

Features:
 - Period selector (weekly / monthly / yearly) driving ``StatisticsEngine``.
 - Headline numbers: sessions, focus hours, daily average.
 - Goal progress bar with an editable target for the selected period.
 - Charts: last 7 days, last 12 months, last 5 years, activity split donut.

Design notes:
 - Renders from snapshots pushed by the engine; never queries the database.
 - If matplotlib is not available at runtime the page keeps the numbers and
   shows a placeholder instead of charts.
"""

from datetime import date, timedelta

from PyQt6.QtWidgets import (
    QComboBox,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QProgressBar,
    QPushButton,
    QSizePolicy,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

try:  # pragma: no cover - import guard
    from matplotlib.backends.backend_qtagg import FigureCanvasQTAgg as FigureCanvas
    from matplotlib.figure import Figure
except ImportError:  # pragma: no cover
    FigureCanvas = object  # type: ignore
    Figure = object  # type: ignore

from .errors import PersistenceError, ValidationError
from .goal_store import GoalStore
from .models import PERIODS, StatisticsSnapshot
from .stats_engine import StatisticsEngine
from .toast import show_toast

PERIOD_LABELS = {"weekly": "Weekly", "monthly": "Monthly", "yearly": "Yearly"}


def weekly_labels(today: date) -> list[str]:
    return [(today - timedelta(days=back)).strftime("%a") for back in range(6, -1, -1)]


def monthly_labels(today: date) -> list[str]:
    out = []
    for back in range(11, -1, -1):
        idx = today.year * 12 + (today.month - 1) - back
        out.append(date(idx // 12, idx % 12 + 1, 1).strftime("%b"))
    return out


def yearly_labels(today: date) -> list[str]:
    return [str(today.year - back) for back in range(4, -1, -1)]


class StatisticsPage(QWidget):  # pragma: no cover heavy UI
    def __init__(self, engine: StatisticsEngine, goals: GoalStore):
        super().__init__()
        self._engine = engine
        self._goals = goals

        self.period_combo = QComboBox()
        for p in PERIODS:
            self.period_combo.addItem(PERIOD_LABELS[p], p)
        self.period_combo.setCurrentIndex(PERIODS.index(engine.period))

        self.sessions_label = QLabel()
        self.hours_label = QLabel()
        self.average_label = QLabel()
        self.goal_label = QLabel()
        self.goal_bar = QProgressBar()
        self.goal_bar.setRange(0, 100)
        self.goal_spin = QSpinBox()
        self.goal_spin.setRange(1, 100_000)
        self.btn_goal = QPushButton("Set Goal")

        top = QHBoxLayout()
        top.addWidget(QLabel("Period:"))
        top.addWidget(self.period_combo)
        top.addStretch(1)

        numbers = QHBoxLayout()
        for w in (self.sessions_label, self.hours_label, self.average_label):
            numbers.addWidget(w)
        numbers.addStretch(1)

        goal_row = QHBoxLayout()
        goal_row.addWidget(self.goal_label)
        goal_row.addWidget(self.goal_bar, 1)
        goal_row.addWidget(self.goal_spin)
        goal_row.addWidget(self.btn_goal)

        charts = QGridLayout()
        self.week_canvas = self._build_canvas()
        self.month_canvas = self._build_canvas()
        self.year_canvas = self._build_canvas()
        self.dist_canvas = self._build_canvas()
        for i, canvas in enumerate((self.week_canvas, self.month_canvas, self.year_canvas, self.dist_canvas)):
            charts.addWidget(canvas, i // 2, i % 2)

        layout = QVBoxLayout(self)
        layout.addLayout(top)
        layout.addLayout(numbers)
        layout.addLayout(goal_row)
        layout.addLayout(charts, 1)

        self.period_combo.currentIndexChanged.connect(self._on_period_changed)
        self.btn_goal.clicked.connect(self._on_goal_set)
        self._engine.snapshot_ready.connect(self._render)
        self._render(self._engine.snapshot)

    # --- Helpers ------------------------------------------------------
    def _build_canvas(self):  # pragma: no cover UI utility
        if Figure is object:
            return QLabel("matplotlib unavailable")
        fig = Figure(figsize=(3, 2.4))
        canvas = FigureCanvas(fig)
        canvas.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        return canvas

    # --- Slots --------------------------------------------------------
    def _on_period_changed(self, _index: int) -> None:
        self._engine.set_period(self.period_combo.currentData())

    def _on_goal_set(self) -> None:
        try:
            self._goals.set(self._engine.period, self.goal_spin.value())
        except (ValidationError, PersistenceError) as e:
            show_toast(self, f"Goal could not be updated: {e}", kind="error")

    def _render(self, snap: StatisticsSnapshot) -> None:
        self.sessions_label.setText(f"Pomodoros: {snap.total_sessions}")
        self.hours_label.setText(f"Focus: {snap.total_focus_hours}h")
        self.average_label.setText(f"Daily avg: {snap.average_daily_minutes}m")
        self.goal_label.setText(f"Goal {snap.goal_completed}/{snap.goal_target}")
        self.goal_bar.setValue(int(snap.clamped_progress * 100))
        self.goal_spin.setValue(snap.goal_target)
        self._render_charts(snap)

    def _render_charts(self, snap: StatisticsSnapshot) -> None:  # pragma: no cover heavy UI
        if Figure is object:
            return
        today = date.today()
        for canvas, title, labels, values in (
            (self.week_canvas, "Last 7 days (min)", weekly_labels(today), snap.weekly_series),
            (self.month_canvas, "Last 12 months (h)", monthly_labels(today), [v / 60 for v in snap.monthly_series]),
            (self.year_canvas, "Last 5 years (h)", yearly_labels(today), [v / 60 for v in snap.yearly_series]),
        ):
            fig: Figure = canvas.figure  # type: ignore
            fig.clear()
            ax = fig.add_subplot(111)
            ax.bar(labels, values, color="#e4572e")
            ax.set_title(title, fontsize=9)
            ax.tick_params(labelsize=7)
            fig.tight_layout()
            canvas.draw()  # type: ignore

        fig_dist: Figure = self.dist_canvas.figure  # type: ignore
        fig_dist.clear()
        dist = {k: v for k, v in snap.activity_distribution.items() if v > 0}
        if dist:
            ax = fig_dist.add_subplot(111)
            ax.pie(list(dist.values()), labels=[k.title() for k in dist], wedgeprops=dict(width=0.45))
            ax.set_title("Activity", fontsize=9)
        fig_dist.tight_layout()
        self.dist_canvas.draw()  # type: ignore


__all__ = ["StatisticsPage", "weekly_labels", "monthly_labels", "yearly_labels"]
