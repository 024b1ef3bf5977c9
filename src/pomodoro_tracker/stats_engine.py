from __future__ import annotations

"""Statistics aggregation over the session log.

``compute_statistics`` is a pure function of (day records, period, today,
goal target); ``StatisticsEngine`` wires it to the stores and re-emits a fresh
snapshot whenever the log changes, the active period's goal changes, or the
caller switches period.

Headline numbers use the calendar-aligned period window (week start, first of
month, first of year, each through today). The chart series always cover the
fixed trailing windows: 7 days, 12 months, 5 years.
"""

from datetime import date, timedelta
import logging
from typing import Callable, Mapping, Optional

from PyQt6.QtCore import QLocale, QObject, pyqtSignal

from .goal_store import GoalStore
from .models import (
    BREAK_MINUTES_PER_SESSION,
    DEFAULT_GOALS,
    PERIODS,
    DaySession,
    Period,
    StatisticsSnapshot,
)
from .session_log import SessionLog

DayProvider = Callable[[], date]

_log = logging.getLogger(__name__)


def locale_first_weekday() -> int:
    """First day of week for the system locale as ``date.weekday()`` (Mon=0)."""
    return QLocale.system().firstDayOfWeek().value - 1


def period_start(period: Period, today: date, first_weekday: int = 0) -> date:
    if period == "weekly":
        return today - timedelta(days=(today.weekday() - first_weekday) % 7)
    if period == "monthly":
        return today.replace(day=1)
    if period == "yearly":
        return today.replace(month=1, day=1)
    raise ValueError(f"unknown period: {period!r}")


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def weekly_series(days: Mapping[date, DaySession], today: date) -> tuple[int, ...]:
    out = []
    for back in range(6, -1, -1):
        record = days.get(today - timedelta(days=back))
        out.append(record.total_focus_minutes if record else 0)
    return tuple(out)


def monthly_series(days: Mapping[date, DaySession], today: date) -> tuple[int, ...]:
    per_month: dict[tuple[int, int], int] = {}
    for d, record in days.items():
        per_month[(d.year, d.month)] = per_month.get((d.year, d.month), 0) + record.total_focus_minutes
    return tuple(
        per_month.get(_shift_month(today.year, today.month, -back), 0) for back in range(11, -1, -1)
    )


def yearly_series(days: Mapping[date, DaySession], today: date) -> tuple[int, ...]:
    per_year: dict[int, int] = {}
    for d, record in days.items():
        per_year[d.year] = per_year.get(d.year, 0) + record.total_focus_minutes
    return tuple(per_year.get(today.year - back, 0) for back in range(4, -1, -1))


def activity_distribution(total_sessions: int, total_minutes: int) -> dict[str, int]:
    # "other" only ever holds the floor-rounding remainder
    if total_minutes <= 0:
        return {"work": 0, "break": 0, "other": 100}
    break_minutes = total_sessions * BREAK_MINUTES_PER_SESSION
    combined = total_minutes + break_minutes
    work_pct = total_minutes * 100 // combined
    break_pct = break_minutes * 100 // combined
    return {"work": work_pct, "break": break_pct, "other": 100 - work_pct - break_pct}


def empty_snapshot(period: Period, goal_target: int | None = None) -> StatisticsSnapshot:
    return StatisticsSnapshot(
        period=period,
        goal_target=DEFAULT_GOALS[period] if goal_target is None else goal_target,
    )


def compute_statistics(
    days: Mapping[date, DaySession],
    period: Period,
    today: date,
    goal_target: int,
    first_weekday: int = 0,
) -> StatisticsSnapshot:
    start = period_start(period, today, first_weekday)
    in_window = [record for d, record in days.items() if start <= d <= today]
    total_sessions = sum(r.completed_sessions for r in in_window)
    total_minutes = sum(r.total_focus_minutes for r in in_window)
    days_elapsed = (today - start).days + 1
    return StatisticsSnapshot(
        period=period,
        total_sessions=total_sessions,
        total_focus_hours=total_minutes // 60,
        average_daily_minutes=total_minutes // days_elapsed if days_elapsed > 0 else 0,
        weekly_series=weekly_series(days, today),
        monthly_series=monthly_series(days, today),
        yearly_series=yearly_series(days, today),
        activity_distribution=activity_distribution(total_sessions, total_minutes),
        goal_target=goal_target,
        goal_completed=total_sessions,
    )


class StatisticsEngine(QObject):
    snapshot_ready = pyqtSignal(object)  # StatisticsSnapshot

    def __init__(
        self,
        session_log: SessionLog,
        goal_store: GoalStore,
        period: Period = "weekly",
        today_provider: Optional[DayProvider] = None,
        first_weekday: Optional[int] = None,
    ):
        super().__init__()
        if period not in PERIODS:
            raise ValueError(f"unknown period: {period!r}")
        self._session_log = session_log
        self._goal_store = goal_store
        self._period: Period = period
        self._today: DayProvider = today_provider or date.today
        self._first_weekday = locale_first_weekday() if first_weekday is None else first_weekday
        self._snapshot: StatisticsSnapshot | None = None
        self._session_log.changed.connect(self._on_log_changed)
        self._goal_store.changed.connect(self._on_goal_changed)

    @property
    def period(self) -> Period:
        return self._period

    @property
    def snapshot(self) -> StatisticsSnapshot:
        if self._snapshot is None:
            self._snapshot = self._compute()
        return self._snapshot

    def set_period(self, period: Period) -> None:
        if period not in PERIODS:
            raise ValueError(f"unknown period: {period!r}")
        if period == self._period:
            return
        self._period = period
        self.refresh()

    def refresh(self) -> StatisticsSnapshot:
        self._snapshot = self._compute()
        self.snapshot_ready.emit(self._snapshot)
        return self._snapshot

    # --- Slots --------------------------------------------------------
    def _on_log_changed(self, _day_session) -> None:
        self.refresh()

    def _on_goal_changed(self, period: str, _target: int) -> None:
        if period == self._period:
            self.refresh()

    def _compute(self) -> StatisticsSnapshot:
        try:
            days = self._session_log.read_all()
            target = self._goal_store.get(self._period)
            return compute_statistics(days, self._period, self._today(), target, self._first_weekday)
        except Exception as e:
            _log.warning("statistics unavailable, showing empty snapshot: %s", e)
            return empty_snapshot(self._period)


__all__ = [
    "StatisticsEngine",
    "compute_statistics",
    "empty_snapshot",
    "activity_distribution",
    "period_start",
    "weekly_series",
    "monthly_series",
    "yearly_series",
    "locale_first_weekday",
]
