from __future__ import annotations

"""Dataclass models for timer state, persisted day records and statistics."""

from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Literal, Mapping, Optional

Phase = Literal["work", "short_break", "long_break"]
Period = Literal["weekly", "monthly", "yearly"]

PHASES: tuple[Phase, ...] = ("work", "short_break", "long_break")
PERIODS: tuple[Period, ...] = ("weekly", "monthly", "yearly")

DEFAULT_GOALS: dict[str, int] = {"weekly": 20, "monthly": 80, "yearly": 1000}

# Closed ranges, inclusive on both ends
WORK_RANGE = (1, 60)
SHORT_BREAK_RANGE = (1, 30)
LONG_BREAK_RANGE = (5, 60)
CYCLE_RANGE = (1, 15)

# Estimated break attached to each completed session when splitting activity
BREAK_MINUTES_PER_SESSION = 5


@dataclass(slots=True, frozen=True)
class Settings:
    work_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    cycle_length: int = 4
    notifications_enabled: bool = False

    def invalid_fields(self) -> list[str]:
        checks = (
            ("work_minutes", self.work_minutes, WORK_RANGE),
            ("short_break_minutes", self.short_break_minutes, SHORT_BREAK_RANGE),
            ("long_break_minutes", self.long_break_minutes, LONG_BREAK_RANGE),
            ("cycle_length", self.cycle_length, CYCLE_RANGE),
        )
        return [name for name, value, (lo, hi) in checks if not (lo <= value <= hi)]

    def is_valid(self) -> bool:
        return not self.invalid_fields()

    def phase_seconds(self, phase: Phase) -> int:
        if phase == "work":
            return self.work_minutes * 60
        if phase == "short_break":
            return self.short_break_minutes * 60
        return self.long_break_minutes * 60


@dataclass(slots=True, frozen=True)
class TimerState:
    time_remaining: int
    total_time: int
    paused: bool = True
    current_cycle: int = 1
    total_cycles: int = 4
    phase: Phase = "work"
    error: Optional[str] = None

    @property
    def progress(self) -> float:
        if self.total_time <= 0:
            return 0.0
        return self.time_remaining / self.total_time

    @property
    def minutes(self) -> int:
        return self.time_remaining // 60

    @property
    def seconds(self) -> int:
        return self.time_remaining % 60

    @property
    def running(self) -> bool:
        return not self.paused


@dataclass(slots=True, frozen=True)
class DaySession:
    day: date
    hours: int = 0
    minutes: int = 0
    completed_sessions: int = 0

    @property
    def total_focus_minutes(self) -> int:
        return self.hours * 60 + self.minutes

    def with_session(self, duration_minutes: int) -> "DaySession":
        total = self.total_focus_minutes + duration_minutes
        return DaySession(
            day=self.day,
            hours=total // 60,
            minutes=total % 60,
            completed_sessions=self.completed_sessions + 1,
        )


@dataclass(slots=True, frozen=True)
class StatisticsSnapshot:
    period: Period
    total_sessions: int = 0
    total_focus_hours: int = 0
    average_daily_minutes: int = 0
    weekly_series: tuple[int, ...] = (0,) * 7
    monthly_series: tuple[int, ...] = (0,) * 12
    yearly_series: tuple[int, ...] = (0,) * 5
    activity_distribution: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({"work": 0, "break": 0, "other": 100})
    )
    goal_target: int = 20
    goal_completed: int = 0

    def __post_init__(self) -> None:
        # Snapshots are shared between subscribers
        if not isinstance(self.activity_distribution, MappingProxyType):
            object.__setattr__(self, "activity_distribution", MappingProxyType(dict(self.activity_distribution)))

    @property
    def goal_progress(self) -> float:
        if self.goal_target <= 0:
            return 0.0
        return self.goal_completed / self.goal_target

    @property
    def clamped_progress(self) -> float:
        return min(1.0, max(0.0, self.goal_progress))


@dataclass(slots=True, frozen=True)
class HistoricalEvent:
    year: int
    description: str


__all__ = [
    "Phase",
    "Period",
    "PHASES",
    "PERIODS",
    "DEFAULT_GOALS",
    "WORK_RANGE",
    "SHORT_BREAK_RANGE",
    "LONG_BREAK_RANGE",
    "CYCLE_RANGE",
    "BREAK_MINUTES_PER_SESSION",
    "Settings",
    "TimerState",
    "DaySession",
    "StatisticsSnapshot",
    "HistoricalEvent",
]
