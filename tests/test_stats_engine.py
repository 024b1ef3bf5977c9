import dataclasses
from datetime import date

import pytest

from pomodoro_tracker.goal_store import GoalStore
from pomodoro_tracker.models import DaySession
from pomodoro_tracker.session_log import SessionLog
from pomodoro_tracker.stats_engine import (
    StatisticsEngine,
    activity_distribution,
    compute_statistics,
    monthly_series,
    period_start,
    weekly_series,
    yearly_series,
)

WEDNESDAY = date(2025, 3, 12)


def days_of(*records: DaySession) -> dict[date, DaySession]:
    return {r.day: r for r in records}


def three_day_week() -> dict[date, DaySession]:
    return days_of(
        DaySession(date(2025, 3, 10), 0, 50, 2),
        DaySession(date(2025, 3, 11), 0, 50, 2),
        DaySession(date(2025, 3, 12), 0, 50, 2),
    )


def test_weekly_snapshot_headline_numbers():
    snap = compute_statistics(three_day_week(), "weekly", WEDNESDAY, 20)
    assert snap.total_sessions == 6
    assert snap.total_focus_hours == 2
    assert snap.average_daily_minutes == 50
    assert snap.goal_completed == 6
    assert snap.goal_progress == pytest.approx(0.3)
    assert snap.activity_distribution == {"work": 83, "break": 16, "other": 1}


@pytest.mark.parametrize("period", ["weekly", "monthly", "yearly"])
def test_empty_log_snapshot(period):
    snap = compute_statistics({}, period, WEDNESDAY, 20)
    assert snap.total_sessions == 0
    assert snap.total_focus_hours == 0
    assert snap.average_daily_minutes == 0
    assert snap.activity_distribution == {"work": 0, "break": 0, "other": 100}
    assert snap.weekly_series == (0,) * 7
    assert snap.monthly_series == (0,) * 12
    assert snap.yearly_series == (0,) * 5


def test_distribution_always_sums_to_100():
    for sessions, minutes in [(1, 1), (3, 70), (7, 199), (12, 300), (1, 25)]:
        dist = activity_distribution(sessions, minutes)
        assert sum(dist.values()) == 100
        assert all(v >= 0 for v in dist.values())


def test_period_start_respects_week_start():
    assert period_start("weekly", WEDNESDAY) == date(2025, 3, 10)
    # Sunday-first locales
    assert period_start("weekly", WEDNESDAY, first_weekday=6) == date(2025, 3, 9)
    assert period_start("monthly", WEDNESDAY) == date(2025, 3, 1)
    assert period_start("yearly", WEDNESDAY) == date(2025, 1, 1)


def test_sunday_session_counts_only_for_sunday_first_week():
    days = days_of(DaySession(date(2025, 3, 9), 0, 25, 1))
    assert compute_statistics(days, "weekly", WEDNESDAY, 20, first_weekday=0).total_sessions == 0
    sunday_first = compute_statistics(days, "weekly", WEDNESDAY, 20, first_weekday=6)
    assert sunday_first.total_sessions == 1
    assert sunday_first.average_daily_minutes == 25 // 4


def test_sessions_outside_window_are_excluded():
    days = three_day_week()
    days[date(2025, 2, 28)] = DaySession(date(2025, 2, 28), 2, 0, 4)
    days[date(2024, 12, 31)] = DaySession(date(2024, 12, 31), 1, 0, 2)
    assert compute_statistics(days, "weekly", WEDNESDAY, 20).total_sessions == 6
    monthly = compute_statistics(days, "monthly", WEDNESDAY, 80)
    assert monthly.total_sessions == 6
    assert monthly.average_daily_minutes == 150 // 12
    yearly = compute_statistics(days, "yearly", WEDNESDAY, 1000)
    assert yearly.total_sessions == 10
    assert yearly.total_focus_hours == 4


def test_series_windows():
    days = three_day_week()
    days[date(2025, 1, 5)] = DaySession(date(2025, 1, 5), 1, 0, 2)
    days[date(2024, 4, 1)] = DaySession(date(2024, 4, 1), 0, 30, 1)
    days[date(2024, 3, 31)] = DaySession(date(2024, 3, 31), 0, 45, 1)
    days[date(2020, 6, 1)] = DaySession(date(2020, 6, 1), 0, 10, 1)

    assert weekly_series(days, WEDNESDAY) == (0, 0, 0, 0, 50, 50, 50)

    months = monthly_series(days, WEDNESDAY)
    assert len(months) == 12
    # April 2024 .. March 2025; March 2024 falls outside the window
    assert months[0] == 30
    assert months[9] == 60
    assert months[11] == 150
    assert sum(months) == 240

    years = yearly_series(days, WEDNESDAY)
    # 2021 .. 2025
    assert years == (0, 0, 0, 75, 210)


def test_goal_progress_can_exceed_one_but_clamps_for_display():
    snap = compute_statistics(three_day_week(), "weekly", WEDNESDAY, 4)
    assert snap.goal_progress == pytest.approx(1.5)
    assert snap.clamped_progress == 1.0


def make_engine(db, today, **kwargs):
    log = SessionLog(db)
    goals = GoalStore(db)
    engine = StatisticsEngine(log, goals, today_provider=today, first_weekday=0, **kwargs)
    return engine, log, goals


def test_engine_recomputes_on_log_change(db, qtbot, today):
    engine, log, _ = make_engine(db, today)
    assert engine.snapshot.total_sessions == 0
    seen = []
    engine.snapshot_ready.connect(seen.append)
    log.append_session(today(), 25)
    assert len(seen) == 1
    assert seen[0].total_sessions == 1
    assert engine.snapshot.total_sessions == 1


def test_engine_goal_changes_only_refresh_active_period(db, qtbot, today):
    engine, _, goals = make_engine(db, today)
    seen = []
    engine.snapshot_ready.connect(seen.append)
    goals.set("monthly", 50)
    assert seen == []
    goals.set("weekly", 10)
    assert len(seen) == 1
    assert seen[0].goal_target == 10


def test_engine_period_switch(db, qtbot, today):
    engine, log, _ = make_engine(db, today)
    log.append_session(date(2025, 3, 1), 25)
    seen = []
    engine.snapshot_ready.connect(seen.append)
    engine.set_period("weekly")
    assert seen == []
    engine.set_period("monthly")
    assert len(seen) == 1
    assert (seen[0].period, seen[0].total_sessions, seen[0].goal_target) == ("monthly", 1, 80)
    with pytest.raises(ValueError):
        engine.set_period("daily")


def test_engine_read_failure_yields_empty_snapshot(db, qtbot, today):
    engine, log, _ = make_engine(db, today, period="yearly")
    log.append_session(today(), 25)
    conn = db.connect()
    with conn:
        conn.execute("DROP TABLE day_sessions")
    snap = engine.refresh()
    assert snap.period == "yearly"
    assert snap.total_sessions == 0
    assert snap.activity_distribution == {"work": 0, "break": 0, "other": 100}
    assert snap.goal_target == 1000


def test_snapshot_and_day_records_are_immutable():
    snap = compute_statistics(three_day_week(), "weekly", WEDNESDAY, 20)
    with pytest.raises(TypeError):
        snap.activity_distribution["other"] = 50  # type: ignore[index]
    assert snap.activity_distribution == {"work": 83, "break": 16, "other": 1}

    record = DaySession(date(2025, 3, 10), 0, 50, 2)
    with pytest.raises(dataclasses.FrozenInstanceError):
        record.minutes = 10  # type: ignore[misc]
    assert record.with_session(25).total_focus_minutes == 75
    assert record.minutes == 50
