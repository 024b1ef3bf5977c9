from datetime import date

import pytest

from pomodoro_tracker.database_manager import DatabaseManager
from pomodoro_tracker.repositories import (
    add_completed_session,
    get_day_session,
    get_setting,
    list_day_sessions,
    set_setting,
    set_settings,
)


def test_init_idempotent(db: DatabaseManager):
    # Second call should not raise and should not duplicate migrations
    db.init_db()
    rows = db.query_all("SELECT COUNT(*) as c FROM schema_migrations")
    assert rows[0]["c"] == 2
    assert db.schema_version() == 2


def test_transaction_rolls_back_on_error(db: DatabaseManager):
    with pytest.raises(RuntimeError):
        with db.transaction(immediate=True) as conn:
            conn.execute("INSERT INTO settings(key, value) VALUES('pomo.work', '40')")
            raise RuntimeError("boom")
    assert get_setting(db, "pomo.work") is None


def test_settings_roundtrip(db):
    assert get_setting(db, "pomo.work") is None
    set_setting(db, "pomo.work", "30")
    set_settings(db, {"pomo.work": "35", "pomo.short": "7"})
    assert get_setting(db, "pomo.work") == "35"
    assert get_setting(db, "pomo.short") == "7"


def test_add_session_creates_day(db):
    d = date(2025, 3, 10)
    assert get_day_session(db, d) is None
    updated = add_completed_session(db, d, 25)
    assert (updated.hours, updated.minutes, updated.completed_sessions) == (0, 25, 1)
    stored = get_day_session(db, d)
    assert stored is not None and stored.total_focus_minutes == 25


def test_add_session_rolls_minutes_into_hours(db):
    d = date(2025, 3, 10)
    add_completed_session(db, d, 50)
    add_completed_session(db, d, 25)
    stored = get_day_session(db, d)
    assert stored is not None
    assert stored.hours == 1 and stored.minutes == 15
    assert stored.completed_sessions == 2
    assert stored.total_focus_minutes == 75


def test_list_day_sessions_skips_unreadable_rows(db):
    add_completed_session(db, date(2025, 3, 10), 25)
    conn = db.connect()
    with conn:
        conn.execute("INSERT INTO day_sessions (day, hours, minutes, completed_sessions) VALUES ('garbage', 0, 5, 1)")
    days = list_day_sessions(db)
    assert list(days) == [date(2025, 3, 10)]
