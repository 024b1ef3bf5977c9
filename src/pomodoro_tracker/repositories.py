from __future__ import annotations

"""Repository helper functions for the settings, day-session and cache tables."""

from datetime import date
import logging

from .database_manager import DatabaseManager
from .models import DaySession

_log = logging.getLogger(__name__)


# --- Settings ---------------------------------------------------------------

def get_setting(db: DatabaseManager, key: str) -> str | None:
    row = db.query_one("SELECT value FROM settings WHERE key=?", (key,))
    return row["value"] if row else None


def set_setting(db: DatabaseManager, key: str, value: str) -> None:
    set_settings(db, {key: value})


def set_settings(db: DatabaseManager, values: dict[str, str]) -> None:
    """Write several keys in one transaction (all or nothing)."""
    with db.transaction() as conn:
        conn.executemany(
            "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            list(values.items()),
        )


# --- Day sessions -----------------------------------------------------------

def _row_to_day_session(row) -> DaySession:
    counts = (row["hours"], row["minutes"], row["completed_sessions"])
    # SQLite keeps non-numeric text in INTEGER columns as-is
    if not all(type(v) is int and v >= 0 for v in counts):
        raise ValueError(f"non-integer or negative counts {counts!r}")
    return DaySession(
        day=date.fromisoformat(row["day"]),
        hours=counts[0],
        minutes=counts[1],
        completed_sessions=counts[2],
    )


def get_day_session(db: DatabaseManager, day: date) -> DaySession | None:
    row = db.query_one("SELECT * FROM day_sessions WHERE day=?", (day.isoformat(),))
    if not row:
        return None
    return _row_to_day_session(row)


def list_day_sessions(db: DatabaseManager) -> dict[date, DaySession]:
    rows = db.query_all("SELECT * FROM day_sessions ORDER BY day")
    out: dict[date, DaySession] = {}
    for r in rows:
        try:
            session = _row_to_day_session(r)
        except (TypeError, ValueError) as e:
            _log.warning("skipping unreadable day row %r: %s", r["day"], e)
            continue
        out[session.day] = session
    return out


def add_completed_session(db: DatabaseManager, day: date, duration_minutes: int) -> DaySession:
    """Merge one completed session into ``day`` (creating the row if needed).

    The read and the write happen inside a single transaction so concurrent
    callers never lose an increment.
    """
    with db.transaction(immediate=True) as conn:
        row = conn.execute("SELECT * FROM day_sessions WHERE day=?", (day.isoformat(),)).fetchone()
        existing = _row_to_day_session(row) if row else DaySession(day=day)
        updated = existing.with_session(duration_minutes)
        conn.execute(
            """
            INSERT INTO day_sessions (day, hours, minutes, completed_sessions)
            VALUES (?,?,?,?)
            ON CONFLICT(day) DO UPDATE SET
                hours=excluded.hours,
                minutes=excluded.minutes,
                completed_sessions=excluded.completed_sessions,
                updated_at=strftime('%Y-%m-%dT%H:%M:%fZ','now')
            """,
            (day.isoformat(), updated.hours, updated.minutes, updated.completed_sessions),
        )
    return updated


# --- Historical events cache ------------------------------------------------

def get_cached_payload(db: DatabaseManager, cache_key: str) -> tuple[str, str] | None:
    row = db.query_one(
        "SELECT payload, fetched_at FROM historical_events_cache WHERE cache_key=?",
        (cache_key,),
    )
    if not row:
        return None
    return row["payload"], row["fetched_at"]


def put_cached_payload(db: DatabaseManager, cache_key: str, payload: str, fetched_at: str) -> None:
    with db.transaction() as conn:
        conn.execute(
            """
            INSERT INTO historical_events_cache (cache_key, payload, fetched_at) VALUES (?,?,?)
            ON CONFLICT(cache_key) DO UPDATE SET payload=excluded.payload, fetched_at=excluded.fetched_at
            """,
            (cache_key, payload, fetched_at),
        )


def delete_cached_payload(db: DatabaseManager, cache_key: str | None = None) -> None:
    with db.transaction() as conn:
        if cache_key is None:
            conn.execute("DELETE FROM historical_events_cache")
        else:
            conn.execute("DELETE FROM historical_events_cache WHERE cache_key=?", (cache_key,))


__all__ = [
    # Settings
    "get_setting",
    "set_setting",
    "set_settings",
    # Day sessions
    "get_day_session",
    "list_day_sessions",
    "add_completed_session",
    # Cache
    "get_cached_payload",
    "put_cached_payload",
    "delete_cached_payload",
]
