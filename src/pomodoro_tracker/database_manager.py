from __future__ import annotations

"""Database management and migrations for Pomodoro Tracker.

Schema changes are plain functions appended to ``MIGRATIONS``; the applied
versions are tracked in ``schema_migrations`` so ``init_db`` is idempotent.

Tables:
 - ``settings``: key/value configuration (durations, goals, UI flags).
 - ``day_sessions``: one row per calendar day with accumulated focus time.
 - ``historical_events_cache``: cached "on this day" payloads per month/day.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
import sqlite3
import threading
from typing import Callable, Iterable, Iterator


@dataclass(slots=True)
class DBConfig:
    path: Path
    pragmas: tuple[tuple[str, str | int], ...] = (
        ("journal_mode", "WAL"),
        ("foreign_keys", 1),
        ("synchronous", "NORMAL"),
    )


class DatabaseManager:
    def __init__(self, config: DBConfig):
        self.config = config
        self._conn: sqlite3.Connection | None = None
        # Serialises read-merge-write sequences issued by the stores
        self.write_lock = threading.RLock()

    # --- Low level helpers -------------------------------------------------
    def connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self.config.path.parent.mkdir(parents=True, exist_ok=True)
            # History refreshes run on a worker thread; all access goes through write_lock
            self._conn = sqlite3.connect(self.config.path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._apply_pragmas(self._conn)
        return self._conn

    def _apply_pragmas(self, conn: sqlite3.Connection) -> None:
        cur = conn.cursor()
        for key, value in self.config.pragmas:
            cur.execute(f"PRAGMA {key}={value}")
        cur.close()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # --- Migration system --------------------------------------------------
    def init_db(self) -> None:
        conn = self.connect()
        with conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now'))
                )
                """
            )

        applied_versions = self._get_applied_versions()
        for version, migration_fn in enumerate(MIGRATIONS, start=1):
            if version in applied_versions:
                continue
            with conn:
                migration_fn(conn)
                conn.execute(
                    "INSERT INTO schema_migrations (version) VALUES (?)", (version,)
                )

    def _get_applied_versions(self) -> set[int]:
        conn = self.connect()
        cur = conn.execute("SELECT version FROM schema_migrations")
        return {row[0] for row in cur.fetchall()}

    def schema_version(self) -> int:
        row = self.query_one("SELECT MAX(version) AS v FROM schema_migrations")
        return (row["v"] or 0) if row else 0

    @contextmanager
    def transaction(self, *, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """Run the block under ``write_lock`` as one commit (or rollback on error).

        ``immediate`` takes the SQLite write lock up front so a read-then-write
        sequence cannot interleave with another writer.
        """
        conn = self.connect()
        with self.write_lock, conn:
            if immediate and not conn.in_transaction:
                conn.execute("BEGIN IMMEDIATE")
            yield conn

    # --- Convenience -------------------------------------------------------
    def execute(self, sql: str, params: Iterable | None = None) -> sqlite3.Cursor:
        conn = self.connect()
        cur = conn.cursor()
        cur.execute(sql, params or [])
        return cur

    def query_all(self, sql: str, params: Iterable | None = None) -> list[sqlite3.Row]:
        with self.write_lock:
            cur = self.execute(sql, params)
            return cur.fetchall()

    def query_one(self, sql: str, params: Iterable | None = None) -> sqlite3.Row | None:
        with self.write_lock:
            cur = self.execute(sql, params)
            return cur.fetchone()


# --- Migration definitions --------------------------------------------------

def migration_001_create_session_tables(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE day_sessions (
            day TEXT PRIMARY KEY,  -- YYYY-MM-DD
            hours INTEGER NOT NULL DEFAULT 0,
            minutes INTEGER NOT NULL DEFAULT 0 CHECK (minutes BETWEEN 0 AND 59),
            completed_sessions INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now'))
        );
        """
    )


def migration_002_add_history_cache(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS historical_events_cache (
            cache_key TEXT PRIMARY KEY,  -- MM_DD
            payload TEXT NOT NULL,       -- JSON list of {year, description}
            fetched_at TEXT NOT NULL     -- ISO timestamp (UTC)
        );
        """
    )


MIGRATIONS: list[Callable[[sqlite3.Connection], None]] = [
    migration_001_create_session_tables,
    migration_002_add_history_cache,
]

__all__ = [
    "DBConfig",
    "DatabaseManager",
]
