"""
SQLite database initialization and connection management.

Single responsibility: own the connection, create tables, run migrations.
All actual queries live in Repository.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Default DB lives next to the repo root
DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent.parent / "forgeflow.db"

SCHEMA_SQL = """
-- Progression accounts -------------------------------------------------------
CREATE TABLE IF NOT EXISTS accounts (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    name                TEXT    NOT NULL,
    identity            TEXT    NOT NULL,
    level               INTEGER NOT NULL DEFAULT 1,
    current_xp          INTEGER NOT NULL DEFAULT 0,
    xp_to_next_level    INTEGER NOT NULL DEFAULT 100,
    currency            INTEGER NOT NULL DEFAULT 0,
    burnout             REAL    NOT NULL DEFAULT 0,
    last_activity_at    TEXT    NOT NULL,
    decayed_until       TEXT,
    total_focus_minutes REAL    NOT NULL DEFAULT 0,
    streak_days         INTEGER NOT NULL DEFAULT 1,
    last_reset_date     TEXT    NOT NULL
);

-- Tasks (quests) -------------------------------------------------------------
CREATE TABLE IF NOT EXISTS tasks (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    title           TEXT    NOT NULL,
    notes           TEXT    NOT NULL DEFAULT '',
    created_at      TEXT    NOT NULL,
    completed       INTEGER NOT NULL DEFAULT 0,
    elapsed_seconds REAL    NOT NULL DEFAULT 0,
    active_since    TEXT
);

-- Subtasks: owned by their task ----------------------------------------------
CREATE TABLE IF NOT EXISTS subtasks (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id         INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL DEFAULT 0,
    title           TEXT    NOT NULL,
    difficulty      TEXT    NOT NULL DEFAULT 'Routine',
    completed       INTEGER NOT NULL DEFAULT 0,
    elapsed_seconds REAL    NOT NULL DEFAULT 0,
    active_since    TEXT
);

-- Work session log -----------------------------------------------------------
CREATE TABLE IF NOT EXISTS work_sessions (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    task_name        TEXT    NOT NULL,
    duration_seconds REAL    NOT NULL,
    recorded_at      TEXT    NOT NULL
);

-- Indexes for common queries -------------------------------------------------
CREATE INDEX IF NOT EXISTS idx_subtasks_task       ON subtasks(task_id);
CREATE INDEX IF NOT EXISTS idx_work_sessions_time  ON work_sessions(recorded_at);
"""


def open_connection(path: str) -> sqlite3.Connection:
    """Open a connection with the pragmas the schema relies on."""
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row          # dict-like rows
    conn.execute("PRAGMA foreign_keys=ON")  # needed for ON DELETE CASCADE
    return conn


class Database:
    """Thin wrapper around a SQLite connection."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        self.conn: Optional[sqlite3.Connection] = None

    # -- lifecycle -----------------------------------------------------------

    def connect(self) -> sqlite3.Connection:
        """Open (or return existing) connection and ensure schema exists."""
        if self.conn is not None:
            return self.conn
        logger.info("Connecting to SQLite at %s", self.db_path)
        self.conn = open_connection(str(self.db_path))
        if str(self.db_path) != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()
        return self.conn

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.info("Database connection closed.")

    # -- internal ------------------------------------------------------------

    def _create_tables(self) -> None:
        assert self.conn is not None
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()
        logger.info("Database schema ensured.")


# ---------------------------------------------------------------------------
# Explanation (for interviews)
# ---------------------------------------------------------------------------
# What this file does:
#   Manages the SQLite connection and makes sure all tables exist on startup.
#
# Key pieces:
#   - SCHEMA_SQL: accounts, tasks, subtasks, work_sessions. CREATE IF NOT
#     EXISTS makes it idempotent, so it is safe to run every launch.
#   - subtasks.task_id uses ON DELETE CASCADE, the storage-side mirror of a
#     Task owning its Subtasks.
#
# Data flow:
#   App start → Database.connect() → tables created → Repository uses conn
#
# Interviewer-friendly talking points:
#   1. Foreign keys are OFF by default in SQLite; without the pragma the
#      cascade silently does nothing.
#   2. WAL is skipped for ":memory:" databases (tests), where it has no
#      meaning.
#   3. The focus timer has no table on purpose: it is ephemeral and always
#      comes back idle after a restart.
