"""SQLite database connection and schema management.

Provides connection management and schema initialization for the academy.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

from academy.config.app_config import load_app_config

logger = structlog.get_logger(__name__)

# Current database path (module-level for simplicity in CLI context)
_db_path: Path | None = None


def _resolve_path(db_path: Path | None) -> Path:
    return db_path or _db_path or load_app_config().db_path


def init_db(db_path: Path | None = None) -> Path:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to the configured db_path.

    Returns:
        Path of the initialized database.
    """
    global _db_path
    _db_path = db_path or load_app_config().db_path

    with get_db() as conn:
        _create_schema(conn)

    logger.info("database.initialized", path=str(_db_path))
    return _db_path


@contextmanager
def get_db(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Commits on success, rolls back and re-raises on error.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM wordbooks").fetchall()
    """
    path = _resolve_path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency. List-valued columns hold JSON text.
    """
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS students (
            student_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            class_name TEXT,
            dollars INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS wordbooks (
            wordbook_id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            words TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS listening_tests (
            listening_id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            questions TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS curriculums (
            curriculum_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT DEFAULT ''
        );

        CREATE TABLE IF NOT EXISTS curriculum_items (
            id TEXT PRIMARY KEY,
            curriculum_id TEXT NOT NULL REFERENCES curriculums(curriculum_id) ON DELETE CASCADE,
            sequence INTEGER NOT NULL,
            item_type TEXT NOT NULL CHECK(item_type IN ('wordbook', 'listening')),
            item_id TEXT NOT NULL,
            title TEXT DEFAULT '',
            daily_amount_type TEXT CHECK(daily_amount_type IN ('section', 'count')),
            daily_word_count INTEGER,
            daily_section_amount REAL,
            section_start TEXT,
            test_type TEXT,
            passing_score INTEGER,
            time_limit_seconds INTEGER
        );

        CREATE TABLE IF NOT EXISTS student_curriculums (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL REFERENCES students(student_id) ON DELETE CASCADE,
            curriculum_id TEXT NOT NULL REFERENCES curriculums(curriculum_id),
            start_date TEXT NOT NULL,
            study_days TEXT NOT NULL,
            current_item_id TEXT,
            current_progress INTEGER NOT NULL DEFAULT 0,
            breaks TEXT NOT NULL DEFAULT '[]',
            setting_overrides TEXT NOT NULL DEFAULT '{}',
            status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active', 'paused', 'completed')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS study_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            student_id TEXT NOT NULL,
            enrollment_id TEXT NOT NULL REFERENCES student_curriculums(id) ON DELETE CASCADE,
            curriculum_item_id TEXT NOT NULL,
            scheduled_date TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending', 'in_progress', 'completed')),
            score INTEGER,
            wrong_answers TEXT NOT NULL DEFAULT '[]',
            test_phase TEXT,
            progress_start INTEGER,
            progress_end INTEGER,
            created_at TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now')),
            completed_at TEXT,
            UNIQUE(student_id, curriculum_item_id, scheduled_date)
        );

        CREATE TABLE IF NOT EXISTS dollar_transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            student_id TEXT NOT NULL,
            amount INTEGER NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            transaction_type TEXT NOT NULL CHECK(transaction_type IN ('study_completion', 'bonus', 'manual')),
            created_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_items_curriculum ON curriculum_items(curriculum_id, sequence);
        CREATE INDEX IF NOT EXISTS idx_enrollments_student ON student_curriculums(student_id);
        CREATE INDEX IF NOT EXISTS idx_logs_date ON study_logs(scheduled_date);
        CREATE INDEX IF NOT EXISTS idx_dollars_student ON dollar_transactions(student_id, created_at);
        """
    )
