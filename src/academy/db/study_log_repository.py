"""Repository functions for study_logs.

One row per (student, curriculum item, scheduled date).
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from academy.core.models import StudyLog
from academy.db.database import get_db
from academy.utils.validators import parse_iso_date

logger = structlog.get_logger(__name__)


class StudyLogNotFoundError(Exception):
    """Raised when a study log does not exist."""

    def __init__(self, study_log_id: int):
        self.study_log_id = study_log_id
        super().__init__(f"Study log {study_log_id} not found")


def _row_to_log(row: Any) -> StudyLog:
    return StudyLog(
        id=row["id"],
        student_id=row["student_id"],
        enrollment_id=row["enrollment_id"],
        curriculum_item_id=row["curriculum_item_id"],
        scheduled_date=parse_iso_date(row["scheduled_date"]),
        status=row["status"],
        score=row["score"],
        wrong_answers=json.loads(row["wrong_answers"] or "[]"),
        test_phase=row["test_phase"],
        progress_start=row["progress_start"],
        progress_end=row["progress_end"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        completed_at=row["completed_at"],
    )


def get_or_create_log(
    student_id: str,
    enrollment_id: str,
    curriculum_item_id: str,
    scheduled_date: date,
    progress_start: int | None = None,
    progress_end: int | None = None,
    db_path: Path | None = None,
) -> tuple[StudyLog, bool]:
    """Fetch the log for (student, item, date), creating a pending one.

    Returns:
        (log, created)
    """
    key = (student_id, curriculum_item_id, scheduled_date.isoformat())
    with get_db(db_path) as conn:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO study_logs (
                student_id, enrollment_id, curriculum_item_id, scheduled_date,
                progress_start, progress_end
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (student_id, enrollment_id, curriculum_item_id, key[2], progress_start, progress_end),
        )
        created = cursor.rowcount == 1
        row = conn.execute(
            """
            SELECT * FROM study_logs
            WHERE student_id = ? AND curriculum_item_id = ? AND scheduled_date = ?
            """,
            key,
        ).fetchone()

    if created:
        logger.debug("study_log.created", study_log_id=row["id"], student_id=student_id)
    return _row_to_log(row), created


def get_log(study_log_id: int, db_path: Path | None = None) -> StudyLog:
    """Load a study log.

    Raises:
        StudyLogNotFoundError: If it does not exist.
    """
    with get_db(db_path) as conn:
        row = conn.execute("SELECT * FROM study_logs WHERE id = ?", (study_log_id,)).fetchone()

    if row is None:
        raise StudyLogNotFoundError(study_log_id)
    return _row_to_log(row)


def list_logs_for_date(scheduled_date: date, db_path: Path | None = None) -> list[StudyLog]:
    with get_db(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM study_logs WHERE scheduled_date = ? ORDER BY updated_at DESC, id DESC",
            (scheduled_date.isoformat(),),
        ).fetchall()
    return [_row_to_log(row) for row in rows]


def list_logs_for_enrollment(enrollment_id: str, db_path: Path | None = None) -> list[StudyLog]:
    with get_db(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM study_logs WHERE enrollment_id = ? ORDER BY scheduled_date, id",
            (enrollment_id,),
        ).fetchall()
    return [_row_to_log(row) for row in rows]


def record_result(
    study_log_id: int,
    status: str,
    score: int | None,
    wrong_answers: list[Any],
    test_phase: str | None,
    db_path: Path | None = None,
) -> StudyLog:
    """Store a test result on a log.

    completed_at is set when status is "completed".

    Raises:
        StudyLogNotFoundError: If it does not exist.
    """
    now = datetime.now(timezone.utc).isoformat()
    completed_at = now if status == "completed" else None

    with get_db(db_path) as conn:
        cursor = conn.execute(
            """
            UPDATE study_logs
            SET status = ?, score = ?, wrong_answers = ?, test_phase = ?,
                updated_at = ?, completed_at = COALESCE(completed_at, ?)
            WHERE id = ?
            """,
            (
                status,
                score,
                json.dumps(wrong_answers, ensure_ascii=False),
                test_phase,
                now,
                completed_at,
                study_log_id,
            ),
        )
        if cursor.rowcount == 0:
            raise StudyLogNotFoundError(study_log_id)

    logger.debug("study_log.updated", study_log_id=study_log_id, status=status)
    return get_log(study_log_id, db_path)
