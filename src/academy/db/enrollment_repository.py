"""Repository functions for students, curricula and enrollments.

Enrollments (student_curriculums rows) are loaded together with their
curriculum items, sorted by sequence, and each item's content from a
ContentStore.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from academy.core.models import (
    BreakInterval,
    CurriculumItem,
    Enrollment,
    SettingOverrides,
)
from academy.db.content_store import ContentStore
from academy.db.database import get_db
from academy.utils.validators import normalize_study_days, parse_iso_date

logger = structlog.get_logger(__name__)


class EnrollmentNotFoundError(Exception):
    """Raised when an enrollment does not exist."""

    def __init__(self, enrollment_id: str):
        self.enrollment_id = enrollment_id
        super().__init__(f"Enrollment '{enrollment_id}' not found")


# =============================================================================
# STUDENTS
# =============================================================================


def upsert_student(
    student_id: str,
    name: str,
    class_name: str | None = None,
    db_path: Path | None = None,
) -> None:
    """Insert a student or update its name and class."""
    with get_db(db_path) as conn:
        conn.execute(
            """
            INSERT INTO students (student_id, name, class_name) VALUES (?, ?, ?)
            ON CONFLICT(student_id) DO UPDATE SET name = excluded.name, class_name = excluded.class_name
            """,
            (student_id, name, class_name),
        )


def get_student(student_id: str, db_path: Path | None = None) -> dict[str, Any] | None:
    """Student row as a dict, or None."""
    with get_db(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM students WHERE student_id = ?", (student_id,)
        ).fetchone()
    return dict(row) if row else None


def list_students(db_path: Path | None = None) -> list[dict[str, Any]]:
    with get_db(db_path) as conn:
        rows = conn.execute("SELECT * FROM students ORDER BY name").fetchall()
    return [dict(row) for row in rows]


# =============================================================================
# CURRICULA
# =============================================================================


def save_curriculum(
    curriculum_id: str,
    name: str,
    items: list[CurriculumItem],
    description: str = "",
    db_path: Path | None = None,
) -> None:
    """Insert or replace a curriculum and all of its items."""
    with get_db(db_path) as conn:
        conn.execute(
            """
            INSERT INTO curriculums (curriculum_id, name, description) VALUES (?, ?, ?)
            ON CONFLICT(curriculum_id) DO UPDATE SET name = excluded.name, description = excluded.description
            """,
            (curriculum_id, name, description),
        )
        conn.execute("DELETE FROM curriculum_items WHERE curriculum_id = ?", (curriculum_id,))
        for item in items:
            conn.execute(
                """
                INSERT INTO curriculum_items (
                    id, curriculum_id, sequence, item_type, item_id, title,
                    daily_amount_type, daily_word_count, daily_section_amount,
                    section_start, test_type, passing_score, time_limit_seconds
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    curriculum_id,
                    item.sequence,
                    item.item_type,
                    item.item_id,
                    item.title,
                    item.daily_amount_type,
                    item.daily_word_count,
                    item.daily_section_amount,
                    item.section_start,
                    item.test_type,
                    item.passing_score,
                    item.time_limit_seconds,
                ),
            )

    logger.debug("curriculum.saved", curriculum_id=curriculum_id, items=len(items))


def get_curriculum_items(curriculum_id: str, db_path: Path | None = None) -> list[CurriculumItem]:
    """Items of a curriculum sorted by sequence (content not loaded)."""
    with get_db(db_path) as conn:
        rows = conn.execute(
            "SELECT * FROM curriculum_items WHERE curriculum_id = ? ORDER BY sequence",
            (curriculum_id,),
        ).fetchall()

    return [
        CurriculumItem(
            id=row["id"],
            sequence=row["sequence"],
            item_type=row["item_type"],
            item_id=row["item_id"],
            title=row["title"] or "",
            daily_amount_type=row["daily_amount_type"],
            daily_word_count=row["daily_word_count"],
            daily_section_amount=row["daily_section_amount"],
            section_start=row["section_start"],
            test_type=row["test_type"],
            passing_score=row["passing_score"],
            time_limit_seconds=row["time_limit_seconds"],
        )
        for row in rows
    ]


# =============================================================================
# ENROLLMENTS
# =============================================================================


def save_enrollment(enrollment: Enrollment, db_path: Path | None = None) -> None:
    """Insert or replace an enrollment row (items are stored per curriculum)."""
    breaks = [
        {
            "start_date": b.start_date.isoformat(),
            "end_date": b.end_date.isoformat(),
            "reason": b.reason,
        }
        for b in enrollment.breaks
    ]
    overrides = {k: v for k, v in asdict(enrollment.setting_overrides).items() if v is not None}

    with get_db(db_path) as conn:
        conn.execute(
            """
            INSERT OR REPLACE INTO student_curriculums (
                id, student_id, curriculum_id, start_date, study_days,
                current_item_id, current_progress, breaks, setting_overrides, status
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                enrollment.id,
                enrollment.student_id,
                enrollment.curriculum_id,
                enrollment.start_date.isoformat(),
                json.dumps(sorted(enrollment.study_days)),
                enrollment.current_item_id,
                enrollment.current_progress,
                json.dumps(breaks, ensure_ascii=False),
                json.dumps(overrides),
                enrollment.status,
            ),
        )

    logger.debug("enrollment.saved", enrollment_id=enrollment.id)


def _row_to_enrollment(row: Any) -> Enrollment:
    breaks = [
        BreakInterval(
            start_date=parse_iso_date(b["start_date"]),
            end_date=parse_iso_date(b["end_date"]),
            reason=b.get("reason") or "",
        )
        for b in json.loads(row["breaks"] or "[]")
    ]
    overrides = SettingOverrides(**json.loads(row["setting_overrides"] or "{}"))

    return Enrollment(
        id=row["id"],
        student_id=row["student_id"],
        curriculum_id=row["curriculum_id"],
        start_date=parse_iso_date(row["start_date"]),
        study_days=normalize_study_days(row["study_days"]),
        current_item_id=row["current_item_id"],
        current_progress=row["current_progress"],
        breaks=breaks,
        setting_overrides=overrides,
        curriculum_name=row["curriculum_name"] or "",
        student_name=row["student_name"] or "",
        status=row["status"],
    )


_ENROLLMENT_SELECT = """
    SELECT sc.*, c.name AS curriculum_name, s.name AS student_name
    FROM student_curriculums sc
    LEFT JOIN curriculums c ON c.curriculum_id = sc.curriculum_id
    LEFT JOIN students s ON s.student_id = sc.student_id
"""


def get_enrollment(
    enrollment_id: str,
    content_store: ContentStore | None = None,
    db_path: Path | None = None,
) -> Enrollment:
    """Load an enrollment with items sorted by sequence.

    Args:
        enrollment_id: student_curriculums.id
        content_store: Store used to attach each item's content. Without
            it, items come back with content=None.

    Raises:
        EnrollmentNotFoundError: If the enrollment does not exist.
        ContentNotFoundError: If an item points to missing content.
    """
    with get_db(db_path) as conn:
        row = conn.execute(
            _ENROLLMENT_SELECT + " WHERE sc.id = ?", (enrollment_id,)
        ).fetchone()

    if row is None:
        raise EnrollmentNotFoundError(enrollment_id)

    enrollment = _row_to_enrollment(row)
    enrollment.items = get_curriculum_items(enrollment.curriculum_id, db_path)
    if content_store is not None:
        for item in enrollment.items:
            item.content = content_store.get_content(item.item_type, item.item_id)
    return enrollment


def list_enrollment_ids(status: str | None = "active", db_path: Path | None = None) -> list[str]:
    """Enrollment IDs, optionally filtered by status."""
    with get_db(db_path) as conn:
        if status is None:
            rows = conn.execute("SELECT id FROM student_curriculums ORDER BY id").fetchall()
        else:
            rows = conn.execute(
                "SELECT id FROM student_curriculums WHERE status = ? ORDER BY id", (status,)
            ).fetchall()
    return [row["id"] for row in rows]


def list_enrollments(
    content_store: ContentStore | None = None,
    status: str | None = "active",
    db_path: Path | None = None,
) -> list[Enrollment]:
    return [
        get_enrollment(enrollment_id, content_store, db_path)
        for enrollment_id in list_enrollment_ids(status, db_path)
    ]


def update_progress(
    enrollment_id: str,
    current_item_id: str | None,
    current_progress: int,
    db_path: Path | None = None,
) -> None:
    """Move the informational progress cursor.

    Not synchronized: concurrent updates for one enrollment race and the
    last write wins.

    Raises:
        EnrollmentNotFoundError: If the enrollment does not exist.
    """
    with get_db(db_path) as conn:
        cursor = conn.execute(
            """
            UPDATE student_curriculums
            SET current_item_id = ?, current_progress = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                current_item_id,
                current_progress,
                datetime.now(timezone.utc).isoformat(),
                enrollment_id,
            ),
        )
        if cursor.rowcount == 0:
            raise EnrollmentNotFoundError(enrollment_id)

    logger.info(
        "enrollment.progress_updated",
        enrollment_id=enrollment_id,
        current_item_id=current_item_id,
        current_progress=current_progress,
    )


def update_start_date(enrollment_id: str, start_date: date, db_path: Path | None = None) -> None:
    """Change an enrollment's start date.

    Raises:
        EnrollmentNotFoundError: If the enrollment does not exist.
    """
    with get_db(db_path) as conn:
        cursor = conn.execute(
            "UPDATE student_curriculums SET start_date = ?, updated_at = ? WHERE id = ?",
            (start_date.isoformat(), datetime.now(timezone.utc).isoformat(), enrollment_id),
        )
        if cursor.rowcount == 0:
            raise EnrollmentNotFoundError(enrollment_id)

    logger.info("enrollment.start_date_updated", enrollment_id=enrollment_id, start_date=start_date.isoformat())
