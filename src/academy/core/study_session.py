"""Study logs around the schedule: starting, submitting, daily overview.

Responsibilities:
- Open the study log for the assignment due on a date
- Record a test result, pay the completion reward and perfect-score bonus,
  and move the enrollment's informational progress cursor
- Build the teacher's "today" overview across enrollments
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import structlog

from academy.config.app_config import AppConfig, load_app_config
from academy.core.models import Enrollment, StudyLog
from academy.core.rewards import RewardEvent, reward_amount
from academy.core.schedule_resolver import (
    ScheduleAssignment,
    get_schedule_for_date,
    resolve_assignment,
)
from academy.db import enrollment_repository, study_log_repository
from academy.db.dollar_ledger import DollarLedger

logger = structlog.get_logger(__name__)


@dataclass
class StudyStart:
    """A study log opened for a resolved assignment."""

    assignment: ScheduleAssignment
    study_log: StudyLog
    created: bool


@dataclass
class SubmissionResult:
    """Outcome of a test submission."""

    study_log: StudyLog
    completed: bool
    dollars_awarded: int = 0
    warnings: list[str] = field(default_factory=list)


@dataclass
class TodayAssignment:
    """One row of the teacher's daily overview."""

    row_id: str
    student_id: str
    student_name: str
    curriculum_name: str
    item_name: str
    status: str
    progress_range: str = "-"
    score: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.row_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "curriculum_name": self.curriculum_name,
            "item_name": self.item_name,
            "progress_range": self.progress_range,
            "status": self.status,
            "score": self.score,
        }


def start_study(
    enrollment: Enrollment,
    target: date | datetime | str,
    db_path: Path | None = None,
    config: AppConfig | None = None,
) -> StudyStart:
    """Resolve the assignment for a date and open its study log.

    Raises:
        ScheduleUnavailable: If nothing is due on the date.
    """
    config = config or load_app_config()
    assignment = resolve_assignment(enrollment, target, config.schedule)
    log, created = study_log_repository.get_or_create_log(
        student_id=enrollment.student_id,
        enrollment_id=enrollment.id,
        curriculum_item_id=assignment.item.id,
        scheduled_date=assignment.target_date,
        progress_start=assignment.progress_start,
        progress_end=assignment.progress_end,
        db_path=db_path,
    )
    return StudyStart(assignment=assignment, study_log=log, created=created)


def submit_test(
    study_log_id: int,
    score: int | None,
    wrong_answers: list[Any],
    ledger: DollarLedger,
    test_phase: str | None = None,
    db_path: Path | None = None,
    config: AppConfig | None = None,
) -> SubmissionResult:
    """Record a test result.

    Any wrong answer leaves the log in_progress (the student retries them).
    A clean submission completes the log, awards the completion reward (plus
    the perfect-score bonus for 100 points) and moves the enrollment's
    progress cursor to the end of the log's window. A log that is already
    completed stays completed and pays nothing again.

    Raises:
        StudyLogNotFoundError: If the log does not exist.
    """
    config = config or load_app_config()
    previous = study_log_repository.get_log(study_log_id, db_path)
    already_completed = previous.status == "completed"

    status = "completed" if already_completed or not wrong_answers else "in_progress"
    log = study_log_repository.record_result(
        study_log_id,
        status=status,
        score=score,
        wrong_answers=wrong_answers,
        test_phase=test_phase or "completed",
        db_path=db_path,
    )

    if already_completed:
        result = SubmissionResult(study_log=log, completed=True)
        result.warnings.append("Study log was already completed; status kept, no reward paid")
        logger.info("study_session.resubmitted", study_log_id=study_log_id)
        return result

    result = SubmissionResult(study_log=log, completed=status == "completed")
    if not result.completed:
        return result

    amount = reward_amount(RewardEvent.TEST_COMPLETION, config.rewards)
    ledger.award(
        log.student_id,
        amount,
        f"Test completion reward (score: {score})",
        "study_completion",
    )
    result.dollars_awarded = amount

    if score == 100:
        bonus = reward_amount(RewardEvent.PERFECT_SCORE, config.rewards)
        ledger.award(log.student_id, bonus, "Perfect score bonus", "bonus")
        result.dollars_awarded += bonus

    if log.progress_end is not None:
        enrollment_repository.update_progress(
            log.enrollment_id,
            log.curriculum_item_id,
            log.progress_end,
            db_path=db_path,
        )
    else:
        result.warnings.append("Study log has no progress window; cursor not moved")

    logger.info(
        "study_session.completed",
        study_log_id=study_log_id,
        student_id=log.student_id,
        dollars=result.dollars_awarded,
    )
    return result


def today_assignments(
    enrollments: list[Enrollment],
    logs: list[StudyLog],
    target: date,
    config: AppConfig | None = None,
) -> list[TodayAssignment]:
    """Daily overview: one row per due assignment.

    Status comes from the newest log for the (student, item) on that date,
    "pending" when there is none. Students with no assignment at all get a
    single "no_schedule" row.
    """
    config = config or load_app_config()

    latest: dict[tuple[str, str], StudyLog] = {}
    for log in logs:
        if log.scheduled_date != target:
            continue
        key = (log.student_id, log.curriculum_item_id)
        current = latest.get(key)
        if current is None or (log.updated_at, log.id) > (current.updated_at, current.id):
            latest[key] = log

    rows: list[TodayAssignment] = []
    assigned_students: set[str] = set()
    seen_students: dict[str, str] = {}

    for enrollment in enrollments:
        seen_students.setdefault(enrollment.student_id, enrollment.student_name)
        result = get_schedule_for_date(enrollment, target, config.schedule)
        if not isinstance(result, ScheduleAssignment):
            continue

        assigned_students.add(enrollment.student_id)
        log = latest.get((enrollment.student_id, result.item.id))
        rows.append(
            TodayAssignment(
                row_id=f"{enrollment.student_id}-{enrollment.curriculum_id}-{result.item.id}",
                student_id=enrollment.student_id,
                student_name=enrollment.student_name or enrollment.student_id,
                curriculum_name=enrollment.curriculum_name or enrollment.curriculum_id,
                item_name=result.item.display_title,
                progress_range=result.progress_range,
                status=log.status if log else "pending",
                score=log.score if log else None,
            )
        )

    for student_id, student_name in seen_students.items():
        if student_id in assigned_students:
            continue
        rows.append(
            TodayAssignment(
                row_id=f"{student_id}-no-schedule",
                student_id=student_id,
                student_name=student_name or student_id,
                curriculum_name="-",
                item_name="-",
                status="no_schedule",
            )
        )

    return rows
