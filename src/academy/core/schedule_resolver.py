"""Curriculum schedule resolution.

Maps (enrollment, civil date) to the curriculum item and content window
due that day. Resolution is a pure function of its inputs: it reads the
enrollment's start date, study days, breaks, overrides and ordered items,
and never touches current_item_id / current_progress.

Outcomes that are routine for callers (before start, not a study day, on
break, curriculum complete) come back as NoAssignment from
get_schedule_for_date(). resolve_assignment() raises the matching
ScheduleUnavailable subclass instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Literal, Union

import structlog

from academy.config.app_config import ScheduleConfig
from academy.core.calendar import is_on_break, is_study_day, iter_dates, to_civil_date
from academy.core.models import CurriculumItem, Enrollment
from academy.core.pacing import DailyAmount, DayWindow, ItemPlan, plan_item
from academy.utils.validators import ScheduleValidationError, weekday_token

logger = structlog.get_logger(__name__)

# Backward walk limit for start-date re-anchoring
MAX_REANCHOR_DAYS = 5 * 365

AssignmentStatus = Literal["completed", "today", "upcoming"]


# =============================================================================
# OUTCOMES
# =============================================================================


class NoAssignmentReason(str, Enum):
    """Why a date has nothing to study."""

    BEFORE_ENROLLMENT = "before_enrollment"
    NOT_A_STUDY_DAY = "not_a_study_day"
    ON_BREAK = "on_break"
    CURRICULUM_COMPLETE = "curriculum_complete"


class ScheduleUnavailable(Exception):
    """Base class for dates with no assignment."""

    reason: NoAssignmentReason

    def __init__(self, target_date: date, message: str):
        self.target_date = target_date
        super().__init__(message)


class BeforeEnrollment(ScheduleUnavailable):
    reason = NoAssignmentReason.BEFORE_ENROLLMENT


class NotAStudyDay(ScheduleUnavailable):
    reason = NoAssignmentReason.NOT_A_STUDY_DAY


class OnBreak(ScheduleUnavailable):
    reason = NoAssignmentReason.ON_BREAK


class NoContentRemaining(ScheduleUnavailable):
    reason = NoAssignmentReason.CURRICULUM_COMPLETE


_EXCEPTIONS = {
    NoAssignmentReason.BEFORE_ENROLLMENT: BeforeEnrollment,
    NoAssignmentReason.NOT_A_STUDY_DAY: NotAStudyDay,
    NoAssignmentReason.ON_BREAK: OnBreak,
    NoAssignmentReason.CURRICULUM_COMPLETE: NoContentRemaining,
}


@dataclass(frozen=True)
class NoAssignment:
    """Typed empty result: nothing is due on target_date."""

    target_date: date
    reason: NoAssignmentReason
    day_index: int | None = None

    def __bool__(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "date": self.target_date.isoformat(),
            "assigned": False,
            "reason": self.reason.value,
            "day_index": self.day_index,
        }


@dataclass(frozen=True)
class ScheduleAssignment:
    """The item and content window due on target_date."""

    target_date: date
    day_index: int
    item: CurriculumItem
    local_day: int
    window: DayWindow
    daily: DailyAmount
    item_capacity: int

    @property
    def progress_start(self) -> int:
        return self.window.start

    @property
    def progress_end(self) -> int:
        return self.window.end

    @property
    def word_count(self) -> int:
        return self.window.word_count

    @property
    def progress_range(self) -> str:
        return f"{self.window.start}~{self.window.end}"

    @property
    def unit_name(self) -> str:
        return self.window.unit_name or f"Day {self.day_index}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "date": self.target_date.isoformat(),
            "assigned": True,
            "day_index": self.day_index,
            "local_day": self.local_day,
            "item": self.item.to_dict(),
            "item_title": self.item.display_title,
            "item_type": self.item.item_type,
            "progress_start": self.progress_start,
            "progress_end": self.progress_end,
            "progress_range": self.progress_range,
            "word_count": self.word_count,
            "major_unit": self.window.major_unit,
            "minor_unit": self.window.minor_unit or str(self.day_index),
            "unit_name": self.unit_name,
            "daily_amount_type": self.daily.amount_type,
            "daily_amount": self.daily.amount,
        }


ScheduleResult = Union[ScheduleAssignment, NoAssignment]


# =============================================================================
# PLANS AND COUNTING
# =============================================================================


def build_item_plans(
    enrollment: Enrollment,
    config: ScheduleConfig | None = None,
) -> list[ItemPlan]:
    """Pacing table for every item, in sequence order.

    Raises:
        ScheduleValidationError: If an item is malformed.
    """
    return [
        plan_item(item, enrollment.setting_overrides, config)
        for item in enrollment.ordered_items()
    ]


def total_capacity(plans: list[ItemPlan]) -> int:
    """Study days needed to finish every item."""
    return sum(p.capacity for p in plans)


def count_study_days(enrollment: Enrollment, until: date) -> int:
    """Study days from start_date to until (both inclusive), breaks excluded."""
    if until < enrollment.start_date:
        return 0
    return sum(
        1
        for day in iter_dates(enrollment.start_date, until)
        if is_study_day(day, enrollment.study_days, enrollment.breaks)
    )


def locate_day(plans: list[ItemPlan], day_index: int) -> tuple[ItemPlan, int] | None:
    """Find the item plan and local day for a global 1-based study day."""
    if day_index < 1:
        return None
    cumulative = 0
    for plan in plans:
        if day_index <= cumulative + plan.capacity:
            return plan, day_index - cumulative
        cumulative += plan.capacity
    return None


def _check_study_days(enrollment: Enrollment) -> None:
    if not enrollment.study_days:
        raise ScheduleValidationError(
            f"Enrollment {enrollment.id}: study_days matches no weekday"
        )


# =============================================================================
# RESOLUTION
# =============================================================================


def get_schedule_for_date(
    enrollment: Enrollment,
    target: date | datetime | str,
    config: ScheduleConfig | None = None,
    plans: list[ItemPlan] | None = None,
) -> ScheduleResult:
    """Resolve what is due on a date.

    Args:
        enrollment: Enrollment with its ordered items and content loaded
        target: Civil date, ISO string or aware timestamp
        config: Schedule settings (defaults to the loaded app config)
        plans: Precomputed build_item_plans() result, for range queries

    Returns:
        ScheduleAssignment, or NoAssignment with the reason

    Raises:
        ScheduleValidationError: If the enrollment or an item is malformed.
    """
    _check_study_days(enrollment)
    tz_name = config.timezone if config else None
    target_date = to_civil_date(target, tz_name)

    if target_date < enrollment.start_date:
        return NoAssignment(target_date, NoAssignmentReason.BEFORE_ENROLLMENT)

    if weekday_token(target_date) not in enrollment.study_days:
        return NoAssignment(target_date, NoAssignmentReason.NOT_A_STUDY_DAY)

    if is_on_break(target_date, enrollment.breaks):
        return NoAssignment(target_date, NoAssignmentReason.ON_BREAK)

    day_index = count_study_days(enrollment, target_date)
    if plans is None:
        plans = build_item_plans(enrollment, config)

    located = locate_day(plans, day_index)
    if located is None:
        logger.debug(
            "schedule.curriculum_complete",
            enrollment_id=enrollment.id,
            day_index=day_index,
            capacity=total_capacity(plans),
        )
        return NoAssignment(
            target_date, NoAssignmentReason.CURRICULUM_COMPLETE, day_index=day_index
        )

    plan, local_day = located
    assignment = ScheduleAssignment(
        target_date=target_date,
        day_index=day_index,
        item=plan.item,
        local_day=local_day,
        window=plan.windows[local_day - 1],
        daily=plan.daily,
        item_capacity=plan.capacity,
    )
    logger.debug(
        "schedule.resolved",
        enrollment_id=enrollment.id,
        date=target_date.isoformat(),
        day_index=day_index,
        item_id=plan.item.id,
        progress_range=assignment.progress_range,
    )
    return assignment


def resolve_assignment(
    enrollment: Enrollment,
    target: date | datetime | str,
    config: ScheduleConfig | None = None,
) -> ScheduleAssignment:
    """Resolve what is due on a date, raising when nothing is.

    Raises:
        BeforeEnrollment: target precedes start_date
        NotAStudyDay: weekday not in study_days
        OnBreak: target inside a break interval
        NoContentRemaining: study-day count exceeds the curriculum
        ScheduleValidationError: malformed enrollment or item
    """
    result = get_schedule_for_date(enrollment, target, config)
    if isinstance(result, ScheduleAssignment):
        return result

    messages = {
        NoAssignmentReason.BEFORE_ENROLLMENT: f"{result.target_date} is before enrollment start {enrollment.start_date}",
        NoAssignmentReason.NOT_A_STUDY_DAY: f"{result.target_date} ({weekday_token(result.target_date)}) is not a study day",
        NoAssignmentReason.ON_BREAK: f"{result.target_date} falls inside a break",
        NoAssignmentReason.CURRICULUM_COMPLETE: f"Study day {result.day_index} is past the end of the curriculum",
    }
    raise _EXCEPTIONS[result.reason](result.target_date, messages[result.reason])


def list_schedule(
    enrollment: Enrollment,
    date_from: date,
    date_to: date,
    config: ScheduleConfig | None = None,
    include_empty: bool = False,
) -> list[ScheduleResult]:
    """Resolve every date in a range.

    Args:
        include_empty: Also return NoAssignment entries (non-study days,
            breaks, dates outside the curriculum).
    """
    plans = build_item_plans(enrollment, config)
    results: list[ScheduleResult] = []
    for day in iter_dates(date_from, date_to):
        result = get_schedule_for_date(enrollment, day, config, plans=plans)
        if result or include_empty:
            results.append(result)
    return results


def assignment_status(assignment: ScheduleAssignment, today: date) -> AssignmentStatus:
    """Relative status of an assignment for dashboards."""
    if assignment.target_date < today:
        return "completed"
    if assignment.target_date == today:
        return "today"
    return "upcoming"


# =============================================================================
# RE-ANCHORING
# =============================================================================


def calculate_start_date_for_progress(
    enrollment: Enrollment,
    target_progress: int,
    base_date: date,
    item_id: str | None = None,
    config: ScheduleConfig | None = None,
) -> date:
    """Start date that puts target_progress on the first study day >= base_date.

    The window of the given item (default: current item, then first item)
    containing target_progress becomes due on the first study day on or
    after base_date. The start date is found by walking backwards over
    study days, skipping breaks.

    Returns:
        The new start date, or the current start date if the progress lies
        in no window or the walk exceeds MAX_REANCHOR_DAYS.
    """
    _check_study_days(enrollment)
    plans = build_item_plans(enrollment, config)
    if not plans:
        return enrollment.start_date

    wanted = item_id or enrollment.current_item_id or plans[0].item.id

    required = 0
    found = False
    for plan in plans:
        if plan.item.id == wanted:
            for local, window in enumerate(plan.windows, start=1):
                if window.start <= target_progress <= window.end:
                    required += local
                    found = True
                    break
            break
        required += plan.capacity

    if not found:
        logger.info(
            "schedule.reanchor_progress_not_found",
            enrollment_id=enrollment.id,
            item_id=wanted,
            target_progress=target_progress,
        )
        return enrollment.start_date

    # First study day on/after base_date; breaks are skipped too
    anchor = base_date
    for _ in range(MAX_REANCHOR_DAYS):
        if is_study_day(anchor, enrollment.study_days, enrollment.breaks):
            break
        anchor += timedelta(days=1)

    found_days = 0
    check = anchor
    while (anchor - check).days <= MAX_REANCHOR_DAYS:
        if is_study_day(check, enrollment.study_days, enrollment.breaks):
            found_days += 1
            if found_days == required:
                logger.info(
                    "schedule.reanchored",
                    enrollment_id=enrollment.id,
                    target_progress=target_progress,
                    start_date=check.isoformat(),
                )
                return check
        check -= timedelta(days=1)

    logger.warning(
        "schedule.reanchor_limit_exceeded",
        enrollment_id=enrollment.id,
        required_days=required,
    )
    return enrollment.start_date
