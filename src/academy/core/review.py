"""Spaced review ranges and multiple-choice review questions.

Review material is the content taught on the days immediately before
today's window:

    review_end   = current_end - daily_amount
    review_start = max(1, review_end - review_days * daily_amount + 1)

review_end < 1 means day 1 of study: there is nothing to review yet.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any

import structlog

from academy.config.app_config import ScheduleConfig, load_app_config
from academy.core.models import Content
from academy.core.schedule_resolver import ScheduleAssignment

logger = structlog.get_logger(__name__)

DEFAULT_PROMPT_FIELD = "english"
DEFAULT_ANSWER_FIELD = "korean"


class ReviewError(ValueError):
    """Invalid review input or a pool too small for distractors."""

    pass


@dataclass(frozen=True)
class ReviewRange:
    """Inclusive 1-based unit range to review."""

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def to_dict(self) -> dict[str, int]:
        return {"review_start": self.start, "review_end": self.end, "total": self.size}


@dataclass
class ReviewQuestion:
    """One multiple-choice question about a reviewed unit."""

    unit: dict[str, Any]
    prompt: str
    answer: str
    choices: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {**self.unit, "prompt": self.prompt, "choices": self.choices, "answer": self.answer}


def calculate_review_range(
    current_end: int,
    daily_amount: int,
    review_days: int = 2,
) -> ReviewRange | None:
    """Range of the review_days days preceding today's window.

    Args:
        current_end: Last unit index of today's window (>= 0)
        daily_amount: Units per study day (> 0)
        review_days: Days of material to resurface

    Returns:
        ReviewRange, or None on the first day of study.

    Raises:
        ReviewError: If an argument is out of range.
    """
    if current_end < 0:
        raise ReviewError(f"current_end must be >= 0 (got {current_end})")
    if daily_amount <= 0:
        raise ReviewError(f"daily_amount must be positive (got {daily_amount})")
    if review_days <= 0:
        raise ReviewError(f"review_days must be positive (got {review_days})")

    review_end = current_end - daily_amount
    if review_end < 1:
        return None
    review_start = max(1, review_end - review_days * daily_amount + 1)
    return ReviewRange(review_start, review_end)


def review_range_for_assignment(
    assignment: ScheduleAssignment,
    config: ScheduleConfig | None = None,
) -> ReviewRange | None:
    """Review range for a resolved day.

    The cursor is placed a full day after the window start so that a
    clamped last day still reviews the preceding full days.
    """
    config = config or load_app_config().schedule
    if assignment.daily.is_section:
        per_day = assignment.word_count
    else:
        per_day = int(assignment.daily.amount)
    current_end = assignment.window.start - 1 + per_day
    return calculate_review_range(current_end, per_day, config.review_days)


def pick_distractors(
    pool: list[dict[str, Any]],
    correct: dict[str, Any],
    rng: random.Random,
    count: int = 3,
    prompt_field: str = DEFAULT_PROMPT_FIELD,
    answer_field: str = DEFAULT_ANSWER_FIELD,
) -> list[str]:
    """Sample distinct wrong answers from the full pool.

    Uniform random draws are rejected when they hit the correct unit or a
    distractor already chosen.

    Raises:
        ReviewError: If the pool has fewer than count distinct alternatives.
    """
    alternatives = {
        u.get(answer_field)
        for u in pool
        if u.get(prompt_field) != correct.get(prompt_field)
        and u.get(answer_field) != correct.get(answer_field)
        and u.get(answer_field)
    }
    if len(alternatives) < count:
        raise ReviewError(
            f"Need {count} distinct distractors, pool has {len(alternatives)}"
        )

    distractors: list[str] = []
    while len(distractors) < count:
        candidate = pool[rng.randrange(len(pool))]
        value = candidate.get(answer_field)
        if (
            candidate.get(prompt_field) != correct.get(prompt_field)
            and value
            and value != correct.get(answer_field)
            and value not in distractors
        ):
            distractors.append(value)
    return distractors


def build_review_questions(
    content: Content,
    review_range: ReviewRange,
    rng: random.Random | None = None,
    distractor_count: int = 3,
    prompt_field: str = DEFAULT_PROMPT_FIELD,
    answer_field: str = DEFAULT_ANSWER_FIELD,
) -> list[ReviewQuestion]:
    """Shuffled multiple-choice questions for the units in review_range."""
    rng = rng or random.Random()
    units = content.slice_units(review_range.start, review_range.end)

    questions = []
    for unit in units:
        distractors = pick_distractors(
            content.units, unit, rng, distractor_count, prompt_field, answer_field
        )
        choices = distractors + [unit[answer_field]]
        rng.shuffle(choices)
        questions.append(
            ReviewQuestion(
                unit=unit,
                prompt=unit[prompt_field],
                answer=unit[answer_field],
                choices=choices,
            )
        )

    rng.shuffle(questions)
    logger.debug(
        "review.questions_built",
        content_id=content.content_id,
        review_start=review_range.start,
        review_end=review_range.end,
        count=len(questions),
    )
    return questions
