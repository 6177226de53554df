"""Domain records shared by the scheduling modules.

These are plain in-memory records. Persistence lives in academy.db and
document validation in academy.schemas; both produce these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

ItemType = Literal["wordbook", "listening"]
DailyAmountType = Literal["section", "count"]
StudyStatus = Literal["pending", "in_progress", "completed"]

ITEM_TYPES = ("wordbook", "listening")
DAILY_AMOUNT_TYPES = ("section", "count")
SECTION_AMOUNTS = (0.5, 1.0, 2.0)


@dataclass(frozen=True)
class Section:
    """A consecutive group of content units sharing a minor unit."""

    section_id: str
    minor_unit: str
    word_count: int
    major_unit: str = ""
    unit_name: str = ""


@dataclass
class Content:
    """A wordbook or listening test as a flat, ordered unit list."""

    content_id: str
    title: str
    kind: ItemType = "wordbook"
    units: list[dict[str, Any]] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)

    @property
    def total_units(self) -> int:
        """Number of atomic units (words or questions)."""
        if self.sections:
            return sum(s.word_count for s in self.sections)
        return len(self.units)

    def effective_sections(self) -> list[Section]:
        """Sections for pacing; ungrouped content is a single section."""
        if self.sections:
            return list(self.sections)
        if not self.units:
            return []
        return [
            Section(
                section_id=f"{self.content_id}-all",
                minor_unit="",
                word_count=len(self.units),
                unit_name=self.title,
            )
        ]

    def slice_units(self, start: int, end: int) -> list[dict[str, Any]]:
        """Return units for an inclusive 1-based index range."""
        first = max(0, start - 1)
        last = min(len(self.units), end)
        if first >= last:
            return []
        return self.units[first:last]


@dataclass
class CurriculumItem:
    """One wordbook or listening test in a curriculum, with its pacing rule."""

    id: str
    sequence: int
    item_type: str
    item_id: str
    daily_amount_type: str | None = None
    daily_word_count: int | None = None
    daily_section_amount: float | None = None
    section_start: str | None = None
    title: str = ""
    test_type: str | None = None
    passing_score: int | None = None
    time_limit_seconds: int | None = None
    content: Content | None = None

    @property
    def display_title(self) -> str:
        if self.title:
            return self.title
        if self.content is not None and self.content.title:
            return self.content.title
        return self.item_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "sequence": self.sequence,
            "item_type": self.item_type,
            "item_id": self.item_id,
            "title": self.display_title,
            "daily_amount_type": self.daily_amount_type,
            "daily_word_count": self.daily_word_count,
            "daily_section_amount": self.daily_section_amount,
            "section_start": self.section_start,
            "test_type": self.test_type,
            "passing_score": self.passing_score,
            "time_limit_seconds": self.time_limit_seconds,
        }


@dataclass(frozen=True)
class BreakInterval:
    """Inclusive date range during which no study day counts."""

    start_date: date
    end_date: date
    reason: str = ""

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class SettingOverrides:
    """Per-student settings applied to every item of the curriculum."""

    daily_amount: float | None = None
    daily_amount_type: str | None = None
    test_type: str | None = None
    passing_score: int | None = None
    time_limit_seconds: int | None = None


@dataclass
class Enrollment:
    """A student's enrollment in a curriculum (student_curriculums row)."""

    id: str
    student_id: str
    curriculum_id: str
    start_date: date
    study_days: frozenset[str]
    items: list[CurriculumItem] = field(default_factory=list)
    current_item_id: str | None = None
    current_progress: int = 0
    breaks: list[BreakInterval] = field(default_factory=list)
    setting_overrides: SettingOverrides = field(default_factory=SettingOverrides)
    curriculum_name: str = ""
    student_name: str = ""
    status: str = "active"

    def ordered_items(self) -> list[CurriculumItem]:
        """Items in traversal order."""
        return sorted(self.items, key=lambda item: item.sequence)

    def get_item(self, item_pk: str) -> CurriculumItem | None:
        for item in self.items:
            if item.id == item_pk:
                return item
        return None


@dataclass
class StudyLog:
    """One (student, curriculum item, scheduled date) attempt."""

    id: int
    student_id: str
    enrollment_id: str
    curriculum_item_id: str
    scheduled_date: date
    status: str = "pending"
    score: int | None = None
    wrong_answers: list[Any] = field(default_factory=list)
    test_phase: str | None = None
    progress_start: int | None = None
    progress_end: int | None = None
    created_at: str = ""
    updated_at: str = ""
    completed_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "student_id": self.student_id,
            "enrollment_id": self.enrollment_id,
            "curriculum_item_id": self.curriculum_item_id,
            "scheduled_date": self.scheduled_date.isoformat(),
            "status": self.status,
            "score": self.score,
            "wrong_answers": self.wrong_answers,
            "test_phase": self.test_phase,
            "progress_start": self.progress_start,
            "progress_end": self.progress_end,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
        }
