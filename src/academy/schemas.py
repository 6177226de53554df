"""Pydantic schemas for import documents.

Validates wordbook, listening-test and enrollment documents (YAML or JSON)
before they reach the database, and converts them to core records.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from academy.core.models import (
    SECTION_AMOUNTS,
    BreakInterval,
    CurriculumItem,
    Enrollment,
    SettingOverrides,
)
from academy.utils.validators import normalize_study_days


# =============================================================================
# CONTENT SCHEMAS
# =============================================================================


class WordEntry(BaseModel):
    """One word of a wordbook."""

    model_config = ConfigDict(extra="allow")

    english: str = Field(..., min_length=1)
    korean: str = Field(..., min_length=1)
    no: int | None = None
    major_unit: str | None = None
    minor_unit: str | None = None
    unit_name: str | None = None


class WordbookDocument(BaseModel):
    """Wordbook import document."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    words: list[WordEntry]

    def word_dicts(self) -> list[dict[str, Any]]:
        return [w.model_dump(exclude_none=True) for w in self.words]


class ListeningDocument(BaseModel):
    """Listening test import document."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    questions: list[dict[str, Any]]


# =============================================================================
# ENROLLMENT SCHEMAS
# =============================================================================


class CurriculumItemDocument(BaseModel):
    """One curriculum item with its pacing rule."""

    id: str = Field(..., min_length=1)
    sequence: int = Field(..., ge=0)
    item_type: Literal["wordbook", "listening"]
    item_id: str = Field(..., min_length=1)
    title: str = ""
    daily_amount_type: Literal["section", "count"] | None = None
    daily_word_count: int | None = Field(default=None, gt=0)
    daily_section_amount: float | None = None
    section_start: str | None = None
    test_type: str | None = None
    passing_score: int | None = Field(default=None, ge=0, le=100)
    time_limit_seconds: int | None = Field(default=None, gt=0)

    @field_validator("daily_section_amount")
    @classmethod
    def _section_amount(cls, value: float | None) -> float | None:
        if value is not None and value not in SECTION_AMOUNTS:
            raise ValueError("daily_section_amount must be 0.5, 1 or 2")
        return value

    def to_item(self) -> CurriculumItem:
        return CurriculumItem(
            id=self.id,
            sequence=self.sequence,
            item_type=self.item_type,
            item_id=self.item_id,
            title=self.title,
            daily_amount_type=self.daily_amount_type,
            daily_word_count=self.daily_word_count,
            daily_section_amount=self.daily_section_amount,
            section_start=self.section_start,
            test_type=self.test_type,
            passing_score=self.passing_score,
            time_limit_seconds=self.time_limit_seconds,
        )


class CurriculumDocument(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    items: list[CurriculumItemDocument] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_items(self) -> "CurriculumDocument":
        ids = [i.id for i in self.items]
        if len(ids) != len(set(ids)):
            raise ValueError("curriculum item ids must be unique")
        return self


class StudentDocument(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    class_name: str | None = None


class BreakDocument(BaseModel):
    start_date: date
    end_date: date
    reason: str = ""

    @model_validator(mode="after")
    def _ordered(self) -> "BreakDocument":
        if self.end_date < self.start_date:
            raise ValueError("break end_date precedes start_date")
        return self


class SettingOverridesDocument(BaseModel):
    daily_amount: float | None = Field(default=None, gt=0)
    daily_amount_type: Literal["section", "count"] | None = None
    test_type: str | None = None
    passing_score: int | None = Field(default=None, ge=0, le=100)
    time_limit_seconds: int | None = Field(default=None, gt=0)


class EnrollmentDocument(BaseModel):
    """A student's enrollment together with its curriculum."""

    id: str = Field(..., min_length=1)
    student: StudentDocument
    curriculum: CurriculumDocument
    start_date: date
    study_days: frozenset[str]
    current_item_id: str | None = None
    current_progress: int = Field(default=0, ge=0)
    breaks: list[BreakDocument] = Field(default_factory=list)
    setting_overrides: SettingOverridesDocument = Field(default_factory=SettingOverridesDocument)
    status: Literal["active", "paused", "completed"] = "active"

    @field_validator("study_days", mode="before")
    @classmethod
    def _normalize_study_days(cls, value: Any) -> frozenset[str]:
        return normalize_study_days(value)

    def to_items(self) -> list[CurriculumItem]:
        return [i.to_item() for i in self.curriculum.items]

    def to_enrollment(self) -> Enrollment:
        """Core record (item content not loaded)."""
        return Enrollment(
            id=self.id,
            student_id=self.student.id,
            curriculum_id=self.curriculum.id,
            start_date=self.start_date,
            study_days=self.study_days,
            items=self.to_items(),
            current_item_id=self.current_item_id,
            current_progress=self.current_progress,
            breaks=[
                BreakInterval(b.start_date, b.end_date, b.reason) for b in self.breaks
            ],
            setting_overrides=SettingOverrides(**self.setting_overrides.model_dump()),
            curriculum_name=self.curriculum.name,
            student_name=self.student.name,
            status=self.status,
        )


def load_document(path: Path) -> dict[str, Any]:
    """Read a YAML or JSON document (JSON is valid YAML).

    Raises:
        ValueError: If the file does not hold a mapping.
    """
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data
