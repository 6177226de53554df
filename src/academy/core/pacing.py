"""Daily pacing of curriculum items.

Responsibilities:
- Resolve the effective daily amount of an item (item settings, student
  overrides, configured fallback)
- Cut an item's content into per-study-day windows

Pacing rules:
- count:   fixed number of units per day, last day clamped to the content end
- section: 1 -> one section per day
           2 -> current + next section (a trailing section goes alone)
           0.5 -> half a section per day, first half = ceil(len / 2)

Windows are inclusive, 1-based indices into the content's flat unit list.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import structlog

from academy.config.app_config import ScheduleConfig, load_app_config
from academy.core.models import (
    DAILY_AMOUNT_TYPES,
    ITEM_TYPES,
    SECTION_AMOUNTS,
    CurriculumItem,
    Section,
    SettingOverrides,
)
from academy.utils.validators import ScheduleValidationError

logger = structlog.get_logger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class DailyAmount:
    """Effective pacing rule for one item."""

    amount_type: str
    amount: float
    source: str = "item"  # item | override | fallback

    @property
    def is_section(self) -> bool:
        return self.amount_type == "section"


@dataclass(frozen=True)
class DayWindow:
    """Content assigned to one study day of an item."""

    start: int
    end: int
    section_ids: tuple[str, ...] = ()
    major_unit: str = ""
    minor_unit: str = ""
    unit_name: str = ""
    partial: bool = False

    @property
    def word_count(self) -> int:
        return self.end - self.start + 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "start": self.start,
            "end": self.end,
            "word_count": self.word_count,
            "section_ids": list(self.section_ids),
            "major_unit": self.major_unit,
            "minor_unit": self.minor_unit,
            "unit_name": self.unit_name,
            "partial": self.partial,
        }


@dataclass
class ItemPlan:
    """All day windows of one curriculum item."""

    item: CurriculumItem
    daily: DailyAmount
    total_units: int
    windows: list[DayWindow] = field(default_factory=list)

    @property
    def capacity(self) -> int:
        """Number of study days the item occupies."""
        return len(self.windows)


@dataclass(frozen=True)
class _PlacedSection:
    section: Section
    start: int
    end: int


# =============================================================================
# DAILY AMOUNT
# =============================================================================


def _usable_override(
    item: CurriculumItem,
    overrides: SettingOverrides,
    amount_type: str,
) -> float | None:
    """The override amount if it fits the item's amount type, else None.

    A student-wide daily_amount applies to every item of the curriculum,
    so a word count can reach a section item and vice versa. Such a value
    is ignored for that item and logged.
    """
    amount = overrides.daily_amount
    if not amount:
        return None

    if amount_type == "section":
        fits = float(amount) in SECTION_AMOUNTS
    else:
        fits = amount >= 1 and float(amount) == int(amount)

    if not fits:
        logger.warning(
            "pacing.override_ignored",
            item_id=item.id,
            amount_type=amount_type,
            override_amount=amount,
        )
        return None
    return amount


def resolve_daily_amount(
    item: CurriculumItem,
    overrides: SettingOverrides | None = None,
    config: ScheduleConfig | None = None,
) -> DailyAmount:
    """Resolve the effective daily amount for an item.

    Student overrides win over item settings when they fit the item's
    amount type. A missing type or count falls back to the configured
    word count and is logged.

    Raises:
        ScheduleValidationError: If the item's own type or amount is invalid.
    """
    config = config or load_app_config().schedule
    overrides = overrides or SettingOverrides()

    amount_type = overrides.daily_amount_type or item.daily_amount_type
    if amount_type is None:
        logger.warning(
            "pacing.fallback_daily_amount",
            item_id=item.id,
            reason="missing_daily_amount_type",
            amount=config.fallback_daily_word_count,
        )
        return DailyAmount("count", config.fallback_daily_word_count, "fallback")

    if amount_type not in DAILY_AMOUNT_TYPES:
        raise ScheduleValidationError(
            f"Item {item.id}: unknown daily_amount_type '{amount_type}'"
        )

    override = _usable_override(item, overrides, amount_type)
    source = "override" if override else "item"

    if amount_type == "section":
        amount = override or item.daily_section_amount
        if not amount:
            amount = config.default_section_amount
        amount = float(amount)
        if amount not in SECTION_AMOUNTS:
            raise ScheduleValidationError(
                f"Item {item.id}: daily section amount must be 0.5, 1 or 2 (got {amount:g})"
            )
        return DailyAmount("section", amount, source)

    amount = override or item.daily_word_count
    if not amount:
        logger.warning(
            "pacing.fallback_daily_amount",
            item_id=item.id,
            reason="missing_daily_word_count",
            amount=config.fallback_daily_word_count,
        )
        return DailyAmount("count", config.fallback_daily_word_count, "fallback")

    if amount < 1 or float(amount) != int(amount):
        raise ScheduleValidationError(
            f"Item {item.id}: daily word count must be a positive integer (got {amount})"
        )
    return DailyAmount("count", int(amount), source)


# =============================================================================
# WINDOWS
# =============================================================================


def _place_sections(sections: list[Section]) -> list[_PlacedSection]:
    placed = []
    offset = 0
    for section in sections:
        placed.append(_PlacedSection(section, offset + 1, offset + section.word_count))
        offset += section.word_count
    return placed


def _window_from_sections(
    start: int,
    end: int,
    touched: list[_PlacedSection],
) -> DayWindow:
    if not touched:
        return DayWindow(start=start, end=end)

    first = touched[0]
    last = touched[-1]
    partial = len(touched) == 1 and (start > first.start or end < first.end)

    unit_name = first.section.unit_name
    if first.section.section_id != last.section.section_id and last.section.unit_name:
        unit_name = f"{first.section.unit_name} ~ {last.section.unit_name}"

    minor = first.section.minor_unit
    if len(touched) > 1 and last.section.minor_unit != minor:
        minor = f"{minor}~{last.section.minor_unit}"

    return DayWindow(
        start=start,
        end=end,
        section_ids=tuple(p.section.section_id for p in touched),
        major_unit=first.section.major_unit,
        minor_unit=minor,
        unit_name=unit_name,
        partial=partial,
    )


def plan_count_windows(sections: list[Section], per_day: int) -> list[DayWindow]:
    """Fixed-size windows over the whole content.

    Day d covers [(d-1)*per_day + 1, min(d*per_day, total)].
    """
    placed = _place_sections(sections)
    total = placed[-1].end if placed else 0
    days = math.ceil(total / per_day) if total else 0

    windows = []
    for day in range(1, days + 1):
        start = (day - 1) * per_day + 1
        end = min(day * per_day, total)
        touched = [p for p in placed if p.end >= start and p.start <= end and p.section.word_count]
        windows.append(_window_from_sections(start, end, touched))
    return windows


def plan_section_windows(
    sections: list[Section],
    amount: float,
    section_start: str | None = None,
) -> list[DayWindow]:
    """Section-based windows starting at section_start.

    Raises:
        ScheduleValidationError: If section_start names no section.
    """
    placed = _place_sections(sections)

    if section_start:
        start_index = next(
            (i for i, p in enumerate(placed) if p.section.minor_unit == section_start),
            None,
        )
        if start_index is None:
            raise ScheduleValidationError(f"Section '{section_start}' not found")
        placed = placed[start_index:]

    placed = [p for p in placed if p.section.word_count > 0]
    windows: list[DayWindow] = []

    if amount == 0.5:
        for p in placed:
            half = math.ceil(p.section.word_count / 2)
            windows.append(_window_from_sections(p.start, p.start + half - 1, [p]))
            if p.start + half <= p.end:
                windows.append(_window_from_sections(p.start + half, p.end, [p]))
        return windows

    step = int(amount)
    for i in range(0, len(placed), step):
        chunk = placed[i:i + step]
        windows.append(_window_from_sections(chunk[0].start, chunk[-1].end, chunk))
    return windows


def plan_item(
    item: CurriculumItem,
    overrides: SettingOverrides | None = None,
    config: ScheduleConfig | None = None,
) -> ItemPlan:
    """Build the day windows of one item.

    Raises:
        ScheduleValidationError: If the item type is unknown or its content
            has not been loaded.
    """
    if item.item_type not in ITEM_TYPES:
        raise ScheduleValidationError(
            f"Item {item.id}: unknown item_type '{item.item_type}'"
        )
    if item.content is None:
        raise ScheduleValidationError(
            f"Item {item.id}: content '{item.item_id}' is not loaded"
        )

    daily = resolve_daily_amount(item, overrides, config)
    sections = item.content.effective_sections()
    total = sum(s.word_count for s in sections)

    if daily.is_section:
        windows = plan_section_windows(sections, daily.amount, item.section_start)
    else:
        windows = plan_count_windows(sections, int(daily.amount))

    if not windows:
        logger.debug("pacing.empty_item", item_id=item.id, content_id=item.item_id)

    return ItemPlan(item=item, daily=daily, total_units=total, windows=windows)
