"""Pytest configuration for phased testing.

Tests are organized by phase (f1, f2, ..., f5).
Only tests for the current phase and completed phases should run.
Future phase tests are automatically skipped.
"""

from datetime import date

import pytest
import structlog

import academy.db.database as database
from academy.config.app_config import DB_PATH_ENV, clear_config_cache
from academy.core.content import build_content
from academy.core.models import CurriculumItem, Enrollment

# Current implementation phase
CURRENT_PHASE = 5


def pytest_collection_modifyitems(config, items):
    """Skip tests from phases that haven't been implemented yet."""
    for item in items:
        # Extract phase from path (tests/f2/... -> 2)
        parts = item.fspath.strpath.split("/")
        for part in parts:
            if part.startswith("f") and part[1:].isdigit():
                test_phase = int(part[1:])
                if test_phase > CURRENT_PHASE:
                    item.add_marker(
                        pytest.mark.skip(
                            reason=f"Phase F{test_phase} not yet implemented (current: F{CURRENT_PHASE})"
                        )
                    )
                break


@pytest.fixture(autouse=True)
def isolated_state(tmp_path, monkeypatch):
    """Point the default database at a temp file and reset module state."""
    monkeypatch.setenv(DB_PATH_ENV, str(tmp_path / "academy.db"))
    monkeypatch.setattr(database, "_db_path", None)
    clear_config_cache()
    yield
    clear_config_cache()
    structlog.reset_defaults()


def _words(count: int, prefix: str = "w", **grouping) -> list[dict]:
    return [
        {"english": f"{prefix}{n}", "korean": f"k-{prefix}{n}", **grouping}
        for n in range(1, count + 1)
    ]


@pytest.fixture
def words():
    """Factory for plain word lists: words(25) -> 25 ungrouped words."""
    return _words


@pytest.fixture
def sectioned_words():
    """Factory for words grouped by minor unit.

    sectioned_words([4, 3, 5]) -> Day 1 (4 words), Day 2 (3), Day 3 (5).
    """

    def build(sizes: list[int], major_unit: str = "Unit 1") -> list[dict]:
        units = []
        for index, size in enumerate(sizes, start=1):
            units.extend(
                _words(
                    size,
                    prefix=f"d{index}-",
                    major_unit=major_unit,
                    minor_unit=f"Day {index}",
                    unit_name=f"Day {index}",
                )
            )
        return units

    return build


@pytest.fixture
def make_item():
    """Factory for curriculum items with loaded content."""

    def build(
        item_pk: str = "item-1",
        units: list[dict] | None = None,
        sequence: int = 1,
        item_type: str = "wordbook",
        **settings,
    ) -> CurriculumItem:
        units = units if units is not None else _words(25)
        settings.setdefault("daily_amount_type", "count")
        if settings["daily_amount_type"] == "count":
            settings.setdefault("daily_word_count", 10)
        return CurriculumItem(
            id=item_pk,
            sequence=sequence,
            item_type=item_type,
            item_id=f"book-{item_pk}",
            content=build_content(f"book-{item_pk}", f"Book {item_pk}", units, item_type),
            **settings,
        )

    return build


@pytest.fixture
def make_enrollment(make_item):
    """Factory for enrollments; default is Mon/Wed/Fri from 2025-01-06."""

    def build(
        items: list[CurriculumItem] | None = None,
        start_date: date = date(2025, 1, 6),
        study_days: frozenset[str] = frozenset({"mon", "wed", "fri"}),
        **fields,
    ) -> Enrollment:
        return Enrollment(
            id=fields.pop("id", "enr-1"),
            student_id=fields.pop("student_id", "stu-1"),
            curriculum_id=fields.pop("curriculum_id", "cur-1"),
            start_date=start_date,
            study_days=study_days,
            items=items if items is not None else [make_item()],
            **fields,
        )

    return build
