"""Build Content objects from stored word and question lists."""

from __future__ import annotations

from typing import Any

from academy.core.models import Content, Section

# Minor unit label for words that carry none
UNGROUPED_MINOR_UNIT = "etc"


def group_sections(units: list[dict[str, Any]], content_id: str) -> list[Section]:
    """Group consecutive units sharing (major_unit, minor_unit) into sections.

    Units without any grouping keys produce no sections; the content is
    then paced as one block.
    """
    if not any(u.get("minor_unit") or u.get("major_unit") for u in units):
        return []

    sections: list[Section] = []
    current_key: tuple[str, str] | None = None
    current: list[dict[str, Any]] = []

    def flush() -> None:
        if not current:
            return
        first = current[0]
        sections.append(
            Section(
                section_id=f"{content_id}-s{len(sections) + 1:02d}",
                major_unit=str(first.get("major_unit") or ""),
                minor_unit=str(first.get("minor_unit") or UNGROUPED_MINOR_UNIT),
                unit_name=str(first.get("unit_name") or first.get("minor_unit") or ""),
                word_count=len(current),
            )
        )

    for unit in units:
        key = (str(unit.get("major_unit") or ""), str(unit.get("minor_unit") or ""))
        if key != current_key:
            flush()
            current = []
            current_key = key
        current.append(unit)
    flush()

    return sections


def build_content(
    content_id: str,
    title: str,
    units: list[dict[str, Any]],
    kind: str = "wordbook",
) -> Content:
    """Content with sections derived from its units."""
    return Content(
        content_id=content_id,
        title=title,
        kind=kind,  # type: ignore[arg-type]
        units=list(units),
        sections=group_sections(units, content_id),
    )
