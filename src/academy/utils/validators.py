"""Data validation helpers.

Input conventions:
- Dates: ISO "YYYY-MM-DD" civil dates
- Study days: three-letter weekday tokens, lowercase ("mon" .. "sun")
- Enrollment IDs: opaque strings, resolvable by unique prefix in the CLI

Functions:
- parse_iso_date(value) -> date: Parse a civil date
- normalize_study_days(raw) -> frozenset[str]: Canonical weekday tokens
- resolve_id(prefix, candidates) -> str: Resolve prefix to a unique ID
"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Iterable

# date.weekday() order
WEEKDAY_TOKENS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

_WEEKDAY_ALIASES = {
    "monday": "mon",
    "tuesday": "tue",
    "tues": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "thur": "thu",
    "thurs": "thu",
    "friday": "fri",
    "saturday": "sat",
    "sunday": "sun",
}


class ScheduleValidationError(ValueError):
    """Raised when enrollment or curriculum data is malformed."""

    pass


class AmbiguousIdError(Exception):
    """Raised when an ID prefix matches multiple records."""

    def __init__(self, prefix: str, candidates: list[str]):
        self.prefix = prefix
        self.candidates = candidates
        super().__init__(
            f"Prefix '{prefix}' is ambiguous. Candidates:\n"
            + "\n".join(f"  - {c}" for c in candidates)
        )


class IdNotFoundError(Exception):
    """Raised when no record matches the given prefix."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        super().__init__(f"No record found with prefix '{prefix}'")


def parse_iso_date(value: str | date) -> date:
    """Parse an ISO civil date.

    Datetime strings are accepted and truncated to their date part, which
    is the civil date they were written in.

    Raises:
        ScheduleValidationError: If the value is not a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError as e:
        raise ScheduleValidationError(f"Invalid date '{value}': expected YYYY-MM-DD") from e


def normalize_weekday(token: str) -> str:
    """Map a weekday spelling ("Mon", "monday") to its canonical token.

    Raises:
        ScheduleValidationError: If the token names no weekday.
    """
    key = token.strip().lower()
    key = _WEEKDAY_ALIASES.get(key, key)
    if key not in WEEKDAY_TOKENS:
        raise ScheduleValidationError(f"Unknown study day '{token}'")
    return key


def normalize_study_days(raw: str | Iterable[str]) -> frozenset[str]:
    """Normalize a study-day set.

    Accepts a list of tokens or the legacy string form "['mon','wed']".

    Raises:
        ScheduleValidationError: If the set is empty or contains unknown tokens.
    """
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("["):
            try:
                parsed = json.loads(text.replace("'", '"'))
            except json.JSONDecodeError as e:
                raise ScheduleValidationError(f"Cannot parse study_days: {raw!r}") from e
        else:
            parsed = [p for p in text.replace(";", ",").split(",")]
        tokens = [str(p) for p in parsed if str(p).strip()]
    else:
        tokens = [str(p) for p in raw]

    days = frozenset(normalize_weekday(t) for t in tokens)
    if not days:
        raise ScheduleValidationError("study_days must name at least one weekday")
    return days


def weekday_token(day: date) -> str:
    """Canonical token for a civil date's weekday."""
    return WEEKDAY_TOKENS[day.weekday()]


def resolve_id(prefix: str, candidates: list[str]) -> str:
    """Resolve an ID prefix to a unique full ID.

    Args:
        prefix: Partial or full ID
        candidates: List of all available IDs

    Returns:
        The unique matching ID

    Raises:
        IdNotFoundError: If no candidates match the prefix
        AmbiguousIdError: If multiple candidates match the prefix
    """
    # Exact match first
    if prefix in candidates:
        return prefix

    matches = [c for c in candidates if c.startswith(prefix)]

    if len(matches) == 0:
        raise IdNotFoundError(prefix)
    elif len(matches) == 1:
        return matches[0]
    else:
        raise AmbiguousIdError(prefix, matches)
