"""Civil-calendar helpers for schedule math.

All schedule arithmetic works on datetime.date values. Timestamps are
converted to the academy's civil timezone exactly once, here, so that a
study day never shifts across a UTC midnight.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Iterator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from academy.config.app_config import load_app_config
from academy.core.models import BreakInterval
from academy.utils.validators import (
    ScheduleValidationError,
    parse_iso_date,
    weekday_token,
)

KOREAN_WEEKDAY_LABELS = ("월", "화", "수", "목", "금", "토", "일")


def _zone(tz_name: str | None) -> ZoneInfo:
    name = tz_name or load_app_config().schedule.timezone
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError as e:
        raise ScheduleValidationError(f"Unknown timezone '{name}'") from e


def to_civil_date(value: date | datetime | str, tz_name: str | None = None) -> date:
    """Turn a date, timestamp or ISO string into a civil date.

    Aware datetimes are converted to the civil timezone first. Naive
    datetimes and plain dates are taken as already civil.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(_zone(tz_name)).date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) > 10:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return parse_iso_date(text)
        return to_civil_date(parsed, tz_name)
    return parse_iso_date(text)


def civil_today(tz_name: str | None = None, now: datetime | None = None) -> date:
    """Today's date in the civil timezone."""
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(_zone(tz_name)).date()


def is_on_break(day: date, breaks: Iterable[BreakInterval]) -> bool:
    return any(b.contains(day) for b in breaks)


def is_study_day(
    day: date,
    study_days: frozenset[str],
    breaks: Iterable[BreakInterval] = (),
) -> bool:
    """True if the weekday is scheduled and the day is not inside a break."""
    return weekday_token(day) in study_days and not is_on_break(day, breaks)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield each date from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def get_week_days(anchor: date, week_offset: int = 0) -> list[dict]:
    """Monday to Friday of the week containing anchor, shifted by week_offset.

    Returns:
        List of dicts with "date" (ISO), "day_of_week" (Korean label) and
        "full_date" (date).
    """
    monday = anchor - timedelta(days=anchor.weekday()) + timedelta(weeks=week_offset)
    days = []
    for i in range(5):
        d = monday + timedelta(days=i)
        days.append(
            {
                "date": d.isoformat(),
                "day_of_week": KOREAN_WEEKDAY_LABELS[d.weekday()],
                "full_date": d,
            }
        )
    return days


def week_start_sunday(day: date) -> date:
    """Sunday on or before day (reward weeks start on Sunday)."""
    return day - timedelta(days=(day.weekday() + 1) % 7)
