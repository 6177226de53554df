"""Tests for schedule resolution: (enrollment, date) -> assignment."""

from datetime import date, datetime, timedelta, timezone

import pytest

from academy.config.app_config import ScheduleConfig
from academy.core.models import BreakInterval, SettingOverrides
from academy.core.schedule_resolver import (
    BeforeEnrollment,
    NoAssignment,
    NoAssignmentReason,
    NoContentRemaining,
    NotAStudyDay,
    OnBreak,
    ScheduleAssignment,
    assignment_status,
    count_study_days,
    get_schedule_for_date,
    list_schedule,
    resolve_assignment,
)
from academy.utils.validators import ScheduleValidationError

CONFIG = ScheduleConfig()


def _window(result):
    assert isinstance(result, ScheduleAssignment), result
    return (result.progress_start, result.progress_end)


@pytest.fixture
def enrollment(make_enrollment):
    """Mon/Wed/Fri from Mon 2025-01-06, one 25-word item at 10 words a day."""
    return make_enrollment()


class TestWorkedExample:
    """Count pacing across a Mon/Wed/Fri week."""

    def test_first_three_study_days(self, enrollment):
        assert _window(get_schedule_for_date(enrollment, date(2025, 1, 6), CONFIG)) == (1, 10)
        assert _window(get_schedule_for_date(enrollment, date(2025, 1, 8), CONFIG)) == (11, 20)
        assert _window(get_schedule_for_date(enrollment, date(2025, 1, 10), CONFIG)) == (21, 25)

    def test_day_index(self, enrollment):
        result = get_schedule_for_date(enrollment, date(2025, 1, 10), CONFIG)
        assert result.day_index == 3
        assert result.local_day == 3
        assert result.item_capacity == 3

    def test_past_the_end(self, enrollment):
        result = get_schedule_for_date(enrollment, date(2025, 1, 13), CONFIG)
        assert isinstance(result, NoAssignment)
        assert result.reason == NoAssignmentReason.CURRICULUM_COMPLETE
        assert result.day_index == 4


class TestNoAssignment:
    """Dates with nothing to study."""

    def test_before_start(self, enrollment):
        result = get_schedule_for_date(enrollment, date(2025, 1, 3), CONFIG)
        assert result.reason == NoAssignmentReason.BEFORE_ENROLLMENT

    def test_before_start_wins_over_weekday(self, enrollment):
        """Jan 2 is a Thursday before the start: reported as before enrollment."""
        result = get_schedule_for_date(enrollment, date(2025, 1, 2), CONFIG)
        assert result.reason == NoAssignmentReason.BEFORE_ENROLLMENT

    def test_non_study_weekday(self, enrollment):
        for day in (date(2025, 1, 7), date(2025, 1, 9), date(2025, 1, 11), date(2025, 1, 12)):
            result = get_schedule_for_date(enrollment, day, CONFIG)
            assert result.reason == NoAssignmentReason.NOT_A_STUDY_DAY

    def test_result_is_falsy(self, enrollment):
        assert not get_schedule_for_date(enrollment, date(2025, 1, 7), CONFIG)
        assert get_schedule_for_date(enrollment, date(2025, 1, 6), CONFIG)

    def test_to_dict(self, enrollment):
        data = get_schedule_for_date(enrollment, date(2025, 1, 7), CONFIG).to_dict()
        assert data == {
            "date": "2025-01-07",
            "assigned": False,
            "reason": "not_a_study_day",
            "day_index": None,
        }


class TestBreaks:
    """Breaks are excluded from the study-day count."""

    def test_break_day_has_no_assignment(self, make_enrollment):
        enrollment = make_enrollment(breaks=[BreakInterval(date(2025, 1, 8), date(2025, 1, 8))])
        result = get_schedule_for_date(enrollment, date(2025, 1, 8), CONFIG)
        assert result.reason == NoAssignmentReason.ON_BREAK

    def test_break_shifts_following_days(self, make_enrollment):
        enrollment = make_enrollment(breaks=[BreakInterval(date(2025, 1, 8), date(2025, 1, 8))])
        assert _window(get_schedule_for_date(enrollment, date(2025, 1, 10), CONFIG)) == (11, 20)
        assert _window(get_schedule_for_date(enrollment, date(2025, 1, 13), CONFIG)) == (21, 25)

    def test_break_on_non_study_weekday(self, make_enrollment):
        enrollment = make_enrollment(breaks=[BreakInterval(date(2025, 1, 7), date(2025, 1, 7))])
        result = get_schedule_for_date(enrollment, date(2025, 1, 7), CONFIG)
        assert result.reason == NoAssignmentReason.NOT_A_STUDY_DAY
        assert _window(get_schedule_for_date(enrollment, date(2025, 1, 8), CONFIG)) == (11, 20)

    def test_count_study_days(self, make_enrollment):
        enrollment = make_enrollment(breaks=[BreakInterval(date(2025, 1, 8), date(2025, 1, 10))])
        assert count_study_days(enrollment, date(2025, 1, 5)) == 0
        assert count_study_days(enrollment, date(2025, 1, 6)) == 1
        assert count_study_days(enrollment, date(2025, 1, 13)) == 2


class TestMultipleItems:
    """Items are traversed in sequence order."""

    @pytest.fixture
    def enrollment(self, make_enrollment, make_item, words):
        listening = make_item(
            "item-2",
            units=[{"question": f"q{n}"} for n in range(1, 5)],
            sequence=2,
            item_type="listening",
            daily_word_count=2,
        )
        # Stored out of order on purpose
        return make_enrollment(items=[listening, make_item("item-1", sequence=1)])

    def test_second_item_follows_first(self, enrollment):
        result = get_schedule_for_date(enrollment, date(2025, 1, 13), CONFIG)
        assert result.item.id == "item-2"
        assert result.local_day == 1
        assert _window(result) == (1, 2)

        result = get_schedule_for_date(enrollment, date(2025, 1, 15), CONFIG)
        assert _window(result) == (3, 4)

    def test_complete_after_last_item(self, enrollment):
        result = get_schedule_for_date(enrollment, date(2025, 1, 17), CONFIG)
        assert result.reason == NoAssignmentReason.CURRICULUM_COMPLETE

    def test_empty_item_takes_no_days(self, make_enrollment, make_item):
        enrollment = make_enrollment(
            items=[make_item("empty", units=[], sequence=1), make_item("item-2", sequence=2)]
        )
        result = get_schedule_for_date(enrollment, date(2025, 1, 6), CONFIG)
        assert result.item.id == "item-2"

    def test_progress_is_monotonic(self, enrollment):
        """Each assignment comes strictly after the previous one in traversal order."""
        results = list_schedule(enrollment, date(2025, 1, 1), date(2025, 2, 28), CONFIG)
        keys = [(r.item.sequence, r.progress_start) for r in results]
        assert keys == sorted(keys)
        assert len(set(keys)) == len(keys)
        assert len(results) == 5


class TestResolution:
    """Purity, timestamps and the raising variant."""

    def test_idempotent(self, enrollment):
        first = get_schedule_for_date(enrollment, date(2025, 1, 8), CONFIG)
        second = get_schedule_for_date(enrollment, date(2025, 1, 8), CONFIG)
        assert first == second

    def test_progress_cursor_is_ignored(self, make_enrollment):
        """current_item_id / current_progress never change the answer."""
        moved = make_enrollment(current_item_id="item-1", current_progress=20)
        assert _window(get_schedule_for_date(moved, date(2025, 1, 6), CONFIG)) == (1, 10)

    def test_aware_timestamp_uses_civil_date(self, enrollment):
        """Sunday 16:00 UTC is Monday 01:00 in Seoul."""
        ts = datetime(2025, 1, 5, 16, 0, tzinfo=timezone.utc)
        result = get_schedule_for_date(enrollment, ts, CONFIG)
        assert result.target_date == date(2025, 1, 6)
        assert _window(result) == (1, 10)

    def test_iso_string_target(self, enrollment):
        assert _window(get_schedule_for_date(enrollment, "2025-01-08", CONFIG)) == (11, 20)

    def test_overrides_apply(self, make_enrollment):
        enrollment = make_enrollment(setting_overrides=SettingOverrides(daily_amount=5))
        assert _window(get_schedule_for_date(enrollment, date(2025, 1, 8), CONFIG)) == (6, 10)

    def test_override_with_mixed_item_types(self, make_enrollment, make_item, sectioned_words):
        """A word-count override paces count items and leaves section items alone."""
        enrollment = make_enrollment(
            items=[
                make_item("item-1", sequence=1),
                make_item(
                    "item-2",
                    units=sectioned_words([4, 3]),
                    sequence=2,
                    daily_amount_type="section",
                    daily_section_amount=1,
                ),
            ],
            setting_overrides=SettingOverrides(daily_amount=20),
        )

        assert _window(get_schedule_for_date(enrollment, date(2025, 1, 6), CONFIG)) == (1, 20)
        assert _window(get_schedule_for_date(enrollment, date(2025, 1, 8), CONFIG)) == (21, 25)
        result = get_schedule_for_date(enrollment, date(2025, 1, 10), CONFIG)
        assert result.item.id == "item-2"
        assert _window(result) == (1, 4)

    def test_section_item(self, make_enrollment, make_item, sectioned_words):
        item = make_item(
            units=sectioned_words([4, 3, 5]),
            daily_amount_type="section",
            daily_section_amount=2,
        )
        enrollment = make_enrollment(items=[item])
        result = get_schedule_for_date(enrollment, date(2025, 1, 6), CONFIG)
        assert _window(result) == (1, 7)
        assert result.unit_name == "Day 1 ~ Day 2"
        assert result.to_dict()["major_unit"] == "Unit 1"

    def test_to_dict(self, enrollment):
        data = get_schedule_for_date(enrollment, date(2025, 1, 8), CONFIG).to_dict()
        assert data["assigned"] is True
        assert data["progress_range"] == "11~20"
        assert data["word_count"] == 10
        assert data["item"]["id"] == "item-1"
        assert data["daily_amount_type"] == "count"

    @pytest.mark.parametrize(
        "day, error",
        [
            (date(2025, 1, 3), BeforeEnrollment),
            (date(2025, 1, 7), NotAStudyDay),
            (date(2025, 1, 13), NoContentRemaining),
        ],
    )
    def test_resolve_assignment_raises(self, enrollment, day, error):
        with pytest.raises(error) as exc_info:
            resolve_assignment(enrollment, day, CONFIG)
        assert exc_info.value.target_date == day

    def test_resolve_assignment_on_break(self, make_enrollment):
        enrollment = make_enrollment(breaks=[BreakInterval(date(2025, 1, 6), date(2025, 1, 6))])
        with pytest.raises(OnBreak):
            resolve_assignment(enrollment, date(2025, 1, 6), CONFIG)

    def test_resolve_assignment_returns(self, enrollment):
        assert resolve_assignment(enrollment, date(2025, 1, 6), CONFIG).progress_range == "1~10"

    def test_empty_study_days_rejected(self, make_enrollment):
        enrollment = make_enrollment(study_days=frozenset())
        with pytest.raises(ScheduleValidationError):
            get_schedule_for_date(enrollment, date(2025, 1, 6), CONFIG)


class TestListSchedule:
    def test_study_days_only(self, enrollment):
        results = list_schedule(enrollment, date(2025, 1, 6), date(2025, 1, 12), CONFIG)
        assert [r.target_date.day for r in results] == [6, 8, 10]

    def test_include_empty(self, enrollment):
        results = list_schedule(
            enrollment, date(2025, 1, 6), date(2025, 1, 12), CONFIG, include_empty=True
        )
        assert len(results) == 7
        assert sum(1 for r in results if r) == 3


class TestAssignmentStatus:
    def test_relative_to_today(self, enrollment):
        result = get_schedule_for_date(enrollment, date(2025, 1, 8), CONFIG)
        assert assignment_status(result, date(2025, 1, 9)) == "completed"
        assert assignment_status(result, date(2025, 1, 8)) == "today"
        assert assignment_status(result, date(2025, 1, 8) - timedelta(days=1)) == "upcoming"
