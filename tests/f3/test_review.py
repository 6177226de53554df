"""Tests for review ranges and review question generation."""

import random
from datetime import date

import pytest

from academy.config.app_config import ScheduleConfig
from academy.core.content import build_content
from academy.core.review import (
    ReviewError,
    ReviewRange,
    build_review_questions,
    calculate_review_range,
    pick_distractors,
    review_range_for_assignment,
)
from academy.core.schedule_resolver import get_schedule_for_date

CONFIG = ScheduleConfig()


class TestCalculateReviewRange:
    """Tests for calculate_review_range."""

    def test_second_day_reviews_first(self):
        """currentEnd 20 at 10 a day reviews [1, 10]."""
        assert calculate_review_range(20, 10) == ReviewRange(1, 10)

    def test_first_day_has_nothing(self):
        """currentEnd 10 at 10 a day: reviewEnd 0, no review."""
        assert calculate_review_range(10, 10) is None

    def test_start_clamped_to_one(self):
        assert calculate_review_range(25, 10) == ReviewRange(1, 15)

    def test_two_full_days(self):
        assert calculate_review_range(50, 10) == ReviewRange(21, 40)

    def test_review_days(self):
        assert calculate_review_range(50, 10, review_days=1) == ReviewRange(31, 40)
        assert calculate_review_range(50, 10, review_days=3) == ReviewRange(11, 40)

    def test_zero_cursor(self):
        assert calculate_review_range(0, 10) is None

    @pytest.mark.parametrize(
        "current_end, daily_amount, review_days",
        [(-1, 10, 2), (20, 0, 2), (20, -3, 2), (20, 10, 0)],
    )
    def test_invalid_arguments(self, current_end, daily_amount, review_days):
        with pytest.raises(ReviewError):
            calculate_review_range(current_end, daily_amount, review_days)

    def test_to_dict(self):
        assert ReviewRange(21, 40).to_dict() == {"review_start": 21, "review_end": 40, "total": 20}


class TestReviewRangeForAssignment:
    """Review ranges derived from resolved days."""

    def test_first_day(self, make_enrollment):
        result = get_schedule_for_date(make_enrollment(), date(2025, 1, 6), CONFIG)
        assert review_range_for_assignment(result, CONFIG) is None

    def test_second_day(self, make_enrollment):
        result = get_schedule_for_date(make_enrollment(), date(2025, 1, 8), CONFIG)
        assert review_range_for_assignment(result, CONFIG) == ReviewRange(1, 10)

    def test_clamped_last_day_reviews_full_days(self, make_enrollment):
        """Day 3 covers [21, 25] but still reviews the two full days before it."""
        result = get_schedule_for_date(make_enrollment(), date(2025, 1, 10), CONFIG)
        assert review_range_for_assignment(result, CONFIG) == ReviewRange(1, 20)

    def test_section_item_uses_window_size(self, make_enrollment, make_item, sectioned_words):
        item = make_item(units=sectioned_words([4, 3, 5]), daily_amount_type="section")
        result = get_schedule_for_date(make_enrollment(items=[item]), date(2025, 1, 8), CONFIG)
        assert result.progress_range == "5~7"
        assert review_range_for_assignment(result, CONFIG) == ReviewRange(1, 4)


class TestPickDistractors:
    """Tests for pick_distractors."""

    def test_distinct_and_wrong(self, words):
        pool = words(10)
        distractors = pick_distractors(pool, pool[0], random.Random(1))

        assert len(distractors) == 3
        assert len(set(distractors)) == 3
        assert pool[0]["korean"] not in distractors
        assert set(distractors) <= {w["korean"] for w in pool}

    def test_seeded_is_reproducible(self, words):
        pool = words(10)
        first = pick_distractors(pool, pool[3], random.Random(42))
        second = pick_distractors(pool, pool[3], random.Random(42))
        assert first == second

    def test_pool_too_small(self, words):
        pool = words(3)
        with pytest.raises(ReviewError, match="pool has 2"):
            pick_distractors(pool, pool[0], random.Random(1))

    def test_duplicate_answers_count_once(self):
        """Words sharing a meaning give one distinct distractor."""
        pool = [
            {"english": "big", "korean": "큰"},
            {"english": "large", "korean": "큰"},
            {"english": "huge", "korean": "큰"},
            {"english": "small", "korean": "작은"},
        ]
        with pytest.raises(ReviewError):
            pick_distractors(pool, pool[3], random.Random(1), count=2)
        assert pick_distractors(pool, pool[3], random.Random(1), count=1) == ["큰"]


class TestBuildReviewQuestions:
    """Tests for build_review_questions."""

    @pytest.fixture
    def content(self, words):
        return build_content("book-1", "Book 1", words(25))

    def test_one_question_per_unit(self, content):
        questions = build_review_questions(content, ReviewRange(1, 10), random.Random(7))

        assert len(questions) == 10
        assert {q.prompt for q in questions} == {f"w{n}" for n in range(1, 11)}

    def test_choices_contain_answer(self, content):
        for q in build_review_questions(content, ReviewRange(1, 10), random.Random(7)):
            assert len(q.choices) == 4
            assert q.answer in q.choices
            assert q.answer == q.unit["korean"]
            assert len(set(q.choices)) == 4

    def test_seeded_order(self, content):
        first = build_review_questions(content, ReviewRange(11, 20), random.Random(3))
        second = build_review_questions(content, ReviewRange(11, 20), random.Random(3))
        assert [q.prompt for q in first] == [q.prompt for q in second]
        assert [q.choices for q in first] == [q.choices for q in second]

    def test_to_dict_keeps_unit_fields(self, content):
        question = build_review_questions(content, ReviewRange(1, 1), random.Random(1))[0]
        data = question.to_dict()
        assert data["english"] == "w1"
        assert data["answer"] == "k-w1"
        assert len(data["choices"]) == 4
