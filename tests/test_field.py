"""Field-level tests: term arithmetic, parsed field contents and day resolution."""

from __future__ import annotations

import pytest

from cronpat import (
    Every,
    Field,
    LastBusinessDay,
    LastDay,
    LastWeekdayOf,
    NearestWeekday,
    NthWeekdayOf,
    SchedulePattern,
    StepRange,
    SubPattern,
)
from cronpat._eval import allowed_days


def _sub(expression: str) -> SubPattern:
    (sub,) = SchedulePattern(expression).subpatterns
    return sub


# =============================================================================
# StepRange arithmetic
# =============================================================================


class TestStepRange:
    _quarters = StepRange(0, 59, 15)

    def test_contains(self) -> None:
        assert self._quarters.contains(45)
        assert not self._quarters.contains(46)

    @pytest.mark.parametrize(
        "value,expected", [(0, 0), (1, 15), (15, 15), (16, 30), (45, 45), (46, None)]
    )
    def test_ceiling(self, value: int, expected: int | None) -> None:
        assert self._quarters.ceiling(value) == expected

    @pytest.mark.parametrize("value,expected", [(0, 0), (14, 0), (44, 30), (59, 45), (100, 45)])
    def test_floor(self, value: int, expected: int | None) -> None:
        assert self._quarters.floor(value) == expected

    def test_offset_start(self) -> None:
        r = StepRange(6, 59, 3)
        assert r.ceiling(7) == 9
        assert r.floor(7) == 6
        assert r.floor(5) is None


# =============================================================================
# Parsed field contents
# =============================================================================


class TestFieldSpec:
    def test_step_binds_to_last_list_element(self) -> None:
        minute = _sub("2,3,6/3 * * * *").minute
        assert minute.values() == [2, 3, *range(6, 60, 3)]
        assert not minute.matches(4)

    def test_star_step(self) -> None:
        assert _sub("*/20 * * * *").minute.values() == [0, 20, 40]

    def test_range_step(self) -> None:
        assert _sub("0 8-18/4 * * *").hour.values() == [8, 12, 16]

    def test_only_bare_star_is_wildcard(self) -> None:
        sub = _sub("*/2 * ? * *")
        assert not sub.minute.is_wildcard
        assert sub.hour.is_wildcard
        assert sub.day_of_month.is_wildcard

    def test_ceiling_and_floor_outside_domain(self) -> None:
        hour = _sub("0 9-17 * * *").hour
        assert hour.ceiling(18) is None
        assert hour.ceiling(24) is None
        assert hour.ceiling(3) == 9
        assert hour.floor(8) is None
        assert hour.floor(-1) is None
        assert hour.floor(23) == 17

    def test_wildcard_ceiling(self) -> None:
        minute = _sub("* * * * *").minute
        assert minute.ceiling(37) == 37
        assert minute.ceiling(60) is None

    def test_month_names_are_case_insensitive(self) -> None:
        assert _sub("0 0 1 jan-MAR,Dec *").month.values() == [1, 2, 3, 12]

    @pytest.mark.parametrize(
        "column,expected",
        [
            ("7", [0]),
            ("0,7", [0]),
            ("5-7", [0, 5, 6]),
            ("FRI-MON", [0, 1, 5, 6]),
            ("SAT-SUN", [0, 6]),
            ("7-2", [0, 1, 2]),
            ("7-7", [0]),
            ("7-5/2", [0, 2, 4]),
            ("1-5/2", [1, 3, 5]),
        ],
    )
    def test_weekday_normalization(self, column: str, expected: list[int]) -> None:
        assert _sub(f"0 0 * * {column}").day_of_week.values() == expected

    def test_five_columns_fire_on_second_zero(self) -> None:
        sub = _sub("* * * * *")
        assert sub.second.values() == [0]
        assert not sub.has_seconds
        assert sub.year.is_wildcard

    def test_field_bounds(self) -> None:
        assert (Field.DAY_OF_MONTH.min, Field.DAY_OF_MONTH.max) == (1, 31)
        assert (Field.YEAR.min, Field.YEAR.max) == (1970, 2099)
        assert str(Field.DAY_OF_WEEK) == "day-of-week"


class TestCalendarTerms:
    @pytest.mark.parametrize(
        "column,term",
        [
            ("L", LastDay()),
            ("l", LastDay()),
            ("L-3", LastDay(3)),
            ("LW", LastBusinessDay()),
            ("15W", NearestWeekday(15)),
        ],
    )
    def test_day_of_month_terms(self, column: str, term: object) -> None:
        assert _sub(f"0 0 {column} * *").day_of_month.terms == (term,)

    @pytest.mark.parametrize(
        "column,term",
        [
            ("5L", LastWeekdayOf(5)),
            ("FRIL", LastWeekdayOf(5)),
            ("1#2", NthWeekdayOf(1, 2)),
            ("7#1", NthWeekdayOf(0, 1)),
            ("MON#5", NthWeekdayOf(1, 5)),
        ],
    )
    def test_day_of_week_terms(self, column: str, term: object) -> None:
        assert _sub(f"0 0 * * {column}").day_of_week.terms == (term,)

    def test_calendar_terms_are_not_numeric_values(self) -> None:
        dom = _sub("0 0 1,L * *").day_of_month
        assert dom.values() == [1]
        assert dom.calendar_terms == (LastDay(),)
        assert dom.has_last

    def test_question_mark_is_wildcard(self) -> None:
        assert _sub("0 0 ? * 1").day_of_month.terms == (Every(),)


# =============================================================================
# Day resolution
# =============================================================================


class TestAllowedDays:
    def test_both_wildcards_allow_every_day(self) -> None:
        assert allowed_days(_sub("0 0 * * *"), 2024, 2) == list(range(1, 30))
        assert allowed_days(_sub("0 0 * * *"), 2023, 2) == list(range(1, 29))

    def test_day_columns_are_ored(self) -> None:
        # September 2024 starts on a Sunday: Fridays are 6, 13, 20, 27
        assert allowed_days(_sub("0 0 1,15 * 5"), 2024, 9) == [1, 6, 13, 15, 20, 27]

    def test_weekday_only(self) -> None:
        assert allowed_days(_sub("0 0 * * 5"), 2024, 9) == [6, 13, 20, 27]
        assert allowed_days(_sub("0 0 ? * 0"), 2024, 9) == [1, 8, 15, 22, 29]

    def test_day_of_month_clipped_to_month_length(self) -> None:
        assert allowed_days(_sub("0 0 29-31 * *"), 2023, 2) == []
        assert allowed_days(_sub("0 0 29-31 * *"), 2024, 4) == [29, 30]

    def test_last_day(self) -> None:
        assert allowed_days(_sub("0 0 L * *"), 2023, 2) == [28]
        assert allowed_days(_sub("0 0 L * *"), 2024, 2) == [29]
        assert allowed_days(_sub("0 0 L-2 * *"), 2024, 4) == [28]

    def test_last_day_offset_past_start_of_month(self) -> None:
        assert allowed_days(_sub("0 0 L-30 * *"), 2024, 2) == []
        assert allowed_days(_sub("0 0 L-30 * *"), 2024, 1) == [1]

    def test_last_business_day(self) -> None:
        # August 31, 2024 is a Saturday
        assert allowed_days(_sub("0 0 LW * *"), 2024, 8) == [30]
        # June 30, 2024 is a Sunday
        assert allowed_days(_sub("0 0 LW * *"), 2024, 6) == [28]
        # July 31, 2024 is a Wednesday
        assert allowed_days(_sub("0 0 LW * *"), 2024, 7) == [31]

    def test_nearest_weekday(self) -> None:
        # June 1, 2024 is a Saturday: stay inside the month, move to Monday the 3rd
        assert allowed_days(_sub("0 0 1W * *"), 2024, 6) == [3]
        # June 15, 2024 is a Saturday: Friday the 14th
        assert allowed_days(_sub("0 0 15W * *"), 2024, 6) == [14]
        # June 16, 2024 is a Sunday: Monday the 17th
        assert allowed_days(_sub("0 0 16W * *"), 2024, 6) == [17]
        # June 30, 2024 is a Sunday and the last day: Friday the 28th
        assert allowed_days(_sub("0 0 30W * *"), 2024, 6) == [28]
        assert allowed_days(_sub("0 0 31W * *"), 2024, 6) == []

    def test_last_weekday_of_month(self) -> None:
        # February 2024 starts on a Thursday
        assert allowed_days(_sub("0 0 ? * 5L"), 2024, 2) == [23]
        assert allowed_days(_sub("0 0 ? * 4L"), 2024, 2) == [29]

    def test_nth_weekday_of_month(self) -> None:
        assert allowed_days(_sub("0 0 ? * 1#2"), 2024, 2) == [12]
        assert allowed_days(_sub("0 0 ? * 4#5"), 2024, 2) == [29]
        assert allowed_days(_sub("0 0 ? * 1#5"), 2024, 2) == []
