from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Field(Enum):
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY_OF_MONTH = "day-of-month"
    MONTH = "month"
    DAY_OF_WEEK = "day-of-week"
    YEAR = "year"

    @property
    def min(self) -> int:
        return _FIELD_BOUNDS[self][0]

    @property
    def max(self) -> int:
        return _FIELD_BOUNDS[self][1]

    @property
    def label(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


_FIELD_BOUNDS: dict[Field, tuple[int, int]] = {
    Field.SECOND: (0, 59),
    Field.MINUTE: (0, 59),
    Field.HOUR: (0, 23),
    Field.DAY_OF_MONTH: (1, 31),
    Field.MONTH: (1, 12),
    # 0 and 7 are both Sunday; parsed specs only ever hold 0..6
    Field.DAY_OF_WEEK: (0, 7),
    Field.YEAR: (1970, 2099),
}


MONTH_ALIASES: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

WEEKDAY_ALIASES: dict[str, int] = {
    "sun": 0,
    "mon": 1,
    "tue": 2,
    "wed": 3,
    "thu": 4,
    "fri": 5,
    "sat": 6,
}


# --- Field terms ---


@dataclass(frozen=True, slots=True)
class Every:
    pass


@dataclass(frozen=True, slots=True)
class StepRange:
    start: int
    end: int
    step: int = 1

    def contains(self, value: int) -> bool:
        return self.start <= value <= self.end and (value - self.start) % self.step == 0

    def ceiling(self, value: int) -> int | None:
        if value <= self.start:
            return self.start
        distance_to_next = (self.step - (value - self.start)) % self.step
        nxt = value + distance_to_next
        return nxt if nxt <= self.end else None

    def floor(self, value: int) -> int | None:
        if value < self.start:
            return None
        top = min(value, self.end)
        return top - (top - self.start) % self.step


@dataclass(frozen=True, slots=True)
class LastDay:
    """`L` or `L-n` in the day-of-month column."""

    offset: int = 0


@dataclass(frozen=True, slots=True)
class LastBusinessDay:
    """`LW`: the last Monday-Friday of the month."""


@dataclass(frozen=True, slots=True)
class NearestWeekday:
    """`nW`: the Monday-Friday closest to day n, never leaving the month."""

    day: int


@dataclass(frozen=True, slots=True)
class LastWeekdayOf:
    """`nL` in the day-of-week column: the last such weekday of the month."""

    weekday: int


@dataclass(frozen=True, slots=True)
class NthWeekdayOf:
    """`n#k` in the day-of-week column: the k-th such weekday of the month."""

    weekday: int
    n: int


Term = Every | StepRange | LastDay | LastBusinessDay | NearestWeekday | LastWeekdayOf | NthWeekdayOf

CalendarTerm = LastDay | LastBusinessDay | NearestWeekday | LastWeekdayOf | NthWeekdayOf


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """The parsed form of one column.

    Numeric terms are answered arithmetically by `matches`, `ceiling` and
    `floor`. Calendar terms (`L`, `W`, `#`) depend on the month being
    looked at and are resolved by the evaluator; they are ignored here.
    """

    field: Field
    terms: tuple[Term, ...]

    @property
    def min(self) -> int:
        return self.field.min

    @property
    def max(self) -> int:
        return self.field.max

    @property
    def is_wildcard(self) -> bool:
        return any(isinstance(t, Every) for t in self.terms)

    @property
    def has_last(self) -> bool:
        return any(isinstance(t, LastDay | LastBusinessDay | LastWeekdayOf) for t in self.terms)

    @property
    def calendar_terms(self) -> tuple[CalendarTerm, ...]:
        return tuple(
            t
            for t in self.terms
            if isinstance(t, LastDay | LastBusinessDay | NearestWeekday | LastWeekdayOf | NthWeekdayOf)
        )

    def matches(self, value: int) -> bool:
        for term in self.terms:
            match term:
                case Every():
                    if self.min <= value <= self.max:
                        return True
                case StepRange():
                    if term.contains(value):
                        return True
        return False

    def ceiling(self, value: int) -> int | None:
        """Smallest allowed value >= `value`, or None when the domain is exhausted."""
        if value > self.max:
            return None
        best: int | None = None
        for term in self.terms:
            candidate: int | None = None
            match term:
                case Every():
                    candidate = max(value, self.min)
                case StepRange():
                    candidate = term.ceiling(value)
            if candidate is not None and (best is None or candidate < best):
                best = candidate
        return best

    def floor(self, value: int) -> int | None:
        """Largest allowed value <= `value`, or None below the domain."""
        if value < self.min:
            return None
        best: int | None = None
        for term in self.terms:
            candidate: int | None = None
            match term:
                case Every():
                    candidate = min(value, self.max)
                case StepRange():
                    candidate = term.floor(value)
            if candidate is not None and (best is None or candidate > best):
                best = candidate
        return best

    def values(self) -> list[int]:
        """Expanded numeric values, sorted. Calendar terms are not included."""
        if self.is_wildcard:
            return list(range(self.min, self.max + 1))
        result: set[int] = set()
        for term in self.terms:
            if isinstance(term, StepRange):
                result.update(range(term.start, term.end + 1, term.step))
        return sorted(result)


# --- Sub-pattern ---


@dataclass(frozen=True, slots=True)
class SubPattern:
    second: FieldSpec
    minute: FieldSpec
    hour: FieldSpec
    day_of_month: FieldSpec
    month: FieldSpec
    day_of_week: FieldSpec
    year: FieldSpec
    has_seconds: bool = False
    has_year: bool = False

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        return (
            self.second,
            self.minute,
            self.hour,
            self.day_of_month,
            self.month,
            self.day_of_week,
            self.year,
        )


def wildcard(field: Field) -> FieldSpec:
    return FieldSpec(field, (Every(),))


def single(field: Field, value: int) -> FieldSpec:
    return FieldSpec(field, (StepRange(value, value),))
