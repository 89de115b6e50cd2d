from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime

from ._ast import (
    MONTH_ALIASES,
    WEEKDAY_ALIASES,
    CalendarTerm,
    Every,
    Field,
    FieldSpec,
    LastBusinessDay,
    LastDay,
    LastWeekdayOf,
    NearestWeekday,
    NthWeekdayOf,
    StepRange,
    SubPattern,
    Term,
)
from ._display import describe as _describe
from ._display import display as _display
from ._error import (
    CronError,
    CronErrorKind,
    MalformedExpressionError,
    MalformedFieldError,
    NoMatchError,
    ParseError,
    Span,
)
from ._eval import DEFAULT_SEARCH_YEARS, Zone
from ._eval import between as _between
from ._eval import matches as _matches
from ._eval import next_after as _next_after
from ._eval import next_n as _next_n
from ._eval import occurrences as _occurrences
from ._eval import previous_before as _previous_before
from ._parser import parse as _parse


class SchedulePattern:
    """A parsed cron expression, possibly a `|`-union of several rules.

    Instances are immutable and may be shared freely between threads.
    Equality and hashing use the source text, which `str()` returns
    verbatim.
    """

    __slots__ = ("_source", "_subpatterns", "_search_years")

    _source: str
    _subpatterns: tuple[SubPattern, ...]
    _search_years: int

    def __init__(self, expression: str, *, search_years: int = DEFAULT_SEARCH_YEARS) -> None:
        if search_years < 1:
            raise ValueError(f"search_years must be >= 1, got {search_years}")
        self._source = expression
        self._subpatterns = _parse(expression)
        self._search_years = search_years

    @classmethod
    def parse(cls, expression: str, *, search_years: int = DEFAULT_SEARCH_YEARS) -> SchedulePattern:
        return cls(expression, search_years=search_years)

    @classmethod
    def validate(cls, expression: str) -> bool:
        try:
            _parse(expression)
            return True
        except ParseError:
            return False

    def matches(
        self,
        dt: datetime,
        zone: Zone = None,
        include_seconds: bool | None = None,
    ) -> bool:
        """Whether `dt`, read as wall time in `zone`, satisfies any sub-pattern.

        Seconds are checked only for sub-patterns written with a second
        column, unless `include_seconds` forces it on or off.
        """
        return _matches(self._subpatterns, dt, zone, include_seconds)

    def next_after(self, now: datetime, zone: Zone = None) -> datetime:
        """The earliest matching instant at least one second after `now`.

        Raises NoMatchError when no sub-pattern can match within the search
        horizon.
        """
        return _next_after(self._subpatterns, now, zone, self._search_years)

    def previous_before(self, now: datetime, zone: Zone = None) -> datetime:
        return _previous_before(self._subpatterns, now, zone, self._search_years)

    def next_n(self, now: datetime, n: int, zone: Zone = None) -> list[datetime]:
        return _next_n(self._subpatterns, now, n, zone, self._search_years)

    def occurrences(self, start: datetime, zone: Zone = None) -> Iterator[datetime]:
        """Returns a lazy iterator of occurrences strictly after `start`.

        The iterator ends once the pattern cannot match any more (for example
        after the last year named in a year column). If the pattern never
        matches at all, the first `next()` raises NoMatchError.
        """
        return _occurrences(self._subpatterns, start, zone, self._search_years)

    def between(
        self,
        start: datetime,
        end: datetime,
        limit: int | None = None,
        zone: Zone = None,
    ) -> Iterator[datetime]:
        """Returns a bounded iterator of occurrences where `start < occurrence <= end`.

        At most `limit` occurrences are produced when it is given.
        """
        return _between(self._subpatterns, start, end, limit, zone, self._search_years)

    def canonical(self) -> str:
        return _display(self._subpatterns)

    def describe(self) -> str:
        return _describe(self._subpatterns)

    @property
    def source(self) -> str:
        return self._source

    @property
    def subpatterns(self) -> tuple[SubPattern, ...]:
        return self._subpatterns

    @property
    def search_years(self) -> int:
        return self._search_years

    def __str__(self) -> str:
        return self._source

    def __repr__(self) -> str:
        return f"SchedulePattern({self._source!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchedulePattern):
            return NotImplemented
        return self._source == other._source

    def __hash__(self) -> int:
        return hash(self._source)


def parse(expression: str, *, search_years: int = DEFAULT_SEARCH_YEARS) -> SchedulePattern:
    return SchedulePattern(expression, search_years=search_years)


def matches(
    pattern: SchedulePattern,
    dt: datetime,
    zone: Zone = None,
    include_seconds: bool | None = None,
) -> bool:
    return pattern.matches(dt, zone, include_seconds)


def next_after(pattern: SchedulePattern, now: datetime, zone: Zone = None) -> datetime:
    return pattern.next_after(now, zone)


def matches_between(
    pattern: SchedulePattern,
    start: datetime,
    end: datetime,
    limit: int | None = None,
    zone: Zone = None,
) -> Iterator[datetime]:
    return pattern.between(start, end, limit, zone)


__all__ = [
    "SchedulePattern",
    "parse",
    "matches",
    "next_after",
    "matches_between",
    "DEFAULT_SEARCH_YEARS",
    "Zone",
    "CronError",
    "CronErrorKind",
    "ParseError",
    "MalformedExpressionError",
    "MalformedFieldError",
    "NoMatchError",
    "Span",
    "Field",
    "FieldSpec",
    "SubPattern",
    "Term",
    "CalendarTerm",
    "Every",
    "StepRange",
    "LastDay",
    "LastBusinessDay",
    "NearestWeekday",
    "LastWeekdayOf",
    "NthWeekdayOf",
    "MONTH_ALIASES",
    "WEEKDAY_ALIASES",
]
