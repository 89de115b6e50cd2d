from __future__ import annotations

import logging
import re

from ._ast import (
    MONTH_ALIASES,
    WEEKDAY_ALIASES,
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
    single,
    wildcard,
)
from ._error import MalformedExpressionError, MalformedFieldError, Span

logger = logging.getLogger(__name__)

_COLUMN_RE = re.compile(r"\S+")
_NUMBER_RE = re.compile(r"[0-9]+")

_SHORTCUTS: dict[str, str] = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

_BASE_COLUMNS = (Field.MINUTE, Field.HOUR, Field.DAY_OF_MONTH, Field.MONTH, Field.DAY_OF_WEEK)

_COLUMN_LAYOUTS: dict[int, tuple[Field, ...]] = {
    5: _BASE_COLUMNS,
    6: (Field.SECOND, *_BASE_COLUMNS),
    7: (Field.SECOND, *_BASE_COLUMNS, Field.YEAR),
}

_ALIASES: dict[Field, dict[str, int]] = {
    Field.MONTH: MONTH_ALIASES,
    Field.DAY_OF_WEEK: WEEKDAY_ALIASES,
}


class _FieldParser:
    """Turns the text of one column into a FieldSpec.

    Precedence, tightest first: `/` (step), `-` (range), `,` (list). So
    `2,3,6/3` is {2} | {3} | every third value from 6 up to the field max.
    """

    def __init__(
        self,
        field: Field,
        text: str,
        column: int,
        offset: int,
        input_text: str,
    ) -> None:
        self._field = field
        self._text = text
        self._column = column
        self._offset = offset
        self._input = input_text

    def _error(self, message: str, token: str, span: Span) -> MalformedFieldError:
        return MalformedFieldError(
            message,
            column=self._column,
            field=self._field.label,
            token=token,
            span=span,
            input_text=self._input,
        )

    def parse(self) -> FieldSpec:
        terms: list[Term] = []
        pos = self._offset
        for raw in self._text.split(","):
            span = Span(pos, pos + len(raw))
            pos += len(raw) + 1
            if not raw:
                raise self._error("empty list element", self._text, span)
            terms.extend(self._parse_term(raw, span))

        if self._field == Field.DAY_OF_WEEK:
            terms = _normalize_weekdays(terms)
        return FieldSpec(self._field, tuple(terms))

    def _parse_term(self, raw: str, span: Span) -> list[Term]:
        special = self._parse_special(raw, span)
        if special is not None:
            return [special]

        range_part, slash, step_part = raw.partition("/")
        step: int | None = None
        if slash:
            step = self._parse_step(step_part, raw, span)

        if range_part == "*":
            if step is None:
                return [Every()]
            return [StepRange(self._field.min, self._field.max, step)]

        if range_part == "?":
            if self._field not in (Field.DAY_OF_MONTH, Field.DAY_OF_WEEK):
                raise self._error(
                    "'?' is only allowed in the day-of-month and day-of-week columns", raw, span
                )
            if step is not None:
                raise self._error("'?' cannot take a step", raw, span)
            return [Every()]

        start_text, dash, end_text = range_part.partition("-")
        start = self._parse_value(start_text, raw, span)
        if dash:
            end = self._parse_value(end_text, raw, span)
            # 7-7 stays Sunday; 7-n runs Sunday to n
            if self._field == Field.DAY_OF_WEEK and start == 7 and end < 7:
                start = 0
            if start > end:
                if self._field != Field.DAY_OF_WEEK:
                    raise self._error(f"range start must be <= end: {range_part}", raw, span)
                return _wrapped_weekdays(start, end, step or 1)
            return [StepRange(start, end, step or 1)]

        if step is not None:
            return [StepRange(start, self._field.max, step)]
        return [StepRange(start, start)]

    def _parse_special(self, raw: str, span: Span) -> Term | None:
        """Quartz-style day tokens: L, L-n, LW, nW and nL, n#k."""
        upper = raw.upper()

        if self._field == Field.DAY_OF_MONTH:
            if upper == "L":
                return LastDay()
            if upper == "LW":
                return LastBusinessDay()
            if upper.startswith("L-"):
                offset = self._parse_int(raw[2:], raw, span, "last-day offset")
                if offset > 30:
                    raise self._error(f"last-day offset must be 0-30, got {offset}", raw, span)
                return LastDay(offset)
            if len(upper) > 1 and upper.endswith("W"):
                return NearestWeekday(self._parse_value(raw[:-1], raw, span))

        elif self._field == Field.DAY_OF_WEEK:
            if "#" in raw:
                weekday_text, _, nth_text = raw.partition("#")
                weekday = self._parse_value(weekday_text, raw, span) % 7
                nth = self._parse_int(nth_text, raw, span, "weekday ordinal")
                if nth < 1 or nth > 5:
                    raise self._error(f"nth must be 1-5, got {nth}", raw, span)
                return NthWeekdayOf(weekday, nth)
            if len(upper) > 1 and upper.endswith("L"):
                return LastWeekdayOf(self._parse_value(raw[:-1], raw, span) % 7)

        return None

    def _parse_step(self, text: str, raw: str, span: Span) -> int:
        step = self._parse_int(text, raw, span, "step")
        if step == 0:
            raise self._error("step cannot be 0", raw, span)
        return step

    def _parse_int(self, text: str, raw: str, span: Span, what: str) -> int:
        if not _NUMBER_RE.fullmatch(text):
            raise self._error(f"invalid {what}: {text!r}", raw, span)
        return int(text)

    def _parse_value(self, text: str, raw: str, span: Span) -> int:
        field = self._field
        if _NUMBER_RE.fullmatch(text):
            value = int(text)
        else:
            aliases = _ALIASES.get(field)
            if aliases is None:
                raise self._error(f"invalid value {text!r}", raw, span)
            alias = aliases.get(text.lower())
            if alias is None:
                raise self._error(f"unknown {field.label} name {text!r}", raw, span)
            value = alias
        if value < field.min or value > field.max:
            raise self._error(f"{field.label} must be {field.min}-{field.max}, got {value}", raw, span)
        return value


def _wrapped_weekdays(start: int, end: int, step: int) -> list[Term]:
    """FRI-MON style ranges run through the end of the week and start over."""
    sequence = [*range(start, 7), *range(0, end + 1)]
    return [StepRange(d, d) for d in sequence[::step]]


def _normalize_weekdays(terms: list[Term]) -> list[Term]:
    """Fold the numeric weekday terms into sorted singletons in 0..6 (7 becomes 0)."""
    days: set[int] = set()
    rest: list[Term] = []
    for term in terms:
        if isinstance(term, StepRange):
            days.update(d % 7 for d in range(term.start, term.end + 1, term.step))
        else:
            rest.append(term)
    return [*rest, *(StepRange(d, d) for d in sorted(days))]


def _expand_shortcut(token: str, start: int, input_text: str) -> list[tuple[str, int]]:
    expansion = _SHORTCUTS.get(token.lower())
    if expansion is None:
        raise MalformedExpressionError(
            f"unknown shortcut: {token}", Span(start, start + len(token)), input_text
        )
    return [(text, start) for text in expansion.split()]


def _parse_segment(segment: str, offset: int, input_text: str) -> SubPattern:
    columns = [(m.group(), offset + m.start()) for m in _COLUMN_RE.finditer(segment)]
    if not columns:
        raise MalformedExpressionError(
            "empty expression segment", Span(offset, offset + len(segment)), input_text
        )

    if len(columns) == 1 and columns[0][0].startswith("@"):
        columns = _expand_shortcut(columns[0][0], columns[0][1], input_text)

    layout = _COLUMN_LAYOUTS.get(len(columns))
    if layout is None:
        first, last = columns[0], columns[-1]
        raise MalformedExpressionError(
            f"expected 5, 6 or 7 columns, got {len(columns)}",
            Span(first[1], last[1] + len(last[0])),
            input_text,
        )

    specs: dict[Field, FieldSpec] = {}
    for column, (field, (text, start)) in enumerate(zip(layout, columns)):
        specs[field] = _FieldParser(field, text, column, start, input_text).parse()

    return SubPattern(
        second=specs.get(Field.SECOND, single(Field.SECOND, 0)),
        minute=specs[Field.MINUTE],
        hour=specs[Field.HOUR],
        day_of_month=specs[Field.DAY_OF_MONTH],
        month=specs[Field.MONTH],
        day_of_week=specs[Field.DAY_OF_WEEK],
        year=specs.get(Field.YEAR, wildcard(Field.YEAR)),
        has_seconds=Field.SECOND in specs,
        has_year=Field.YEAR in specs,
    )


def parse(expression: str) -> tuple[SubPattern, ...]:
    """Parse a `|`-separated list of 5, 6 or 7 column cron rules."""
    if not expression.strip():
        raise MalformedExpressionError("empty expression", Span(0, len(expression)), expression)

    subpatterns: list[SubPattern] = []
    pos = 0
    for segment in expression.split("|"):
        subpatterns.append(_parse_segment(segment, pos, expression))
        pos += len(segment) + 1

    logger.debug("parsed %r into %d sub-pattern(s)", expression, len(subpatterns))
    return tuple(subpatterns)
