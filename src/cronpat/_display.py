from __future__ import annotations

from ._ast import (
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


def display(subpatterns: tuple[SubPattern, ...]) -> str:
    """Canonical expression text; parsing it yields an equal set of sub-patterns."""
    return " | ".join(display_subpattern(sub) for sub in subpatterns)


def display_subpattern(sub: SubPattern) -> str:
    columns = [
        sub.minute,
        sub.hour,
        sub.day_of_month,
        sub.month,
        sub.day_of_week,
    ]
    # a year column can only be written after a second column
    if sub.has_seconds or sub.has_year:
        columns.insert(0, sub.second)
    if sub.has_year:
        columns.append(sub.year)
    return " ".join(display_spec(spec) for spec in columns)


def display_spec(spec: FieldSpec) -> str:
    if spec.is_wildcard:
        return "*"
    return ",".join(_display_term(spec.field, term) for term in spec.terms)


def _display_term(field: Field, term: Term) -> str:
    match term:
        case Every():
            return "*"
        case StepRange(start=start, end=end, step=step):
            if start == end:
                return str(start)
            if step == 1:
                return f"{start}-{end}"
            if end == field.max:
                return f"*/{step}" if start == field.min else f"{start}/{step}"
            return f"{start}-{end}/{step}"
        case LastDay(offset=offset):
            return "L" if offset == 0 else f"L-{offset}"
        case LastBusinessDay():
            return "LW"
        case NearestWeekday(day=day):
            return f"{day}W"
        case LastWeekdayOf(weekday=weekday):
            return f"{weekday}L"
        case NthWeekdayOf(weekday=weekday, n=n):
            return f"{weekday}#{n}"
    raise AssertionError(f"unknown term: {term!r}")  # pragma: no cover


_LABEL_WIDTH = max(len(f.label) for f in Field)


def describe(subpatterns: tuple[SubPattern, ...]) -> str:
    """Multi-line summary of the values each field of each sub-pattern accepts."""
    blocks: list[str] = []
    for index, sub in enumerate(subpatterns, start=1):
        lines = [f"#{index}: {display_subpattern(sub)}"]
        for spec in sub.fields:
            lines.append(f"  {spec.field.label:<{_LABEL_WIDTH}} : {_describe_spec(spec)}")
        blocks.append("\n".join(lines))
    return "\n".join(blocks)


def _describe_spec(spec: FieldSpec) -> str:
    if spec.is_wildcard:
        return f"* ({spec.min}-{spec.max})"
    parts = [str(v) for v in spec.values()]
    parts.extend(_display_term(spec.field, term) for term in spec.calendar_terms)
    return ",".join(parts)
