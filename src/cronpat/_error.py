from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class Span:
    start: int
    end: int


CronErrorKind = Literal["expression", "field", "no_match"]


class CronError(Exception):
    kind: CronErrorKind
    span: Span | None
    input_text: str | None

    def __init__(
        self,
        kind: CronErrorKind,
        message: str,
        span: Span | None = None,
        input_text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.span = span
        self.input_text = input_text

    def display_rich(self) -> str:
        if self.span is not None and self.input_text:
            out = f"error: {self}\n"
            out += f"  {self.input_text}\n"
            padding = " " * (self.span.start + 2)
            underline = "^" * max(self.span.end - self.span.start, 1)
            return out + padding + underline
        return f"error: {self}"


class ParseError(CronError):
    """Raised when an expression cannot be turned into a schedule."""


class MalformedExpressionError(ParseError):
    def __init__(self, message: str, span: Span | None = None, input_text: str | None = None) -> None:
        super().__init__("expression", message, span, input_text)


class MalformedFieldError(ParseError):
    """A single column holds a token that is not valid for its field.

    `column` is the zero-based position of the column inside its
    `|`-separated segment, `field` the field's name and `token` the
    offending text.
    """

    column: int
    field: str
    token: str

    def __init__(
        self,
        message: str,
        *,
        column: int,
        field: str,
        token: str,
        span: Span | None = None,
        input_text: str | None = None,
    ) -> None:
        super().__init__("field", f"{field} (column {column}): {message}", span, input_text)
        self.column = column
        self.field = field
        self.token = token


class NoMatchError(CronError):
    def __init__(self, message: str) -> None:
        super().__init__("no_match", message)
