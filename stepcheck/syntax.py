"""Cheap structural checks run before anything reaches the parser."""

import re
from dataclasses import dataclass
from typing import Optional

from stepcheck import backend
from stepcheck.errors import (
    EmptyInputError, InvalidEquationFormatError, MalformedExpressionError
)

_DOUBLED_OPERATOR = re.compile(r"\+\+|---|//|\*\*")


@dataclass(frozen=True)
class ParsedInput:
    trimmed: str
    is_equation: bool
    left_side: Optional[str] = None
    right_side: Optional[str] = None

    @property
    def sides(self) -> tuple:
        if self.is_equation:
            return (self.left_side, self.right_side)
        return (self.trimmed,)


def validate(text: str) -> ParsedInput:
    """Split *text* into an expression or the two sides of an equation.

    Raises EmptyInputError, MalformedExpressionError or
    InvalidEquationFormatError.  Passing does not guarantee the text parses.
    """
    trimmed = (text or "").strip()
    if not trimmed:
        raise EmptyInputError("Empty input provided", text or "")

    if _DOUBLED_OPERATOR.search(re.sub(r"\s+", "", trimmed)):
        raise MalformedExpressionError(
            "Invalid mathematical expression: consecutive operators detected", text
        )

    if "=" not in trimmed:
        return ParsedInput(trimmed=trimmed, is_equation=False)

    parts = trimmed.split("=")
    if len(parts) != 2:
        raise InvalidEquationFormatError(
            "Invalid equation format: equations must have exactly one equals sign", text
        )
    left, right = parts[0].strip(), parts[1].strip()
    if not left or not right:
        raise InvalidEquationFormatError(
            "Invalid equation format: both sides of equation must contain expressions", text
        )
    return ParsedInput(trimmed=trimmed, is_equation=True, left_side=left, right_side=right)


def check_parseable(text: str) -> ParsedInput:
    """``validate`` plus a backend parse of every side."""
    parsed = validate(text)
    for side in parsed.sides:
        backend.parse(side)
    return parsed
