import pytest

from stepcheck import syntax
from stepcheck.errors import (
    BackendParseError, EmptyInputError, InvalidEquationFormatError,
    MalformedExpressionError, MathParsingError
)


def test_expression_is_trimmed_and_not_an_equation() -> None:
    parsed = syntax.validate("   3x + 5  ")
    assert parsed.trimmed == "3x + 5"
    assert parsed.is_equation is False
    assert parsed.left_side is None and parsed.right_side is None
    assert parsed.sides == ("3x + 5",)


def test_equation_is_split_into_trimmed_sides() -> None:
    parsed = syntax.validate("2x + 5 =  11 ")
    assert parsed.is_equation is True
    assert parsed.left_side == "2x + 5"
    assert parsed.right_side == "11"
    assert parsed.sides == ("2x + 5", "11")


@pytest.mark.parametrize(
    "text,error,message",
    [
        ("", EmptyInputError, "Empty input provided"),
        ("   ", EmptyInputError, "Empty input provided"),
        ("3x ++ 5", MalformedExpressionError, "consecutive operators"),
        ("3x --- 5", MalformedExpressionError, "consecutive operators"),
        ("3x // 5", MalformedExpressionError, "consecutive operators"),
        ("3x * * 2", MalformedExpressionError, "consecutive operators"),
        ("5x = = 9", InvalidEquationFormatError, "exactly one equals sign"),
        ("5x = 9 = 3", InvalidEquationFormatError, "exactly one equals sign"),
        ("= 9", InvalidEquationFormatError, "both sides"),
        ("5x =", InvalidEquationFormatError, "both sides"),
    ],
)
def test_invalid_input_is_rejected(text: str, error, message: str) -> None:
    with pytest.raises(error) as excinfo:
        syntax.validate(text)
    assert message in excinfo.value.message
    assert excinfo.value.original_input == text


def test_double_negation_passes_the_prefilter() -> None:
    assert syntax.validate("--x").trimmed == "--x"


def test_parsing_errors_are_value_errors() -> None:
    assert issubclass(MathParsingError, ValueError)
    with pytest.raises(ValueError):
        syntax.validate("")


def test_check_parseable_parses_every_side() -> None:
    parsed = syntax.check_parseable("2x + 1 = 5")
    assert parsed.is_equation

    with pytest.raises(BackendParseError):
        syntax.check_parseable("3x + = 5")
    with pytest.raises(BackendParseError):
        syntax.check_parseable("2x @ 1")
