import logging

import pytest

from stepcheck import backend, canonical
from stepcheck.canonical import canonical_form, canonicalize
from stepcheck.config import EngineConfig
from stepcheck.errors import (
    BackendParseError, EmptyInputError, InvalidEquationFormatError,
    MalformedExpressionError
)
from stepcheck.tree import to_string


@pytest.mark.parametrize(
    "first,second",
    [
        ("2x + 3", "3 + 2x"),
        ("1x + 2", "x + 2"),
        ("x * 3 - 1", "-1 + 3x"),
        ("3x = 9", "9 = 3x"),
        ("x = 3", "3 = x"),
        ("y = x", "x = y"),
        ("2x + 5 = 11", "5 + 2x = 11"),
        ("--x", "x"),
        ("1/x = 2", "2 = 1/x"),
        ("3/x = 1", "1 = 3/x"),
        ("2^x = 8", "8 = 2^x"),
        ("x^2 = 4x", "4x = x^2"),
    ],
)
def test_equal_inputs_share_a_canonical_tree(first: str, second: str) -> None:
    assert canonicalize(first) == canonicalize(second)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("3x = 9", "3x - 9"),
        ("9 = 3x", "3x - 9"),
        ("4(x - 3) = 10", "4x - 22"),
        ("2(x + 1) + 3x", "5x + 2"),
        ("x = 9/3", "x - 3"),
        ("y = x", "x - y"),
    ],
)
def test_canonical_text(text: str, expected: str) -> None:
    assert to_string(canonicalize(text)) == expected


@pytest.mark.parametrize(
    "text",
    ["2x + 3", "3 + 2x = 7", "x^2 + 2x + 1", "4(x - 3) = 10", "x/2 + 1 = 3", "9 = 3x"],
)
def test_canonicalize_is_idempotent(text: str) -> None:
    once = canonicalize(text)
    assert canonicalize(to_string(once)) == once


def test_canonical_form_reports_shape() -> None:
    form = canonical_form("3x = 9")
    assert form.is_equation is True
    assert form.degraded is False
    assert canonical_form("3x").is_equation is False


def test_expansion_iterations_are_configurable() -> None:
    config = EngineConfig(max_expansion_iterations=1)
    assert to_string(canonicalize("3(x + 2) = 0", config)) == "3x + 6"


@pytest.mark.parametrize(
    "text,error",
    [
        ("", EmptyInputError),
        ("3x ++ 5", MalformedExpressionError),
        ("5x = = 9", InvalidEquationFormatError),
        ("3x +", BackendParseError),
    ],
)
def test_syntax_and_parse_failures_propagate(text: str, error) -> None:
    with pytest.raises(error):
        canonicalize(text)


def test_failed_normalization_degrades_to_simplified_tree(monkeypatch, caplog) -> None:
    def boom(tree):
        raise RuntimeError("ordering failed")

    monkeypatch.setattr(canonical, "_order_terms", boom)
    with caplog.at_level(logging.WARNING, logger="stepcheck.canonical"):
        form = canonical_form("3 + 2x")
    assert form.degraded is True
    assert form.tree == backend.simplify(backend.parse("3 + 2x"))
    assert "degraded" in caplog.text


class TestRewrites:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("x * 3", "3x"),
            ("1 * x", "x"),
            ("0 * x", "0"),
            ("-1 * x", "-x"),
            ("x * (-1)", "-x"),
            ("2 + 1 * y", "2 + y"),
        ],
    )
    def test_coefficient_normalization(self, text, expected):
        tree = canonical.normalize_coefficients(backend.parse(text))
        assert to_string(tree) == expected

    def test_distribute(self):
        tree = canonical._distribute(backend.parse("2(x + 3)"))
        assert to_string(tree) == "2x + 2 * 3"

    def test_sign_normalization(self):
        tree = canonical._normalize_sign(backend.parse("9 - 3x"))
        assert to_string(tree) == "3x - 9"
        untouched = backend.parse("3x - 9")
        assert canonical._normalize_sign(untouched) == untouched

    @pytest.mark.parametrize("text", ["2 - 1/x", "-2^x + 8", "5 - x^2"])
    def test_sign_follows_leading_variable_term(self, text):
        tree = backend.parse(text)
        assert backend.leads_with_minus(tree)
        assert not backend.leads_with_minus(canonical._normalize_sign(tree))

    def test_term_order_puts_variables_first(self):
        tree = canonical._order_terms(backend.parse("5 + x + x^2"))
        assert to_string(tree) == "x^2 + x + 5"
