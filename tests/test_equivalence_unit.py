import pytest

from stepcheck import backend, equivalence
from stepcheck.config import DEFAULT_CONFIG, EngineConfig
from stepcheck.equivalence import are_equivalent


EQUIVALENT_PAIRS = [
    ("2x + 3", "3 + 2x"),
    ("2(x + 3)", "2x + 6"),
    ("x^2 + 2x + 1", "(x + 1)^2"),
    ("x + y", "y + x"),
    ("4x - x - 7", "3x - 7"),
    ("(x^2 - 1)/(x - 1)", "x + 1"),
    ("3x = 9", "9 = 3x"),
    ("x + 2 = 5", "x = 3"),
    ("4(x - 3) - (x - 5) = 14", "3x - 7 = 14"),
    ("3x = 14 + 7", "3x = 21"),
    ("1/x = 2", "2 = 1/x"),
    ("3/x = 1", "1 = 3/x"),
    ("2^x = 8", "8 = 2^x"),
]

DIFFERENT_PAIRS = [
    ("2x + 3", "2x + 4"),
    ("x = 3", "x = 4"),
    ("x + y", "x + 2y"),
    ("x * y", "x + y"),
    ("x^2", "2x"),
]


@pytest.mark.parametrize("a,b", EQUIVALENT_PAIRS)
def test_equivalent_inputs(a: str, b: str) -> None:
    assert are_equivalent(a, b) is True


@pytest.mark.parametrize("a,b", DIFFERENT_PAIRS)
def test_different_inputs(a: str, b: str) -> None:
    assert are_equivalent(a, b) is False


@pytest.mark.parametrize("a,b", EQUIVALENT_PAIRS + DIFFERENT_PAIRS)
def test_equivalence_is_symmetric(a: str, b: str) -> None:
    assert are_equivalent(a, b) == are_equivalent(b, a)


@pytest.mark.parametrize("text", ["x", "3x - 7", "x = 7", "sqrt(x + 1)", "9/3"])
def test_equivalence_is_reflexive(text: str) -> None:
    assert are_equivalent(text, text)


def test_scaled_equations_are_not_equivalent() -> None:
    # Same solution set, different canonical polynomial.
    assert are_equivalent("3x = 9", "x = 3") is False


def test_equation_compares_with_its_zero_form() -> None:
    assert are_equivalent("x = 3", "x - 3") is True


@pytest.mark.parametrize(
    "a,b",
    [("3x ++ 5", "3x + 5"), ("", "x"), ("3x +", "3x"), ("5x = = 9", "5x = 9"), ("2x @ 1", "2x")],
)
def test_malformed_input_is_never_equivalent(a: str, b: str) -> None:
    assert are_equivalent(a, b) is False


class TestProbes:
    def test_probe_sampling_catches_unsimplified_zero(self, monkeypatch):
        monkeypatch.setattr(equivalence.backend, "simplify", lambda node: node)
        difference = backend.parse("(x + 1)^2 - x^2 - 2x - 1")
        assert equivalence._vanishes(difference, DEFAULT_CONFIG) is True

    def test_probe_failure_is_not_equivalence(self, monkeypatch):
        monkeypatch.setattr(equivalence.backend, "simplify", lambda node: node)
        assert equivalence._vanishes(backend.parse("1/x"), DEFAULT_CONFIG) is False

    def test_several_unknowns_are_not_sampled(self, monkeypatch):
        monkeypatch.setattr(equivalence.backend, "simplify", lambda node: node)
        difference = backend.parse("(x + y) - (y + x)")
        assert equivalence._vanishes(difference, DEFAULT_CONFIG) is False

    def test_tolerance_comes_from_config(self, monkeypatch):
        monkeypatch.setattr(equivalence.backend, "simplify", lambda node: node)
        difference = backend.parse("x - x + 0.001")
        loose = EngineConfig(tolerance=0.01)
        assert equivalence._vanishes(difference, loose) is True
        assert equivalence._vanishes(difference, DEFAULT_CONFIG) is False
