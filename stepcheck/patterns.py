""" Detect sub-structures a learner could still simplify."""

"""
Each detector walks the tree of the text exactly as it was typed (no
simplification first), so ``4x - x`` is reported as like terms and
``9/3`` as unfinished arithmetic.  ``analyze`` never raises: malformed
input produces an empty, not-simplified result.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction

from stepcheck import backend
from stepcheck.syntax import validate
from stepcheck.tree import (
    Node, NodeKind, const, flatten_terms, is_constant, is_sum, join_terms,
    operator, product_factors, rewrite, to_string, unwrap, walk
)

logger = logging.getLogger(__name__)

CONSTANT_SIGNATURE = "1"


class PatternKind(str, Enum):
    CONSTANT_ARITHMETIC = "CONSTANT_ARITHMETIC"
    LIKE_TERMS = "LIKE_TERMS"
    DISTRIBUTIVE = "DISTRIBUTIVE"
    COEFFICIENT_NORMALIZATION = "COEFFICIENT_NORMALIZATION"


_FEEDBACK_PREFIX = {
    PatternKind.CONSTANT_ARITHMETIC: "You can simplify the arithmetic: ",
    PatternKind.LIKE_TERMS: "You can combine like terms: ",
    PatternKind.DISTRIBUTIVE: "You can use the distributive property: ",
    PatternKind.COEFFICIENT_NORMALIZATION: "You can simplify the coefficient: ",
}


@dataclass(frozen=True)
class SimplificationPattern:
    kind: PatternKind
    description: str
    affected_nodes: tuple
    suggestion: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "affected": [to_string(n) for n in self.affected_nodes],
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class TreeAnalysisResult:
    is_fully_simplified: bool
    patterns: tuple = field(default_factory=tuple)
    has_unsimplified_operations: bool = False

    @property
    def pattern_kinds(self) -> list:
        return [p.kind for p in self.patterns]

    def to_dict(self) -> dict:
        return {
            "is_fully_simplified": self.is_fully_simplified,
            "has_unsimplified_operations": self.has_unsimplified_operations,
            "patterns": [p.to_dict() for p in self.patterns],
        }


EMPTY_ANALYSIS = TreeAnalysisResult(is_fully_simplified=False)


# ── Detectors ───────────────────────────────────────────────────────────

def _is_constant_operation(node: Node) -> bool:
    return node.kind is NodeKind.OPERATOR and all(
        unwrap(a).kind is NodeKind.CONSTANT for a in node.args
    )


def _evaluates_differently(node: Node) -> bool:
    # Reduced fractions (2/3) and irrational literals (sqrt(2)) are already final.
    return to_string(backend.simplify(node)) != to_string(node)


def find_constant_arithmetic(node: Node) -> list:
    patterns = []
    for n in walk(node):
        if not _is_constant_operation(n):
            continue
        before, after = to_string(n), to_string(backend.simplify(n))
        if before == after:
            continue
        patterns.append(SimplificationPattern(
            kind=PatternKind.CONSTANT_ARITHMETIC,
            description=f"The constant arithmetic {before} can be evaluated",
            affected_nodes=(n,),
            suggestion=f"{before} = {after}",
        ))
    return patterns


def term_signature(term: Node) -> str:
    """Variable signature used to group like terms; constants get ``"1"``."""
    if term.kind is NodeKind.PARENTHESIS:
        return to_string(term)
    if is_constant(term):
        return CONSTANT_SIGNATURE
    if term.kind is NodeKind.SYMBOL:
        return term.name
    if term.kind is NodeKind.OPERATOR:
        if term.is_unary:
            return term_signature(unwrap(term.args[0]))
        if term.op == "*" and term.is_binary:
            return "*".join(sorted(
                to_string(f) for f in product_factors(term) if not is_constant(f)
            ))
        if term.op == "/" and term.is_binary and is_constant(term.args[1]):
            return term_signature(unwrap(term.args[0]))
    return to_string(term)


def find_like_terms(node: Node) -> list:
    groups = {}
    for term, sign in flatten_terms(node):
        groups.setdefault(term_signature(term), []).append((term, sign))

    patterns = []
    for signature, members in groups.items():
        if signature == CONSTANT_SIGNATURE or len(members) < 2:
            continue
        patterns.append(SimplificationPattern(
            kind=PatternKind.LIKE_TERMS,
            description=f"The terms in {signature} can be combined",
            affected_nodes=tuple(term for term, _ in members),
            suggestion=join_terms(members),
        ))
    return patterns


def find_distributive(node: Node) -> list:
    patterns = []
    for n in walk(node):
        if n.kind is not NodeKind.OPERATOR or n.op != "*" or not n.is_binary:
            continue
        if not any(is_sum(a) for a in n.args):
            continue
        before = to_string(n)
        patterns.append(SimplificationPattern(
            kind=PatternKind.DISTRIBUTIVE,
            description=f"The product {before} can be expanded",
            affected_nodes=(n,),
            suggestion=f"{before} = {to_string(backend.expand(n))}",
        ))
    return patterns


def _redundant_constant(node: Node) -> bool:
    if node.kind is not NodeKind.OPERATOR or not node.is_binary:
        return False
    values = [unwrap(a).value for a in node.args if unwrap(a).kind is NodeKind.CONSTANT]
    if node.op == "*":
        return any(v in (0, 1, -1) for v in values)
    if node.op in ("+", "-"):
        return any(v == 0 for v in values)
    return False


def find_coefficient_normalization(node: Node) -> list:
    patterns = []
    for n in walk(node):
        if _is_constant_operation(n) or not _redundant_constant(n):
            continue
        before = to_string(n)
        patterns.append(SimplificationPattern(
            kind=PatternKind.COEFFICIENT_NORMALIZATION,
            description=f"{before} has a redundant 0, 1 or -1",
            affected_nodes=(n,),
            suggestion=f"{before} = {to_string(backend.simplify(n))}",
        ))
    return patterns


def detect_patterns(node: Node) -> list:
    return (
        find_constant_arithmetic(node)
        + find_like_terms(node)
        + find_distributive(node)
        + find_coefficient_normalization(node)
    )


def has_unsimplified_operations(node: Node) -> bool:
    """Whole-tree check for leftover constant arithmetic or a ±1 coefficient.

    Constant-only nodes that simplifying leaves unchanged (``2/3``, ``sqrt(2)``)
    are final answers and are not flagged.
    """
    for n in walk(node):
        if _is_constant_operation(n) and _evaluates_differently(n):
            return True
        if n.kind is NodeKind.OPERATOR and n.op == "*" and n.is_binary:
            for arg in n.args:
                arg = unwrap(arg)
                if arg.kind is NodeKind.CONSTANT and abs(arg.value) == 1:
                    return True
    return False


# ── Public API ──────────────────────────────────────────────────────────

def analyze(text: str) -> TreeAnalysisResult:
    """Analyze an expression, or each side of an equation, for leftover work."""
    try:
        parsed = validate(text)
        patterns = []
        unsimplified = False
        for side in parsed.sides:
            node = backend.parse(side)
            patterns.extend(detect_patterns(node))
            unsimplified = unsimplified or has_unsimplified_operations(node)
    except Exception as e:
        logger.debug("Analysis of %r failed: %s", text, e)
        return EMPTY_ANALYSIS
    return TreeAnalysisResult(
        is_fully_simplified=not patterns and not unsimplified,
        patterns=tuple(patterns),
        has_unsimplified_operations=unsimplified,
    )


def _strip_cosmetic(text: str) -> str:
    return re.sub(r"[\s*]", "", text)


def _split_terms(text: str) -> list:
    """Split at top-level ``+``/``-`` signs, keeping each term's sign."""
    terms = []
    current = ""
    depth = 0
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch in "+-" and depth == 0 and current and current[-1] not in "+-*/^":
            terms.append(current)
            current = ch
        else:
            current += ch
    if current:
        terms.append(current)
    return [t if t[0] in "+-" else "+" + t for t in terms]


def _terminates(denominator: Fraction) -> bool:
    """True if 1/denominator has a finite decimal expansion."""
    if denominator.denominator != 1 or denominator <= 0:
        return False
    n = denominator.numerator
    for p in (2, 5):
        while n % p == 0:
            n //= p
    return n == 1


def _as_decimal(node: Node) -> Node:
    """Write terminating fractions as decimals: ``5/2`` → ``2.5``, ``x/2`` → ``0.5x``."""
    def visit(n: Node) -> Node:
        if n.kind is not NodeKind.OPERATOR or n.op != "/" or not n.is_binary:
            return n
        numerator, denominator = (unwrap(a) for a in n.args)
        if denominator.kind is not NodeKind.CONSTANT or not _terminates(denominator.value):
            return n
        if numerator.kind is NodeKind.CONSTANT:
            return const(numerator.value / denominator.value)
        sign = 1
        if numerator.kind is NodeKind.OPERATOR and numerator.is_unary:
            sign, numerator = -1, unwrap(numerator.args[0])
        coeff, rest = Fraction(1), numerator
        if numerator.kind is NodeKind.OPERATOR and numerator.op == "*" and numerator.is_binary:
            first = unwrap(numerator.args[0])
            if first.kind is NodeKind.CONSTANT:
                coeff, rest = first.value, numerator.args[1]
        return operator("*", const(sign * coeff / denominator.value), rest)
    return rewrite(node, visit)


def _has_decimal(node: Node) -> bool:
    return any(
        n.kind is NodeKind.CONSTANT and n.value.denominator != 1 for n in walk(node)
    )


def _same_up_to_layout(original: str, simplified: str) -> bool:
    if original == simplified:
        return True
    original, simplified = _strip_cosmetic(original), _strip_cosmetic(simplified)
    if original == simplified:
        return True
    # Pure reordering of the same terms still counts as simplified.
    return sorted(_split_terms(original)) == sorted(_split_terms(simplified))


def _side_is_simplified(side: str) -> bool:
    node = backend.parse(side)
    original = to_string(node)
    simplified = backend.simplify(node)
    if _same_up_to_layout(original, to_string(simplified)):
        return True
    # A learner's decimal is final even though the backend answers in fractions.
    return _has_decimal(node) and _same_up_to_layout(
        original, to_string(_as_decimal(simplified))
    )


def is_fully_simplified(text: str) -> bool:
    try:
        parsed = validate(text)
        return all(_side_is_simplified(side) for side in parsed.sides)
    except Exception as e:
        logger.debug("Simplification check of %r failed: %s", text, e)
        return False


def simplification_feedback(patterns) -> list:
    return [_FEEDBACK_PREFIX[p.kind] + p.suggestion for p in patterns]
