""" Canonical forms for expressions and equations."""

"""
``canonicalize`` reduces any expression, or any equation ``L = R`` (taken
as ``L - R``), to one deterministic tree so that textually different but
equal inputs compare structurally equal:

    1. syntax check, equation → difference
    2. parse + simplify                       (failures raise)
    3. bounded expansion loop
    4. coefficient normalization
    5. sign normalization (equations only)
    6. term ordering
    7. re-parse + final simplify

Steps 3-7 are ``StepResult``-returning transforms chained by
``_run_pipeline``; the first failure stops the chain and the step-2 tree
is returned, marked degraded.

The final simplify lays sums out in SymPy's ``as_ordered_terms`` order, and
that order is the canonical one.  Step 6 only orders the intermediate tree
it hands on (variables by descending power, then constants).
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from stepcheck import backend
from stepcheck.config import DEFAULT_CONFIG, EngineConfig
from stepcheck.syntax import validate
from stepcheck.tree import (
    Node, NodeKind, Parenthesis, const, flatten_terms, is_constant, is_sum,
    join_terms, operator, product_factors, rewrite, to_string, unwrap
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one canonicalization transform."""

    tree: Optional[Node] = None
    error: Optional[Exception] = None
    step: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CanonicalForm:
    tree: Node
    is_equation: bool
    # True when a normalization step failed and the plain simplified tree was
    # kept; term-order-sensitive comparisons are less reliable then.
    degraded: bool = False


def _lift(name: str, fn: Callable[[Node], Node]) -> Callable[[Node], StepResult]:
    """Turn a raising ``Node -> Node`` transform into a StepResult transform."""
    def step(tree: Node) -> StepResult:
        try:
            return StepResult(tree=fn(tree), step=name)
        except Exception as e:
            return StepResult(error=e, step=name)
    return step


def _run_pipeline(tree: Node, steps: list) -> StepResult:
    result = StepResult(tree=tree, step="simplify")
    for step in steps:
        result = step(result.tree)
        if not result.ok:
            break
    return result


# ── Step 3: expansion ───────────────────────────────────────────────────

def _distribute(node: Node) -> Node:
    """Multiply a factor through a parenthesised sum: a(b ± c) → ab ± ac."""
    def visit(n: Node) -> Node:
        if n.kind is not NodeKind.OPERATOR or n.op != "*" or not n.is_binary:
            return n
        left, right = (unwrap(a) for a in n.args)
        if is_sum(right):
            return operator(right.op, visit(operator("*", left, right.args[0])),
                            visit(operator("*", left, right.args[1])))
        if is_sum(left):
            return operator(left.op, visit(operator("*", left.args[0], right)),
                            visit(operator("*", left.args[1], right)))
        return n
    return rewrite(node, visit)


def _expand_until_stable(tree: Node, max_iterations: int) -> Node:
    current = tree
    for _ in range(max_iterations):
        before = to_string(current)
        current = backend.simplify(_distribute(backend.parse(before)))
        if to_string(current) == before:
            break
    return current


# ── Step 4: coefficients ────────────────────────────────────────────────

def _normalize_coefficient(node: Node) -> Node:
    if node.kind is not NodeKind.OPERATOR or node.op != "*" or not node.is_binary:
        return node
    left, right = (unwrap(a) for a in node.args)
    if left.kind is NodeKind.CONSTANT:
        coeff, other, swapped = left, right, False
    elif right.kind is NodeKind.CONSTANT:
        coeff, other, swapped = right, left, True
    else:
        return node
    if coeff.value == 0:
        return const(0)
    if coeff.value == 1:
        return other
    if coeff.value == -1:
        return operator("-", other)
    if swapped:
        return operator("*", coeff, other)
    return node


def normalize_coefficients(tree: Node) -> Node:
    return rewrite(tree, _normalize_coefficient)


# ── Step 5: sign ────────────────────────────────────────────────────────

def _normalize_sign(tree: Node) -> Node:
    """Negate *tree* when its leading variable term is negative.

    Decided on the tree rather than the printed text, so ``2 - 1/x`` and
    ``-2 + 1/x`` land on the same side.
    """
    if backend.leads_with_minus(tree):
        return backend.simplify(operator("-", Parenthesis(tree)))
    return tree


# ── Step 6: term ordering ───────────────────────────────────────────────

def _classify(term: Node, sign: int) -> tuple:
    """Sort key for one term: (is_constant, variable, -power, value)."""
    term = unwrap(term)
    if is_constant(term):
        try:
            value = float(backend.evaluate(term, {}))
        except ArithmeticError:
            value = 0.0
        return (True, "", 0, sign * value)
    variable, power = _variable_and_power(term)
    return (False, variable, -power, 0.0)


def _variable_and_power(term: Node) -> tuple:
    term = unwrap(term)
    kind = term.kind
    if kind is NodeKind.SYMBOL:
        return term.name, 1
    if kind is NodeKind.OPERATOR:
        if term.op == "^" and term.is_binary:
            base, exponent = (unwrap(a) for a in term.args)
            if base.kind is NodeKind.SYMBOL and exponent.kind is NodeKind.CONSTANT:
                return base.name, float(exponent.value)
        if term.is_unary:
            return _variable_and_power(term.args[0])
        if term.op in ("*", "/") and term.is_binary:
            factors = product_factors(term) if term.op == "*" else [term.args[0], term.args[1]]
            for factor in factors:
                if not is_constant(factor):
                    return _variable_and_power(factor)
    return to_string(term), 1


def _order_terms(tree: Node) -> Node:
    terms = flatten_terms(tree)
    if len(terms) == 1:
        term, sign = terms[0]
        return operator("-", term) if sign < 0 else term

    ordered = sorted(terms, key=lambda pair: _classify(*pair))
    return backend.parse(join_terms(ordered))


# ── Public API ──────────────────────────────────────────────────────────

def canonical_form(text: str, config: EngineConfig = DEFAULT_CONFIG) -> CanonicalForm:
    """Canonicalize *text*, reporting whether normalization degraded.

    Syntax and parse failures raise MathParsingError subclasses.
    """
    parsed = validate(text)
    if parsed.is_equation:
        source = f"({parsed.left_side}) - ({parsed.right_side})"
    else:
        source = parsed.trimmed

    base = backend.simplify(backend.parse(source))

    steps = [
        _lift("expand", partial(_expand_until_stable, max_iterations=config.max_expansion_iterations)),
        _lift("coefficients", normalize_coefficients),
    ]
    if parsed.is_equation:
        steps.append(_lift("sign", _normalize_sign))
    steps += [
        _lift("order", _order_terms),
        _lift("final", backend.simplify),
    ]

    result = _run_pipeline(base, steps)
    if not result.ok:
        logger.warning(
            "Canonicalization of %r degraded at step %r: %s",
            text, result.step, result.error,
        )
        return CanonicalForm(tree=base, is_equation=parsed.is_equation, degraded=True)
    return CanonicalForm(tree=result.tree, is_equation=parsed.is_equation)


def canonicalize(text: str, config: EngineConfig = DEFAULT_CONFIG) -> Node:
    return canonical_form(text, config).tree
