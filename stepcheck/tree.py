""" Immutable expression trees shared by every stage of step validation."""

"""
A tree is built from four node kinds -- constants, symbols, operators and
parentheses.  Nodes are frozen dataclasses, so ``==`` is structural
equality and trees can be hashed, cached, or shared between threads.

Parentheses are not remembered from the user's text.  The ``operator``
constructor inserts a ``Parenthesis`` node exactly where operator
precedence needs one, so a tree printed with ``to_string`` re-parses to
the same structure.
"""

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import ClassVar, Iterator, Union


class NodeKind(Enum):
    CONSTANT = "constant"
    SYMBOL = "symbol"
    OPERATOR = "operator"
    PARENTHESIS = "parenthesis"


@dataclass(frozen=True)
class Constant:
    value: Fraction
    kind: ClassVar[NodeKind] = NodeKind.CONSTANT


@dataclass(frozen=True)
class Symbol:
    name: str
    kind: ClassVar[NodeKind] = NodeKind.SYMBOL


@dataclass(frozen=True)
class Operator:
    """``+ - * / ^`` with two args, unary ``-`` with one, or a function call."""

    op: str
    args: tuple
    kind: ClassVar[NodeKind] = NodeKind.OPERATOR

    @property
    def is_unary(self) -> bool:
        return self.op == "-" and len(self.args) == 1

    @property
    def is_binary(self) -> bool:
        return self.op in BINARY_OPS and len(self.args) == 2

    @property
    def is_function(self) -> bool:
        return self.op not in BINARY_OPS


@dataclass(frozen=True)
class Parenthesis:
    content: "Node"
    kind: ClassVar[NodeKind] = NodeKind.PARENTHESIS


Node = Union[Constant, Symbol, Operator, Parenthesis]

BINARY_OPS = ("+", "-", "*", "/", "^")

# Symbols that name mathematical constants rather than unknowns.
NAMED_CONSTANTS = {"pi", "E"}

# Letters that would fuse with a preceding digit into a different Python
# number literal ("2e", "3j"), so "2 * e" is written out explicitly.
_NO_IMPLICIT = {"e", "E", "j", "J"}

_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2, "^": 4}
_SIGNED = 3
_ATOM = 5


# ── Construction ────────────────────────────────────────────────────────

def const(value) -> Constant:
    return Constant(Fraction(value))


def unwrap(node: Node) -> Node:
    """Strip any number of enclosing parentheses."""
    while node.kind is NodeKind.PARENTHESIS:
        node = node.content
    return node


def operator(op: str, *args: Node) -> Node:
    """Build an operator node, parenthesising children where precedence demands.

    A unary minus applied to a literal folds into a negative constant, which
    mirrors how ``-3`` is read back from text.
    """
    args = tuple(unwrap(a) for a in args)
    if op == "-" and len(args) == 1:
        (arg,) = args
        if arg.kind is NodeKind.CONSTANT:
            return Constant(-arg.value)
        if precedence(arg) <= _SIGNED:
            arg = Parenthesis(arg)
        return Operator("-", (arg,))
    if op in BINARY_OPS:
        if len(args) != 2:
            raise ValueError(f"Operator '{op}' takes two operands, got {len(args)}")
        left, right = args
        return Operator(op, (
            Parenthesis(left) if _needs_parens(op, left, 0) else left,
            Parenthesis(right) if _needs_parens(op, right, 1) else right,
        ))
    return Operator(op, args)


def precedence(node: Node) -> int:
    if node.kind is NodeKind.CONSTANT:
        return _SIGNED if node.value < 0 else _ATOM
    if node.kind is NodeKind.OPERATOR:
        if node.is_unary:
            return _SIGNED
        return _PRECEDENCE.get(node.op, _ATOM)
    return _ATOM


def _is_signed(node: Node) -> bool:
    return precedence(node) == _SIGNED


def _needs_parens(op: str, child: Node, position: int) -> bool:
    parent = _PRECEDENCE[op]
    child_prec = precedence(child)
    if op == "^":
        # Right-associative: x^y^z keeps its right child bare.
        return child_prec <= parent if position == 0 else child_prec < parent
    if position == 1 and _is_signed(child):
        return True
    return child_prec < parent or (child_prec == parent and position == 1)


# ── Printing ────────────────────────────────────────────────────────────

def _format_number(value: Fraction) -> str:
    if value.denominator == 1:
        return str(value.numerator)
    return repr(float(value))


def _implicit_product(left: Node, right: Node) -> bool:
    """True when ``left * right`` reads naturally as ``3x`` or ``3x^2``."""
    if left.kind is not NodeKind.CONSTANT:
        return False
    if right.kind is NodeKind.OPERATOR and right.op == "^":
        right = right.args[0]
    return right.kind is NodeKind.SYMBOL and right.name not in _NO_IMPLICIT


def to_string(node: Node) -> str:
    kind = node.kind
    if kind is NodeKind.CONSTANT:
        return _format_number(node.value)
    if kind is NodeKind.SYMBOL:
        return node.name
    if kind is NodeKind.PARENTHESIS:
        return f"({to_string(node.content)})"

    if node.is_unary:
        return "-" + to_string(node.args[0])
    if node.is_function:
        return f"{node.op}({', '.join(to_string(a) for a in node.args)})"
    left, right = node.args
    if node.op in ("+", "-"):
        return f"{to_string(left)} {node.op} {to_string(right)}"
    if node.op == "*":
        if _implicit_product(left, right):
            return f"{to_string(left)}{to_string(right)}"
        return f"{to_string(left)} * {to_string(right)}"
    return f"{to_string(left)}{node.op}{to_string(right)}"


# ── Traversal ───────────────────────────────────────────────────────────

def children(node: Node) -> tuple:
    if node.kind is NodeKind.OPERATOR:
        return node.args
    if node.kind is NodeKind.PARENTHESIS:
        return (node.content,)
    return ()


def walk(node: Node) -> Iterator[Node]:
    """Yield *node* and every descendant, parents before children."""
    yield node
    for child in children(node):
        yield from walk(child)


def rewrite(node: Node, fn) -> Node:
    """Rebuild *node* bottom-up, passing every rebuilt subtree through *fn*.

    Parentheses are dropped on the way down and re-inserted by
    ``operator`` on the way up.
    """
    kind = node.kind
    if kind is NodeKind.PARENTHESIS:
        return rewrite(node.content, fn)
    if kind is NodeKind.OPERATOR:
        node = operator(node.op, *(rewrite(a, fn) for a in node.args))
    return fn(node)


def is_constant(node: Node) -> bool:
    """True when no unknown appears anywhere under *node*."""
    return not free_symbols(node)


def free_symbols(node: Node) -> set:
    return {
        n.name for n in walk(node)
        if n.kind is NodeKind.SYMBOL and n.name not in NAMED_CONSTANTS
    }


def is_sum(node: Node) -> bool:
    node = unwrap(node)
    return node.kind is NodeKind.OPERATOR and node.is_binary and node.op in ("+", "-")


def flatten_terms(node: Node) -> list:
    """Split the top-level ``+``/``-`` chain into ``(term, sign)`` pairs.

    A unary minus flips the sign of its operand; binary subtraction flips
    the sign of its right operand only.  Terms inside parentheses below the
    root stay whole.
    """
    terms = []

    def visit(n: Node, sign: int) -> None:
        if n.kind is NodeKind.OPERATOR and n.op in ("+", "-"):
            if n.is_unary:
                visit(n.args[0], -sign)
                return
            if n.is_binary:
                visit(n.args[0], sign)
                visit(n.args[1], sign if n.op == "+" else -sign)
                return
        terms.append((n, sign))

    visit(unwrap(node), 1)
    return terms


def join_terms(terms: list) -> str:
    """Write ``(term, sign)`` pairs back out as ``t1 ± t2 ± ...``."""
    pieces = []
    for term, sign in terms:
        text = to_string(term)
        if text.startswith("-"):
            text, sign = text[1:], -sign
        if not pieces:
            pieces.append(text if sign > 0 else f"-{text}")
        else:
            pieces.append(f"{'+' if sign > 0 else '-'} {text}")
    return " ".join(pieces)


def product_factors(node: Node) -> list:
    """Flatten a chain of ``*`` nodes into its factors, left to right."""
    node = unwrap(node)
    if node.kind is NodeKind.OPERATOR and node.op == "*" and node.is_binary:
        return product_factors(node.args[0]) + product_factors(node.args[1])
    return [node]
