""" SymPy-backed algebra backend: parse, simplify, evaluate, stringify."""

"""
Text goes through SymPy's tokenizer and transformations (implicit
multiplication, ``^`` as power, decimals as exact rationals) and the
resulting Python expression is read into a ``stepcheck.tree`` node
without evaluating it, so ``9/3`` and ``4x - x`` keep the shape the
learner typed.  ``simplify`` and ``evaluate`` round-trip through SymPy.
"""

import ast
import logging
import re
from fractions import Fraction
from functools import reduce

import numpy as np
import sympy
from sympy.parsing.sympy_parser import (
    stringify_expr, standard_transformations, implicit_multiplication_application,
    convert_xor, rationalize
)

from stepcheck.errors import BackendParseError, EvaluationError
from stepcheck.tree import (
    Constant, Node, NodeKind, Symbol, const, operator, to_string
)

logger = logging.getLogger(__name__)

TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication_application,
    convert_xor,
    rationalize,  # "12.5" becomes Rational('12.5') rather than a Float
)

# Function names a learner may type, mapped to their SymPy callables.
FUNCTIONS = {
    'sqrt': sympy.sqrt,
    'sin': sympy.sin,
    'cos': sympy.cos,
    'tan': sympy.tan,
    'log': sympy.log,
    'ln': sympy.log,
    'exp': sympy.exp,
    'abs': sympy.Abs,
}

# SymPy classes whose printed name differs from what the learner types.
_FUNCTION_NAMES = {sympy.Abs: 'abs'}

_RESERVED = set(FUNCTIONS) | {'pi', 'E'}

_NUMBER_CALLS = {'Integer', 'Float', 'Rational'}

_BINOPS = {
    ast.Add: '+',
    ast.Sub: '-',
    ast.Mult: '*',
    ast.Div: '/',
    ast.Pow: '^',
}

_GLOBALS = {
    'Integer': sympy.Integer,
    'Float': sympy.Float,
    'Rational': sympy.Rational,
    'Symbol': sympy.Symbol,
    'Function': sympy.Function,
    'pi': sympy.pi,
    'E': sympy.E,
    **FUNCTIONS,
}

_UNDEFINED = (sympy.zoo, sympy.nan, sympy.oo, -sympy.oo)

_ALLOWED_CHARS = set(
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "0123456789"
    " \t+-*/^().,"
)


# ── Parsing ─────────────────────────────────────────────────────────────

def normalize_text(text: str) -> str:
    """Map display characters (√, π, ·, −, brackets) to parser-friendly text."""
    s = text.strip()
    s = s.replace('√', 'sqrt')
    s = s.replace('π', '(pi)')
    s = s.replace('·', '*').replace('×', '*')
    s = s.replace('−', '-').replace('÷', '/')
    s = s.replace('[', '(').replace(']', ')')
    s = s.replace('{', '(').replace('}', ')')
    s = re.sub(r'(?<![A-Za-z])(?:PI|Pi)(?![A-Za-z])', 'pi', s)
    # "2e" and "3j" would otherwise tokenize as Python number literals.
    s = re.sub(r'(\d)([eEjJ])(?![a-z])', r'\1*\2', s)
    return s


def _validate_characters(text: str) -> None:
    bad = sorted({ch for ch in text if ch not in _ALLOWED_CHARS})
    if bad:
        raise BackendParseError(
            f"Invalid character(s): {' '.join(bad)}", text
        )


def _detect_variables(text: str) -> list:
    """Return the sorted single-letter unknowns appearing in *text*.

    Multi-letter tokens that are not function names are implicit products
    of their letters (``xy`` is x·y).
    """
    letters = set()
    for tok in re.findall(r'[A-Za-z]+', text):
        if tok in _RESERVED:
            continue
        letters.update(tok)
    return sorted(letters)


def _expand_implicit_products(text: str, names: set) -> str:
    """Rewrite ``xy`` as ``x*y`` so keywords like ``as`` never reach the tokenizer."""
    def _repl(m):
        tok = m.group(0)
        if tok not in _RESERVED and all(ch in names for ch in tok):
            return '*'.join(tok)
        return tok
    return re.sub(r'[A-Za-z]+', _repl, text)


def parse(text: str) -> Node:
    """Parse one expression (no ``=``) into a tree.

    Raises BackendParseError for anything SymPy's tokenizer or Python's
    grammar rejects.
    """
    s = normalize_text(text)
    if not s:
        raise BackendParseError("Could not parse an empty expression", text)
    _validate_characters(s)
    names = _detect_variables(s)
    s = _expand_implicit_products(s, set(names))
    local = {name: sympy.Symbol(name) for name in names}
    try:
        code = stringify_expr(s, local, dict(_GLOBALS), TRANSFORMATIONS)
        body = ast.parse(code.strip(), mode='eval').body
    except Exception as e:
        raise BackendParseError(
            f"Could not parse expression: '{text}'. Error: {e}", text
        ) from e
    return _from_ast(body, text, set(names))


def _number_literal(args: list, text: str) -> Fraction:
    values = []
    for arg in args:
        if not isinstance(arg, ast.Constant):
            raise BackendParseError(f"Could not parse expression: '{text}'", text)
        values.append(Fraction(str(arg.value)))
    return reduce(lambda a, b: a / b, values)


def _from_ast(node, text: str, names: set) -> Node:
    if isinstance(node, ast.BinOp):
        op = _BINOPS.get(type(node.op))
        if op is None:
            raise BackendParseError(f"Unsupported operator in '{text}'", text)
        return operator(op, _from_ast(node.left, text, names),
                        _from_ast(node.right, text, names))

    if isinstance(node, ast.UnaryOp):
        operand = _from_ast(node.operand, text, names)
        if isinstance(node.op, ast.USub):
            return operator('-', operand)
        if isinstance(node.op, ast.UAdd):
            return operand
        raise BackendParseError(f"Unsupported operator in '{text}'", text)

    if isinstance(node, ast.Name):
        if node.id in names or node.id in ('pi', 'E'):
            return Symbol(node.id)
        raise BackendParseError(f"Unexpected name '{node.id}' in '{text}'", text)

    if (isinstance(node, ast.Call) and isinstance(node.func, ast.Name)
            and not node.keywords):
        name = node.func.id
        if name in _NUMBER_CALLS:
            return Constant(_number_literal(node.args, text))
        if name == 'Symbol' and len(node.args) == 1 and isinstance(node.args[0], ast.Constant):
            return Symbol(str(node.args[0].value))
        if name in FUNCTIONS:
            if not node.args:
                raise BackendParseError(f"{name}() needs an argument", text)
            return operator(name, *(_from_ast(a, text, names) for a in node.args))

    raise BackendParseError(f"Could not parse expression: '{text}'", text)


# ── SymPy conversion ────────────────────────────────────────────────────

def to_sympy(node: Node):
    kind = node.kind
    if kind is NodeKind.CONSTANT:
        return sympy.Rational(node.value.numerator, node.value.denominator)
    if kind is NodeKind.SYMBOL:
        if node.name == 'pi':
            return sympy.pi
        if node.name == 'E':
            return sympy.E
        return sympy.Symbol(node.name)
    if kind is NodeKind.PARENTHESIS:
        return to_sympy(node.content)

    args = [to_sympy(a) for a in node.args]
    if node.is_unary:
        return -args[0]
    if node.op == '+':
        return args[0] + args[1]
    if node.op == '-':
        return args[0] - args[1]
    if node.op == '*':
        return args[0] * args[1]
    if node.op == '/':
        return args[0] / args[1]
    if node.op == '^':
        return args[0] ** args[1]
    func = FUNCTIONS.get(node.op)
    if func is None:
        raise BackendParseError(f"Unknown function '{node.op}'", to_string(node))
    return func(*args)


def from_sympy(expr) -> Node:
    """Convert a SymPy expression into a tree with a deterministic layout.

    Sums follow SymPy's ordered terms with negative terms written as
    subtraction; numeric coefficients come first; quotients come from
    ``as_numer_denom``.
    """
    if expr.has(*_UNDEFINED):
        raise EvaluationError(f"Expression is undefined: {expr}")
    return _convert(expr)


def _convert(expr) -> Node:
    if expr.is_Integer:
        return const(int(expr))
    if expr.is_Rational:
        return operator('/', const(expr.p), const(expr.q))
    if expr.is_Float:
        return Constant(Fraction(str(expr)))
    if expr.is_Symbol:
        return Symbol(expr.name)
    if isinstance(expr, sympy.NumberSymbol):
        return Symbol(str(expr))

    if expr.is_Add:
        terms = expr.as_ordered_terms()
        result = _convert(terms[0])
        for term in terms[1:]:
            if term.could_extract_minus_sign():
                result = operator('-', result, _convert(-term))
            else:
                result = operator('+', result, _convert(term))
        return result

    if expr.is_Mul or expr.is_Pow:
        numer, denom = expr.as_numer_denom()
        if denom != 1:
            return operator('/', _convert(numer), _convert(denom))
        if expr.is_Pow:
            base, exponent = expr.as_base_exp()
            if exponent == sympy.Rational(1, 2):
                return operator('sqrt', _convert(base))
            return operator('^', _convert(base), _convert(exponent))
        return _convert_product(expr)

    if expr.is_Function:
        name = _FUNCTION_NAMES.get(expr.func, expr.func.__name__)
        return operator(name, *(_convert(a) for a in expr.args))

    raise BackendParseError(f"Cannot represent '{expr}'", str(expr))


def _convert_product(expr) -> Node:
    coeff, rest = expr.as_coeff_Mul()
    factors = [_convert(f) for f in rest.as_ordered_factors()]
    if coeff == -1:
        factors[0] = operator('-', factors[0])
    elif coeff != 1:
        factors.insert(0, _convert(coeff))
    return reduce(lambda a, b: operator('*', a, b), factors)


# ── Backend operations ──────────────────────────────────────────────────

def simplify(node: Node) -> Node:
    """Return the rational normal form ``expand(cancel(node))``.

    Equal polynomials (and equal rational functions) come back as the same
    tree, so callers can rely on structural comparison.
    """
    expr = to_sympy(node)
    try:
        expr = sympy.cancel(expr)
    except sympy.PolynomialError as e:
        logger.debug("cancel() skipped for %s: %s", expr, e)
    return from_sympy(sympy.expand(expr))


def expand(node: Node) -> Node:
    return from_sympy(sympy.expand(to_sympy(node)))


def equals(a: Node, b: Node) -> bool:
    """Structural equality; never semantic."""
    return a == b


def is_zero(node: Node) -> bool:
    return to_string(node) == '0' or node == const(0)


def leads_with_minus(node: Node) -> bool:
    """True when the first non-constant term of *node* carries a minus sign.

    Terms come in SymPy's order, which ignores coefficients, so ``e`` and
    ``-e`` always disagree.  A constant *node* answers with its own sign.
    """
    expr = to_sympy(node)
    for term in expr.as_ordered_terms():
        if term.free_symbols:
            return term.could_extract_minus_sign()
    return expr.could_extract_minus_sign()



def evaluate(node: Node, bindings: dict):
    """Evaluate *node* with NumPy, vectorised over the bound values.

    *bindings* maps each unknown to a number or array.  Raises
    EvaluationError when any value is undefined, complex, or not finite.
    """
    expr = to_sympy(node)
    if expr.has(*_UNDEFINED):
        raise EvaluationError(f"Expression is undefined: {to_string(node)}")
    missing = {s.name for s in expr.free_symbols} - set(bindings)
    if missing:
        raise EvaluationError(f"No value bound for {', '.join(sorted(missing))}")

    names = sorted(bindings)
    fn = sympy.lambdify([sympy.Symbol(n) for n in names], expr, modules="numpy")
    with np.errstate(all="ignore"):
        try:
            values = np.asarray(fn(*(np.asarray(bindings[n], dtype=float) for n in names)))
        except (ArithmeticError, TypeError, ValueError) as e:
            raise EvaluationError(f"Could not evaluate {to_string(node)}: {e}") from e
    if np.iscomplexobj(values):
        raise EvaluationError(f"{to_string(node)} has no real value here")
    values = values.astype(float)
    if not np.all(np.isfinite(values)):
        raise EvaluationError(f"{to_string(node)} is undefined at a sampled point")
    return values
