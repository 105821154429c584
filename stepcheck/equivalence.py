"""Decide whether two inputs denote the same value for every assignment."""

import logging

import numpy as np

from stepcheck import backend
from stepcheck.canonical import canonicalize
from stepcheck.config import DEFAULT_CONFIG, EngineConfig
from stepcheck.syntax import validate
from stepcheck.tree import Node, free_symbols, to_string

logger = logging.getLogger(__name__)


def _vanishes(difference: Node, config: EngineConfig) -> bool:
    """True if *difference* simplifies to zero or samples to zero.

    Sampling is only attempted for zero or one unknown; the probe set is
    too small to say anything about several.
    """
    difference = backend.simplify(difference)
    if backend.is_zero(difference):
        return True

    names = sorted(free_symbols(difference))
    if len(names) > 1:
        return False
    bindings = {names[0]: np.array(config.probe_values, dtype=float)} if names else {}
    try:
        residuals = np.abs(backend.evaluate(difference, bindings))
    except ArithmeticError as e:
        logger.debug("Probe evaluation failed for %s: %s", to_string(difference), e)
        return False
    return bool(np.all(residuals < config.tolerance))


def _difference(a: str, b: str) -> Node:
    return backend.parse(f"({a}) - ({b})")


def are_equivalent(a: str, b: str, config: EngineConfig = DEFAULT_CONFIG) -> bool:
    """Total equivalence check; malformed input compares unequal."""
    try:
        first = validate(a)
        second = validate(b)
        if first.is_equation or second.is_equation:
            left = canonicalize(a, config)
            right = canonicalize(b, config)
            if backend.equals(left, right):
                return True
            return _vanishes(_difference(to_string(left), to_string(right)), config)

        left = backend.parse(first.trimmed)
        right = backend.parse(second.trimmed)
        if backend.equals(left, right):
            return True
        return _vanishes(_difference(first.trimmed, second.trimmed), config)
    except Exception as e:
        logger.debug("Equivalence check of %r and %r failed: %s", a, b, e)
        return False
