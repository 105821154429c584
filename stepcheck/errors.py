"""Error types raised by the validation core.

Every parsing failure is a ``ValueError`` subclass so callers that only care
about "bad input" can keep catching ``ValueError``.
"""


class MathParsingError(ValueError):
    """Base class for input that cannot be turned into an expression tree."""

    def __init__(self, message: str, original_input: str = ""):
        super().__init__(message)
        self.message = message
        self.original_input = original_input


class EmptyInputError(MathParsingError):
    pass


class MalformedExpressionError(MathParsingError):
    """Doubled-operator typos such as ``3x ++ 5``."""


class InvalidEquationFormatError(MathParsingError):
    """Wrong number of ``=`` signs, or an empty side."""


class BackendParseError(MathParsingError):
    """The SymPy-backed parser rejected the text."""


class EvaluationError(ArithmeticError):
    """Numeric evaluation produced an undefined or non-finite value."""
