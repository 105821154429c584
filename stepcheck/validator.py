""" Classify a learner's submitted step against the expected solution."""

"""
``validate_step`` is the entry point the host calls for every submission.
It combines the syntax validator, the pattern detector and the
equivalence checker with the learner's accepted history and the
problem's expected steps, and maps the result onto one of six
``OutcomeCode`` values.  It never raises.

The remaining helpers (hints, next steps, step-operation analysis)
are best-effort inputs for feedback text and are not authoritative.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from stepcheck.equivalence import are_equivalent
from stepcheck.errors import MathParsingError
from stepcheck.patterns import (
    PatternKind, TreeAnalysisResult, analyze, simplification_feedback
)
from stepcheck.syntax import check_parseable

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred during validation"


class OutcomeCode(str, Enum):
    CORRECT_FINAL_STEP = "CORRECT_FINAL_STEP"
    CORRECT_INTERMEDIATE_STEP = "CORRECT_INTERMEDIATE_STEP"
    CORRECT_BUT_NOT_SIMPLIFIED = "CORRECT_BUT_NOT_SIMPLIFIED"
    VALID_BUT_NO_PROGRESS = "VALID_BUT_NO_PROGRESS"
    EQUIVALENCE_FAILURE = "EQUIVALENCE_FAILURE"
    PARSING_ERROR = "PARSING_ERROR"


_CORRECT_OUTCOMES = {
    OutcomeCode.CORRECT_FINAL_STEP,
    OutcomeCode.CORRECT_INTERMEDIATE_STEP,
    OutcomeCode.CORRECT_BUT_NOT_SIMPLIFIED,
}


class ProblemType(str, Enum):
    SOLVE_EQUATION = "SOLVE_EQUATION"
    SIMPLIFY_EXPRESSION = "SIMPLIFY_EXPRESSION"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class StepOperationType(str, Enum):
    SIMPLIFIED_ARITHMETIC = "SIMPLIFIED_ARITHMETIC"
    COMBINED_LIKE_TERMS = "COMBINED_LIKE_TERMS"
    DISTRIBUTED = "DISTRIBUTED"
    EQUIVALENT_TRANSFORMATION = "EQUIVALENT_TRANSFORMATION"
    UNKNOWN = "UNKNOWN"
    ERROR = "ERROR"


# ── Data model ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ProblemModel:
    problem_statement: str
    solution_steps: tuple
    problem_id: Optional[str] = None
    problem_type: Optional[ProblemType] = None
    title: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    tags: tuple = ()

    def __post_init__(self):
        steps = tuple(s.strip() for s in self.solution_steps)
        if not steps or not all(steps):
            raise ValueError("A problem needs at least one non-empty solution step.")
        object.__setattr__(self, "solution_steps", steps)
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def final_step(self) -> str:
        return self.solution_steps[-1]

    def to_dict(self) -> dict:
        return {
            "problem_id": self.problem_id,
            "problem_statement": self.problem_statement,
            "solution_steps": list(self.solution_steps),
            "problem_type": self.problem_type.value if self.problem_type else None,
            "title": self.title,
            "difficulty": self.difficulty.value if self.difficulty else None,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class ValidationContext:
    """One submission: the problem, the accepted history, and the new input.

    ``user_history[0]`` is always the problem statement; an empty history
    is read as "nothing accepted yet".
    """

    problem_model: ProblemModel
    user_history: tuple = ()
    student_input: str = ""

    def __post_init__(self):
        history = tuple(self.user_history)
        statement = self.problem_model.problem_statement
        if not history:
            history = (statement,)
        elif history[0].strip() != statement.strip():
            raise ValueError(
                "The first history entry must be the problem statement."
            )
        object.__setattr__(self, "user_history", history)

    @property
    def previous_step(self) -> str:
        return self.user_history[-1]


@dataclass(frozen=True)
class StepValidationResult:
    result: OutcomeCode
    error_message: Optional[str] = None
    tree_analysis: Optional[TreeAnalysisResult] = None
    simplification_feedback: list = field(default_factory=list)
    detected_pattern_kinds: list = field(default_factory=list)

    @property
    def is_correct(self) -> bool:
        return self.result in _CORRECT_OUTCOMES

    @property
    def should_advance(self) -> bool:
        return self.result in _CORRECT_OUTCOMES

    def to_dict(self) -> dict:
        return {
            "result": self.result.value,
            "is_correct": self.is_correct,
            "should_advance": self.should_advance,
            "error_message": self.error_message,
            "tree_analysis": self.tree_analysis.to_dict() if self.tree_analysis else None,
            "simplification_feedback": list(self.simplification_feedback),
            "detected_pattern_kinds": [k.value for k in self.detected_pattern_kinds],
        }


@dataclass(frozen=True)
class StepOperation:
    operation_type: StepOperationType
    is_valid: bool
    description: str

    def to_dict(self) -> dict:
        return {
            "operation_type": self.operation_type.value,
            "is_valid": self.is_valid,
            "description": self.description,
        }


# ── Step validation ─────────────────────────────────────────────────────

def _matching_step_index(student_input: str, steps: tuple) -> int:
    """Index of the expected step *student_input* matches, or -1.

    An exact (trimmed) match wins over an equivalent one.
    """
    trimmed = student_input.strip()
    for i, step in enumerate(steps):
        if step.strip() == trimmed:
            return i
    for i, step in enumerate(steps):
        if are_equivalent(student_input, step):
            return i
    return -1


def _classify(context: ValidationContext) -> StepValidationResult:
    student_input = context.student_input
    steps = context.problem_model.solution_steps

    analysis = analyze(student_input)
    feedback = simplification_feedback(analysis.patterns)
    kinds = analysis.pattern_kinds

    def outcome(code: OutcomeCode, feedback=feedback) -> StepValidationResult:
        return StepValidationResult(
            result=code,
            tree_analysis=analysis,
            simplification_feedback=feedback,
            detected_pattern_kinds=kinds,
        )

    previous_step = context.previous_step
    is_correct_step = any(are_equivalent(student_input, step) for step in steps)

    if student_input.strip() == previous_step.strip():
        return outcome(OutcomeCode.VALID_BUT_NO_PROGRESS)
    if not is_correct_step and are_equivalent(student_input, previous_step):
        if len(analysis.patterns) >= len(analyze(previous_step).patterns):
            return outcome(OutcomeCode.VALID_BUT_NO_PROGRESS)

    if is_correct_step:
        index = _matching_step_index(student_input, steps)
        if index == len(steps) - 1:
            if analysis.is_fully_simplified:
                return outcome(OutcomeCode.CORRECT_FINAL_STEP, feedback=[])
            return outcome(OutcomeCode.CORRECT_BUT_NOT_SIMPLIFIED)
        if analysis.is_fully_simplified:
            return outcome(OutcomeCode.CORRECT_INTERMEDIATE_STEP, feedback=[])
        return outcome(OutcomeCode.CORRECT_INTERMEDIATE_STEP)

    return outcome(OutcomeCode.EQUIVALENCE_FAILURE)


def validate_step(context: ValidationContext) -> StepValidationResult:
    """Classify ``context.student_input``; every failure becomes PARSING_ERROR."""
    try:
        check_parseable(context.student_input)
    except MathParsingError as e:
        return StepValidationResult(result=OutcomeCode.PARSING_ERROR, error_message=e.message)

    try:
        return _classify(context)
    except Exception:
        logger.exception("Validation of %r failed", context.student_input)
        return StepValidationResult(
            result=OutcomeCode.PARSING_ERROR, error_message=UNEXPECTED_ERROR_MESSAGE
        )


def is_problem_solved(context: ValidationContext) -> bool:
    """True when the last accepted step is the final answer, fully simplified."""
    # Only the statement so far: nothing has been accepted yet.
    if len(context.user_history) < 2:
        return False
    last_step = context.user_history[-1]
    return (
        are_equivalent(last_step, context.problem_model.final_step)
        and analyze(last_step).is_fully_simplified
    )


def get_expected_next_steps(context: ValidationContext) -> list:
    """Expected steps after the furthest one the history has reached."""
    steps = context.problem_model.solution_steps
    furthest = -1
    for entry in context.user_history[1:]:
        furthest = max(furthest, _matching_step_index(entry, steps))
    return list(steps[furthest + 1:])


def analyze_step_operation(previous_step: str, current_step: str) -> StepOperation:
    """Guess what the learner did between two steps, for hint text only."""
    try:
        before = set(analyze(previous_step).pattern_kinds)
        after = set(analyze(current_step).pattern_kinds)
        for kind, op_type, description in (
            (PatternKind.CONSTANT_ARITHMETIC, StepOperationType.SIMPLIFIED_ARITHMETIC,
             "Simplified constant arithmetic operations"),
            (PatternKind.LIKE_TERMS, StepOperationType.COMBINED_LIKE_TERMS,
             "Combined like terms"),
            (PatternKind.DISTRIBUTIVE, StepOperationType.DISTRIBUTED,
             "Applied distributive property"),
        ):
            if kind in before and kind not in after:
                return StepOperation(op_type, True, description)
        if are_equivalent(previous_step, current_step):
            return StepOperation(
                StepOperationType.EQUIVALENT_TRANSFORMATION, True,
                "Applied valid mathematical transformation",
            )
        return StepOperation(
            StepOperationType.UNKNOWN, False,
            "Could not identify the mathematical operation",
        )
    except Exception:
        logger.exception("Step operation analysis failed")
        return StepOperation(
            StepOperationType.ERROR, False,
            "Error analyzing the mathematical operation",
        )


# ── Hints ───────────────────────────────────────────────────────────────

def generate_contextual_hints(context: ValidationContext) -> list:
    analysis = analyze(context.student_input)
    hints = []
    if not analysis.patterns and analysis.has_unsimplified_operations:
        hints.append(
            "Look for opportunities to simplify coefficients or clean up the expression."
        )
    hints.extend(simplification_feedback(analysis.patterns))
    if analysis.is_fully_simplified:
        hints.append(
            "This expression appears to be fully simplified. "
            "Check if it matches the expected form."
        )
    return hints


def needs_simplification(expression: str) -> bool:
    return not analyze(expression).is_fully_simplified


def get_simplification_suggestions(expression: str) -> list:
    return simplification_feedback(analyze(expression).patterns)
