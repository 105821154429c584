"""Built-in sample problems with their expected solution steps."""

from stepcheck.validator import Difficulty, ProblemModel, ProblemType


def _difficulty(count: int) -> Difficulty:
    if count <= 2:
        return Difficulty.EASY
    if count <= 4:
        return Difficulty.MEDIUM
    return Difficulty.HARD


def difficulty_for(problem: ProblemModel) -> Difficulty:
    """Easy up to two steps, Medium up to four, Hard beyond."""
    return _difficulty(len(problem.solution_steps))


def _problem(problem_id: str, statement: str, steps: list,
             problem_type: ProblemType, title: str, tags: tuple = ()) -> ProblemModel:
    return ProblemModel(
        problem_statement=statement,
        solution_steps=tuple(steps),
        problem_id=problem_id,
        problem_type=problem_type,
        title=title,
        difficulty=_difficulty(len(steps)),
        tags=tags,
    )


_SOLVE = ProblemType.SOLVE_EQUATION
_SIMPLIFY = ProblemType.SIMPLIFY_EXPRESSION

PROBLEM_LIBRARY = (
    _problem("solve-001", "Solve for x: 4(x - 3) - (x - 5) = 14", [
        "4x - 12 - (x - 5) = 14",
        "4x - 12 - x + 5 = 14",
        "3x - 12 + 5 = 14",
        "3x - 7 = 14",
        "3x = 21",
        "x = 7",
    ], _SOLVE, "Distribute and solve", ("distributive", "linear")),
    _problem("solve-002", "Solve for x: 5x + 3 = 2x + 12", [
        "5x - 2x + 3 = 12",
        "3x + 3 = 12",
        "3x = 12 - 3",
        "3x = 9",
        "x = 3",
    ], _SOLVE, "Variables on both sides", ("linear",)),
    _problem("solve-003", "Solve for x: 3x - 7 = 14", [
        "3x = 14 + 7",
        "3x = 21",
        "x = 7",
    ], _SOLVE, "Two-step equation", ("linear",)),
    _problem("solve-004", "Solve for x: 2x + 5 = 11", [
        "2x = 11 - 5",
        "2x = 6",
        "x = 3",
    ], _SOLVE, "Two-step equation", ("linear",)),
    _problem("simplify-001", "Simplify: 3(x - 2y) + 2(y + 4x)", [
        "3x - 6y + 2y + 8x",
        "11x - 4y",
    ], _SIMPLIFY, "Distribute and combine", ("distributive", "like-terms")),
    _problem("simplify-002", "Simplify: 4x - x - 7", [
        "3x - 7",
    ], _SIMPLIFY, "Combine like terms", ("like-terms",)),
    _problem("simplify-003", "Simplify: 2x + 3 + 5x - 1", [
        "7x + 2",
    ], _SIMPLIFY, "Combine like terms and constants", ("like-terms",)),
    _problem("solve-005", "Solve for x: 6x - 9 = 3x + 6", [
        "6x - 3x = 6 + 9",
        "3x = 15",
        "x = 5",
    ], _SOLVE, "Variables on both sides", ("linear",)),
    _problem("solve-006", "Solve for x: 2(x + 3) = 14", [
        "2x + 6 = 14",
        "2x = 14 - 6",
        "2x = 8",
        "x = 4",
    ], _SOLVE, "Distribute and solve", ("distributive", "linear")),
    _problem("simplify-004", "Simplify: 5(2x + 1) - 3x", [
        "10x + 5 - 3x",
        "7x + 5",
    ], _SIMPLIFY, "Distribute and combine", ("distributive", "like-terms")),
)

_BY_ID = {p.problem_id: p for p in PROBLEM_LIBRARY}


def get_problem(problem_id: str):
    """Return the problem with *problem_id*, or None."""
    return _BY_ID.get(problem_id)


def problems_by_type(problem_type: ProblemType) -> list:
    return [p for p in PROBLEM_LIBRARY if p.problem_type == problem_type]
