import logging
import os
import time
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from stepcheck.equivalence import are_equivalent
from stepcheck.patterns import analyze, is_fully_simplified, simplification_feedback
from stepcheck.problems import PROBLEM_LIBRARY, get_problem, problems_by_type
from stepcheck.validator import (
    ProblemModel, ProblemType, ValidationContext, analyze_step_operation,
    generate_contextual_hints, get_expected_next_steps, is_problem_solved,
    needs_simplification, validate_step
)

logging.basicConfig(
    level=os.environ.get("STEPCHECK_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="StepCheck API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class StepRequest(BaseModel):
    problem_id: Optional[str] = None
    problem_statement: Optional[str] = None
    solution_steps: list[str] = []
    user_history: list[str] = []
    student_input: str = ""


class ExpressionRequest(BaseModel):
    expression: str


class EquivalenceRequest(BaseModel):
    first: str
    second: str


class PatternInfo(BaseModel):
    kind: str
    description: str
    affected: list[str]
    suggestion: str


class AnalysisInfo(BaseModel):
    is_fully_simplified: bool
    has_unsimplified_operations: bool
    patterns: list[PatternInfo]


class StepOperationInfo(BaseModel):
    operation_type: str
    is_valid: bool
    description: str


class StepResponse(BaseModel):
    result: str
    is_correct: bool
    should_advance: bool
    error_message: Optional[str] = None
    tree_analysis: Optional[AnalysisInfo] = None
    simplification_feedback: list[str]
    detected_pattern_kinds: list[str]
    hints: list[str]
    step_operation: Optional[StepOperationInfo] = None
    needs_simplification: bool
    processing_time_ms: float


class AnalyzeResponse(AnalysisInfo):
    feedback: list[str]
    matches_simplified_form: bool


class ProblemInfo(BaseModel):
    problem_id: Optional[str] = None
    problem_statement: str
    solution_steps: list[str]
    problem_type: Optional[str] = None
    title: Optional[str] = None
    difficulty: Optional[str] = None
    tags: list[str] = []


class NextStepsResponse(BaseModel):
    expected_next_steps: list[str]
    solved: bool


def _resolve_problem(req: StepRequest) -> ProblemModel:
    if req.problem_id:
        problem = get_problem(req.problem_id)
        if problem is None:
            raise HTTPException(status_code=404, detail=f"Unknown problem '{req.problem_id}'.")
        return problem
    if not req.problem_statement or not req.problem_statement.strip():
        raise HTTPException(
            status_code=400, detail="Provide a problem_id or a problem_statement."
        )
    try:
        return ProblemModel(
            problem_statement=req.problem_statement,
            solution_steps=tuple(req.solution_steps),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _build_context(req: StepRequest) -> ValidationContext:
    problem = _resolve_problem(req)
    try:
        return ValidationContext(
            problem_model=problem,
            user_history=tuple(req.user_history),
            student_input=req.student_input,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/problems", response_model=list[ProblemInfo])
def list_problems(problem_type: Optional[ProblemType] = None):
    problems = problems_by_type(problem_type) if problem_type else PROBLEM_LIBRARY
    return [p.to_dict() for p in problems]


@app.get("/api/problems/{problem_id}", response_model=ProblemInfo)
def read_problem(problem_id: str):
    problem = get_problem(problem_id)
    if problem is None:
        raise HTTPException(status_code=404, detail=f"Unknown problem '{problem_id}'.")
    return problem.to_dict()


@app.post("/api/validate-step", response_model=StepResponse)
def validate(req: StepRequest):
    t_start = time.perf_counter()
    context = _build_context(req)

    result = validate_step(context)
    step_operation = None
    if len(context.user_history) > 1:
        step_operation = analyze_step_operation(
            context.previous_step, context.student_input
        ).to_dict()
    response = {
        **result.to_dict(),
        "hints": generate_contextual_hints(context),
        "step_operation": step_operation,
        "needs_simplification": needs_simplification(context.student_input),
    }

    runtime_ms = round((time.perf_counter() - t_start) * 1000, 2)
    response["processing_time_ms"] = runtime_ms
    logger.info(
        "Step attempt problem=%s step=%d input=%r result=%s (%.2f ms)",
        req.problem_id or "<inline>", len(context.user_history),
        context.student_input, result.result.value, runtime_ms,
    )
    return response


@app.post("/api/next-steps", response_model=NextStepsResponse)
def next_steps(req: StepRequest):
    context = _build_context(req)
    return {
        "expected_next_steps": get_expected_next_steps(context),
        "solved": is_problem_solved(context),
    }


@app.post("/api/analyze", response_model=AnalyzeResponse)
def analyze_expression(req: ExpressionRequest):
    expression = req.expression.strip()
    if not expression:
        raise HTTPException(status_code=400, detail="Expression cannot be empty.")
    analysis = analyze(expression)
    return {
        **analysis.to_dict(),
        "feedback": simplification_feedback(analysis.patterns),
        "matches_simplified_form": is_fully_simplified(expression),
    }


@app.post("/api/equivalent")
def equivalent(req: EquivalenceRequest):
    return {"equivalent": are_equivalent(req.first, req.second)}
