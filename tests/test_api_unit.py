import pytest
from fastapi.testclient import TestClient

from backend.app.main import app

client = TestClient(app)


def test_list_problems() -> None:
    res = client.get("/api/problems")
    assert res.status_code == 200
    data = res.json()
    assert len(data) == 10
    assert data[0]["problem_id"] == "solve-001"
    assert data[0]["difficulty"] == "Hard"


def test_list_problems_by_type() -> None:
    res = client.get("/api/problems", params={"problem_type": "SIMPLIFY_EXPRESSION"})
    assert res.status_code == 200
    assert {p["problem_type"] for p in res.json()} == {"SIMPLIFY_EXPRESSION"}


def test_read_problem() -> None:
    res = client.get("/api/problems/solve-003")
    assert res.status_code == 200
    assert res.json()["solution_steps"] == ["3x = 14 + 7", "3x = 21", "x = 7"]
    assert client.get("/api/problems/nope").status_code == 404


class TestValidateStep:
    def test_library_problem(self):
        res = client.post("/api/validate-step", json={
            "problem_id": "solve-003",
            "student_input": "3x = 14 + 7",
        })
        assert res.status_code == 200
        data = res.json()
        assert data["result"] == "CORRECT_INTERMEDIATE_STEP"
        assert data["is_correct"] is True
        assert data["detected_pattern_kinds"] == ["CONSTANT_ARITHMETIC"]
        assert data["needs_simplification"] is True
        assert data["step_operation"] is None
        assert data["processing_time_ms"] >= 0

    def test_inline_problem_with_history(self):
        res = client.post("/api/validate-step", json={
            "problem_statement": "2x + 5 = 11",
            "solution_steps": ["2x = 11 - 5", "2x = 6", "x = 3"],
            "user_history": ["2x + 5 = 11", "2x = 11 - 5", "2x = 6"],
            "student_input": "x = 3",
        })
        assert res.status_code == 200
        data = res.json()
        assert data["result"] == "CORRECT_FINAL_STEP"
        assert data["step_operation"]["operation_type"] == "UNKNOWN"
        assert data["hints"][-1].startswith("This expression appears to be fully simplified")

    def test_parsing_error_is_a_result(self):
        res = client.post("/api/validate-step", json={
            "problem_id": "solve-003",
            "student_input": "3x ++ 5",
        })
        assert res.status_code == 200
        assert res.json()["result"] == "PARSING_ERROR"
        assert "consecutive operators" in res.json()["error_message"]

    @pytest.mark.parametrize(
        "payload,status",
        [
            ({"problem_id": "nope", "student_input": "x = 1"}, 404),
            ({"student_input": "x = 1"}, 400),
            ({"problem_statement": "x + 1 = 2", "solution_steps": [], "student_input": "x = 1"}, 400),
            ({"problem_id": "solve-003", "user_history": ["3x = 21"], "student_input": "x = 7"}, 400),
        ],
    )
    def test_bad_requests(self, payload, status):
        assert client.post("/api/validate-step", json=payload).status_code == status


def test_next_steps() -> None:
    res = client.post("/api/next-steps", json={
        "problem_id": "solve-003",
        "user_history": ["Solve for x: 3x - 7 = 14", "3x = 14 + 7"],
    })
    assert res.status_code == 200
    assert res.json() == {"expected_next_steps": ["3x = 21", "x = 7"], "solved": False}


def test_analyze() -> None:
    res = client.post("/api/analyze", json={"expression": "4x - x - 7"})
    assert res.status_code == 200
    data = res.json()
    assert data["is_fully_simplified"] is False
    assert data["feedback"] == ["You can combine like terms: 4x - x"]
    assert data["matches_simplified_form"] is False
    assert client.post("/api/analyze", json={"expression": "  "}).status_code == 400


def test_equivalent() -> None:
    res = client.post("/api/equivalent", json={"first": "2(x + 3)", "second": "2x + 6"})
    assert res.json() == {"equivalent": True}
    res = client.post("/api/equivalent", json={"first": "x = 3", "second": "x = 4"})
    assert res.json() == {"equivalent": False}
