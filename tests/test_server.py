"""Tests for server.py Flask endpoints. All agent calls are mocked."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agents.fixer import FixerAgent
from agents.generator import GeneratorAgent
from agents.tester import TesterAgent
from core.errors import MissingCredential, UpstreamFailure
from core.state import FixResult, GenerateResult, RawTestReport
from helpers import FAILING, PASSING, report_json


@pytest.fixture
def client():
    """Flask test client with the model client replaced by a mock."""
    import server
    server.app.config["TESTING"] = True
    with patch("server._model_client", return_value=MagicMock()), \
         server.app.test_client() as c:
        yield c


def _raw(text):
    return RawTestReport(tests=text, explanation="Tests generated and executed")


# ---------------------------------------------------------------------------
# GET /api/languages
# ---------------------------------------------------------------------------

def test_languages(client):
    resp = client.get("/api/languages")
    assert resp.status_code == 200
    values = [lang["value"] for lang in resp.get_json()]
    assert values == ["typescript", "python", "go", "java", "rust"]


# ---------------------------------------------------------------------------
# GET /api/agents
# ---------------------------------------------------------------------------

def test_api_agents_returns_list(client):
    resp = client.get("/api/agents")
    assert resp.status_code == 200
    names = [a["name"] for a in resp.get_json()]
    assert names == ["generator", "tester", "fixer"]


# ---------------------------------------------------------------------------
# POST /api/generate
# ---------------------------------------------------------------------------

def test_generate_success(client):
    result = GenerateResult(code="const app = express();", explanation="Express CRUD")
    with patch.object(GeneratorAgent, "run", AsyncMock(return_value=result)) as run:
        resp = client.post("/api/generate", json={
            "requirement": "Create a REST API for user CRUD", "language": "typescript",
        })

    assert resp.status_code == 200
    assert resp.get_json() == {
        "code": "const app = express();",
        "explanation": "Express CRUD",
        "language": "typescript",
    }
    run.assert_awaited_once_with("Create a REST API for user CRUD", "typescript", None)


@pytest.mark.parametrize("body", [
    {},
    {"requirement": "   ", "language": "python"},
    {"requirement": "todo", "language": "cobol"},
    {"requirement": "todo"},
])
def test_generate_bad_request(client, body):
    with patch.object(GeneratorAgent, "run", AsyncMock()) as run:
        resp = client.post("/api/generate", json=body)
    assert resp.status_code == 400
    assert "error" in resp.get_json()
    run.assert_not_awaited()


def test_generate_invalid_language_lists_supported(client):
    resp = client.post("/api/generate", json={"requirement": "todo", "language": "php"})
    assert "typescript, python, go, java, rust" in resp.get_json()["error"]


def test_generate_non_json_body(client):
    resp = client.post("/api/generate", data="requirement=todo")
    assert resp.status_code == 400


def test_generate_missing_credential(client):
    with patch("server._model_client", side_effect=MissingCredential("no key")):
        resp = client.post("/api/generate", json={"requirement": "todo", "language": "python"})
    assert resp.status_code == 500
    assert "ANTHROPIC_API_KEY" in resp.get_json()["error"]


def test_generate_upstream_failure(client):
    with patch.object(GeneratorAgent, "run", AsyncMock(side_effect=UpstreamFailure("503"))):
        resp = client.post("/api/generate", json={"requirement": "todo", "language": "python"})
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to generate code. Please try again."}


# ---------------------------------------------------------------------------
# POST /api/test
# ---------------------------------------------------------------------------

def test_test_recomputes_success(client):
    raw = _raw(report_json(tests=[], errors=[], success=True))
    with patch.object(TesterAgent, "run", AsyncMock(return_value=raw)):
        resp = client.post("/api/test", json={"code": "x", "language": "python"})

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["success"] is False
    assert data["tests"] == []


def test_test_normalizes_report(client):
    raw = _raw("```json\n" + report_json(tests=[PASSING, FAILING], errors=["bad email"]) + "\n```")
    with patch.object(TesterAgent, "run", AsyncMock(return_value=raw)) as run:
        resp = client.post("/api/test", json={
            "code": "x", "language": "python", "requirement": "users",
        })

    data = resp.get_json()
    assert data["success"] is False
    assert [t["status"] for t in data["tests"]] == ["pass", "fail"]
    assert data["errors"] == ["bad email"]
    run.assert_awaited_once_with("x", "python", "users")


def test_test_all_pass(client):
    raw = _raw(report_json(tests=[PASSING], success=False))
    with patch.object(TesterAgent, "run", AsyncMock(return_value=raw)):
        resp = client.post("/api/test", json={"code": "x", "language": "go"})
    assert resp.get_json()["success"] is True


def test_test_oversized_number_reported_as_failure(client):
    raw = _raw('{"tests": [{"name": "t", "status": "pass", "duration": ' + "1" * 5000 + "}]}")
    with patch.object(TesterAgent, "run", AsyncMock(return_value=raw)):
        resp = client.post("/api/test", json={"code": "x", "language": "python"})

    assert resp.status_code == 200
    assert resp.get_json()["success"] is False


def test_test_unexpected_error_returns_json(client):
    raw = _raw(report_json(tests=[PASSING]))
    with patch.object(TesterAgent, "run", AsyncMock(return_value=raw)), \
         patch("server.normalize_test_result", side_effect=RuntimeError("boom")):
        resp = client.post("/api/test", json={"code": "x", "language": "python"})

    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Failed to run tests. Please try again."}


@pytest.mark.parametrize("body", [
    {"language": "python"},
    {"code": "", "language": "python"},
    {"code": "x"},
])
def test_test_bad_request(client, body):
    resp = client.post("/api/test", json=body)
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# POST /api/fix
# ---------------------------------------------------------------------------

def test_fix_success(client):
    fix = FixResult(code="fixed", changes=["validate email"], explanation="added checks")
    with patch.object(FixerAgent, "run", AsyncMock(return_value=fix)) as run:
        resp = client.post("/api/fix", json={
            "code": "broken", "language": "python", "errors": ["no validation"],
            "testResults": {"success": False, "tests": []},
        })

    assert resp.status_code == 200
    assert resp.get_json() == {
        "code": "fixed", "changes": ["validate email"], "explanation": "added checks",
    }
    code, language, errors, report_text = run.await_args.args
    assert errors == ["no validation"]
    assert json.loads(report_text) == {"success": False, "tests": []}


def test_fix_without_test_results(client):
    fix = FixResult(code="fixed", changes=["c"], explanation="e")
    with patch.object(FixerAgent, "run", AsyncMock(return_value=fix)) as run:
        client.post("/api/fix", json={"code": "broken", "language": "python", "errors": ["e"]})
    assert run.await_args.args[3] == "{}"


@pytest.mark.parametrize("body", [
    {"language": "python", "errors": ["e"]},
    {"code": "x", "errors": ["e"]},
    {"code": "x", "language": "python"},
    {"code": "x", "language": "python", "errors": []},
])
def test_fix_bad_request(client, body):
    resp = client.post("/api/fix", json=body)
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# POST /api/run
# ---------------------------------------------------------------------------

def test_run_full_workflow(client):
    gen = GenerateResult(code="v0", explanation="draft")
    reports = [_raw(report_json(tests=[FAILING], errors=["bad email"])),
               _raw(report_json(tests=[PASSING]))]
    fix = FixResult(code="v1", changes=["validate email"], explanation="fixed")

    with patch.object(GeneratorAgent, "run", AsyncMock(return_value=gen)), \
         patch.object(TesterAgent, "run", AsyncMock(side_effect=reports)), \
         patch.object(FixerAgent, "run", AsyncMock(return_value=fix)):
        resp = client.post("/api/run", json={"requirement": "users", "language": "java"})

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["step"] == "complete"
    assert data["code"] == "v1"
    assert data["iteration"] == 1
    assert data["fix_history"][0]["changes"] == ["validate email"]
    assert data["test_result"]["success"] is True


def test_run_upstream_failure_reports_error_state(client):
    with patch.object(GeneratorAgent, "run", AsyncMock(side_effect=UpstreamFailure("down"))):
        resp = client.post("/api/run", json={"requirement": "users", "language": "java"})

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["step"] == "error"
    assert data["error"] == "Failed to complete the workflow. Please try again."


def test_run_custom_max_iterations(client):
    gen = GenerateResult(code="v0", explanation="draft")
    failing = _raw(report_json(tests=[FAILING], errors=["e"]))
    fix = FixResult(code="v1", changes=["c"], explanation="x")

    with patch.object(GeneratorAgent, "run", AsyncMock(return_value=gen)), \
         patch.object(TesterAgent, "run", AsyncMock(return_value=failing)), \
         patch.object(FixerAgent, "run", AsyncMock(return_value=fix)) as fix_run:
        resp = client.post("/api/run", json={
            "requirement": "users", "language": "java", "max_iterations": 1,
        })

    data = resp.get_json()
    assert data["step"] == "tested"
    assert data["max_iterations"] == 1
    assert fix_run.await_count == 1


@pytest.mark.parametrize("body", [
    {"language": "java"},
    {"requirement": "users", "language": "java", "max_iterations": "3"},
    {"requirement": "users", "language": "java", "max_iterations": True},
])
def test_run_bad_request(client, body):
    resp = client.post("/api/run", json=body)
    assert resp.status_code == 400
