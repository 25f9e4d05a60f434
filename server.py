#!/usr/bin/env python3
"""CodeLoop - HTTP API for the generate / test / fix workflow."""

import logging
import os

from flask import Flask, jsonify, request

from agents.base import require_errors, require_language, require_text
from agents.fixer import FixerAgent
from agents.generator import GeneratorAgent
from agents.tester import TesterAgent
from config.languages import list_languages
from core.errors import MissingCredential, ValidationError
from core.orchestrator import Orchestrator
from core.quality import normalize_test_result, report_as_text
from utils.json_output import safe_parse_json
from utils.llm import ModelClient, get_settings

logger = logging.getLogger(__name__)

app = Flask(__name__)

MISSING_KEY_MESSAGE = "Anthropic API key not configured. Please set ANTHROPIC_API_KEY in the environment"


def _model_client():
    """A fresh client per request. Settings are read once per process."""
    return ModelClient(get_settings())


def _body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _error(message, status):
    return jsonify({"error": message}), status


def _failure(error, action):
    """Map a workflow error to an HTTP error response."""
    if isinstance(error, ValidationError):
        return _error(str(error), 400)
    if isinstance(error, MissingCredential):
        return _error(MISSING_KEY_MESSAGE, 500)
    logger.error("%s failed: %s", action, error, exc_info=error)
    return _error(f"Failed to {action}. Please try again.", 500)


@app.route("/api/languages")
def api_languages():
    return jsonify(list_languages())


@app.route("/api/agents")
def api_agents():
    agents = [GeneratorAgent, TesterAgent, FixerAgent]
    return jsonify([{"name": a.name, "description": a.description} for a in agents])


@app.route("/api/generate", methods=["POST"])
async def api_generate():
    data = _body()
    requirement = data.get("requirement")
    language = data.get("language")
    framework = data.get("framework") or None

    try:
        require_text(requirement, "Requirement")
        require_language(language)
        async with _model_client() as llm:
            result = await GeneratorAgent(llm).run(requirement, language, framework)
    except Exception as e:
        return _failure(e, "generate code")

    return jsonify({
        "code": result.code,
        "explanation": result.explanation,
        "language": language,
    })


@app.route("/api/test", methods=["POST"])
async def api_test():
    """Simulated test run. ``success`` is recomputed here, never taken from the model."""
    data = _body()
    code = data.get("code")
    language = data.get("language")
    requirement = data.get("requirement") or ""

    try:
        require_text(code, "Code")
        require_language(language)
        async with _model_client() as llm:
            report = await TesterAgent(llm).run(code, language, requirement)
        result = normalize_test_result(safe_parse_json(report.tests))
    except Exception as e:
        return _failure(e, "run tests")

    return jsonify(result.to_dict())


@app.route("/api/fix", methods=["POST"])
async def api_fix():
    data = _body()
    code = data.get("code")
    language = data.get("language")
    errors = data.get("errors")

    try:
        require_text(code, "Code")
        require_language(language)
        require_errors(errors)
        async with _model_client() as llm:
            result = await FixerAgent(llm).run(
                code, language, errors, report_as_text(data.get("testResults") or {}),
            )
    except Exception as e:
        return _failure(e, "fix code")

    return jsonify({
        "code": result.code,
        "changes": result.changes,
        "explanation": result.explanation,
    })


@app.route("/api/run", methods=["POST"])
async def api_run():
    """Generate, test and fix in one request. Returns the final workflow state."""
    data = _body()
    requirement = data.get("requirement")
    language = data.get("language")
    max_iters = data.get("max_iterations")

    try:
        require_text(requirement, "Requirement")
        require_language(language)
        if max_iters is not None and (isinstance(max_iters, bool) or not isinstance(max_iters, int)):
            raise ValidationError("max_iterations must be an integer")
        async with _model_client() as llm:
            orchestrator = Orchestrator.from_client(llm)
            state = orchestrator.new_state(
                requirement, language,
                framework=data.get("framework") or None,
                max_iterations=max_iters,
            )
            state = await orchestrator.auto_run(state)
    except Exception as e:
        return _failure(e, "complete the workflow")

    return jsonify(state.to_dict())


if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.environ.get("PORT", 5001))
    print(f"CodeLoop running at http://localhost:{port}")
    app.run(debug=False, port=port)
