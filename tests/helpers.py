"""Builders for fake model output used across the tests."""

import json
from types import SimpleNamespace

PASSING = {"name": "creates user", "status": "pass", "message": "ok", "duration": 12}
FAILING = {"name": "rejects bad email", "status": "fail", "message": "no validation", "duration": 8}


def make_message(text, stop_reason="end_turn"):
    """Minimal stand-in for an anthropic Message."""
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        stop_reason=stop_reason,
    )


def report_json(tests=(), errors=(), summary="summary", success=None):
    """Raw tester output as the model would send it."""
    payload = {"tests": list(tests), "summary": summary, "errors": list(errors)}
    if success is not None:
        payload["success"] = success
    return json.dumps(payload)
