"""Trust boundary between the simulated test report and the domain model.

The test report is produced by the model, not by running anything, so none of
its claims are taken at face value: every field is type-checked and the
``success`` flag is always recomputed from the individual test cases.
"""

import json
import numbers

from core.state import TEST_STATUSES, TestCase, TestResult

DEFAULT_SUMMARY = "Failed to parse test results"


def tests_pass(tests, errors) -> bool:
    """Tests must exist, all of them must pass, and no errors may be reported."""
    return bool(tests) and all(t.status == "pass" for t in tests) and not errors


def _to_test_case(item):
    name = item.get("name")
    message = item.get("message")
    status = item.get("status")
    if status not in TEST_STATUSES:
        status = "pending"

    duration = item.get("duration")
    # bool is a Number subclass, reject it explicitly
    if isinstance(duration, bool) or not isinstance(duration, numbers.Real) or duration < 0:
        duration = None

    return TestCase(
        name=str(name) if name is not None else "",
        status=status,
        message=str(message) if message is not None else "",
        duration=duration,
    )


def normalize_test_result(parsed) -> TestResult:
    """Build a TestResult from a parsed report, ignoring its own success claim."""
    if not isinstance(parsed, dict):
        parsed = {}

    raw_tests = parsed.get("tests")
    tests = []
    if isinstance(raw_tests, list):
        tests = [_to_test_case(item) for item in raw_tests if isinstance(item, dict)]

    raw_errors = parsed.get("errors")
    errors = []
    if isinstance(raw_errors, list):
        errors = [e for e in raw_errors if isinstance(e, str)]

    summary = parsed.get("summary")
    if not isinstance(summary, str) or not summary:
        summary = DEFAULT_SUMMARY

    return TestResult(
        success=tests_pass(tests, errors),
        tests=tests,
        summary=summary,
        errors=errors,
    )


def errors_for_fix(result: TestResult) -> list[str]:
    """Errors to hand to the fixer. Never empty."""
    if result.errors:
        return list(result.errors)

    failing = [f"{t.name}: {t.message}" for t in result.tests if t.status != "pass"]
    if failing:
        return failing
    return ["Tests did not pass: " + result.summary]


def report_as_text(result) -> str:
    """JSON text of a test report, as embedded in the fix prompt."""
    if result is None:
        return "{}"
    if isinstance(result, TestResult):
        result = result.to_dict()
    return json.dumps(result, indent=2)
