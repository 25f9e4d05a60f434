"""Workflow state models shared across all stages."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum

from config.defaults import DEFAULTS


class WorkflowStep(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    GENERATED = "generated"
    TESTING = "testing"
    TESTED = "tested"
    FIXING = "fixing"
    FIXED = "fixed"
    COMPLETE = "complete"
    ERROR = "error"


TEST_STATUSES = ("pass", "fail", "pending")


@dataclass(frozen=True)
class TestCase:
    __test__ = False  # not a pytest class

    name: str
    status: str                     # "pass", "fail", "pending"
    message: str
    duration: float | None = None   # milliseconds


@dataclass
class TestResult:
    __test__ = False

    success: bool
    tests: list[TestCase] = field(default_factory=list)
    summary: str = ""
    errors: list[str] = field(default_factory=list)

    def failed_tests(self) -> list[TestCase]:
        return [t for t in self.tests if t.status == "fail"]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class GenerateResult:
    code: str
    explanation: str


@dataclass
class RawTestReport:
    tests: str                      # model text, not yet normalized
    explanation: str


@dataclass
class FixResult:
    code: str
    changes: list[str]
    explanation: str


@dataclass
class WorkflowState:
    requirement: str = ""
    language: str = ""
    framework: str | None = None
    step: WorkflowStep = WorkflowStep.IDLE
    code: str = ""
    explanation: str = ""
    test_result: TestResult | None = None
    fix_history: list[FixResult] = field(default_factory=list)
    iteration: int = 0              # completed fix attempts in this run
    max_iterations: int = DEFAULTS["max_iterations"]
    error: str = ""                 # user-facing message when step is "error"

    def reset(self):
        """Back to the initial values of a fresh run. Inputs are kept."""
        self.step = WorkflowStep.IDLE
        self.code = ""
        self.explanation = ""
        self.test_result = None
        self.fix_history = []
        self.iteration = 0
        self.error = ""

    @property
    def is_busy(self) -> bool:
        return self.step in (WorkflowStep.GENERATING, WorkflowStep.TESTING, WorkflowStep.FIXING)

    def to_dict(self) -> dict:
        """Serialize to a JSON-safe dict."""
        return {
            "step": self.step.value,
            "requirement": self.requirement,
            "language": self.language,
            "framework": self.framework,
            "code": self.code,
            "explanation": self.explanation,
            "test_result": self.test_result.to_dict() if self.test_result else None,
            "fix_history": [asdict(f) for f in self.fix_history],
            "iteration": self.iteration,
            "max_iterations": self.max_iterations,
            "error": self.error,
        }
