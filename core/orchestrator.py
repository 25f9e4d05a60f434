"""Workflow orchestrator: generate -> test -> (fix -> test)* state machine."""

import logging

from agents.fixer import FixerAgent
from agents.generator import GeneratorAgent
from agents.tester import TesterAgent
from config.defaults import DEFAULTS
from core.errors import MissingCredential, ValidationError
from core.quality import errors_for_fix, normalize_test_result, report_as_text
from core.state import WorkflowState, WorkflowStep
from utils.json_output import safe_parse_json

logger = logging.getLogger(__name__)


def _user_message(error, action):
    """Compose the message shown to the user when a step fails."""
    if isinstance(error, (ValidationError, MissingCredential)):
        return str(error)
    return f"Failed to {action}. Please try again."


class Orchestrator:
    """Runs the code-generation workflow for one WorkflowState at a time.

    Two entry modes share the same fix loop:
        - generate() stops at "generated"; run_tests() then tests and fixes.
        - auto_run() does everything in one call.

    Failures never escape: the state moves to "error", ``state.error`` holds a
    user-facing message, and the last good code and test result are kept.
    ``on_change(state)`` is called after every transition.
    """

    def __init__(self, generator, tester, fixer, max_iterations=None, on_change=None):
        self.generator = generator
        self.tester = tester
        self.fixer = fixer
        self.max_iterations = DEFAULTS["max_iterations"] if max_iterations is None else max_iterations
        self.on_change = on_change

    @classmethod
    def from_client(cls, llm, **kwargs):
        """Wire the three agents to one model client."""
        return cls(GeneratorAgent(llm), TesterAgent(llm), FixerAgent(llm), **kwargs)

    def new_state(self, requirement, language, framework=None, max_iterations=None):
        """Create an idle state. max_iterations is clamped to [0, hard_max_iterations]."""
        limit = self.max_iterations if max_iterations is None else max_iterations
        limit = max(0, min(int(limit), DEFAULTS["hard_max_iterations"]))
        return WorkflowState(
            requirement=requirement,
            language=language,
            framework=framework,
            max_iterations=limit,
        )

    def _set_step(self, state, step):
        state.step = step
        logger.debug("workflow step -> %s (iteration %d)", step.value, state.iteration)
        if self.on_change:
            self.on_change(state)

    def _fail(self, state, error, action):
        logger.error("Workflow failed while trying to %s: %s", action, error, exc_info=error)
        state.error = _user_message(error, action)
        self._set_step(state, WorkflowStep.ERROR)
        return state

    def _guard_idle(self, state):
        if state.is_busy:
            raise ValidationError(f"Workflow is busy ({state.step.value})")

    def reset(self, state):
        state.reset()
        self._set_step(state, WorkflowStep.IDLE)
        return state

    # --- single steps ---

    async def _generate(self, state):
        self._set_step(state, WorkflowStep.GENERATING)
        result = await self.generator.run(state.requirement, state.language, state.framework)
        state.code = result.code
        state.explanation = result.explanation

    async def _test(self, state):
        self._set_step(state, WorkflowStep.TESTING)
        report = await self.tester.run(state.code, state.language, state.requirement)
        state.test_result = normalize_test_result(safe_parse_json(report.tests))
        return state.test_result

    async def _fix(self, state, result):
        self._set_step(state, WorkflowStep.FIXING)
        fix = await self.fixer.run(
            state.code, state.language, errors_for_fix(result), report_as_text(result),
        )
        state.fix_history.append(fix)
        state.code = fix.code
        self._set_step(state, WorkflowStep.FIXED)

    async def _fix_loop(self, state, result):
        """Fix and re-test until the tests pass or the iteration limit is hit."""
        while not result.success:
            self._set_step(state, WorkflowStep.TESTED)
            if state.iteration >= state.max_iterations:
                logger.info(
                    "%d test(s) still failing after %d fix attempt(s)",
                    len(result.failed_tests()), state.iteration,
                )
                return
            state.iteration += 1
            await self._fix(state, result)
            result = await self._test(state)

        self._set_step(state, WorkflowStep.COMPLETE)

    # --- entry points ---

    async def generate(self, state):
        """Start a fresh run and stop once code is generated."""
        self._guard_idle(state)
        state.reset()
        try:
            await self._generate(state)
        except Exception as e:
            return self._fail(state, e, "generate code")
        self._set_step(state, WorkflowStep.GENERATED)
        return state

    async def run_tests(self, state, reset_iterations=True):
        """Test the current code, then fix and re-test while it fails.

        With reset_iterations=False the fix count and history of the previous
        run carry over, so the total stays bounded by max_iterations.
        """
        self._guard_idle(state)
        if not state.code:
            raise ValidationError("No code to test")

        if reset_iterations:
            state.iteration = 0
            state.fix_history = []
        state.error = ""

        try:
            result = await self._test(state)
            await self._fix_loop(state, result)
        except Exception as e:
            return self._fail(state, e, "run tests")
        return state

    async def auto_run(self, state):
        """Generate, test and fix in one go."""
        self._guard_idle(state)
        state.reset()
        try:
            await self._generate(state)
            result = await self._test(state)
            await self._fix_loop(state, result)
        except Exception as e:
            return self._fail(state, e, "complete the workflow")
        return state
