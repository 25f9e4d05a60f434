"""Tester agent: asks the model to simulate a test run. Zero real execution.

The report comes back as raw text. Turning it into a TestResult, and deciding
whether it passed, happens in core.quality.
"""

from agents.base import BaseAgent, require_language, require_text
from config.languages import fence_tag
from core.state import RawTestReport

EXPLANATION = "Tests generated and executed"


class TesterAgent(BaseAgent):
    """Requests a simulated test report for a piece of code."""

    __test__ = False  # not a pytest class
    name = "tester"
    description = "Simulates a test run (model output, not real execution)"

    async def run(self, code, language, requirement="") -> RawTestReport:
        require_text(code, "Code")
        require_language(language)

        user_message = (
            f"Analyze and test the following {language} API code:\n"
            f"\n"
            f"Original requirement: {requirement or ''}\n"
            f"\n"
            f"Code:\n"
            f"```{fence_tag(language)}\n{code}\n```\n"
            f"\n"
            f"Simulate comprehensive testing and return results."
        )

        text = await self._call_llm(user_message)
        return RawTestReport(tests=text, explanation=EXPLANATION)
