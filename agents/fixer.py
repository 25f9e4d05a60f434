"""Fixer agent: repairs code from a list of errors and the last test report."""

from agents.base import BaseAgent, require_errors, require_language, require_text
from config.languages import fence_tag
from core.state import FixResult

NO_CHANGES = "No changes made"
NO_EXPLANATION = "No explanation"


class FixerAgent(BaseAgent):
    """Asks the model for a corrected version of the code."""

    name = "fixer"
    description = "Fixes code based on test failures"

    async def run(self, code, language, errors, test_results_text="{}") -> FixResult:
        require_text(code, "Code")
        require_language(language)
        require_errors(errors)

        error_lines = "\n".join(f"- {e}" for e in errors)
        user_message = (
            f"Fix the following {language} code based on test failures:\n"
            f"\n"
            f"Current code:\n"
            f"```{fence_tag(language)}\n{code}\n```\n"
            f"\n"
            f"Errors found:\n"
            f"{error_lines}\n"
            f"\n"
            f"Test results:\n"
            f"{test_results_text}\n"
            f"\n"
            f"Please fix all issues and return the corrected code."
        )

        parsed = await self._call_json(user_message)

        changes = parsed.get("changes")
        if not isinstance(changes, list):
            changes = []
        changes = [c for c in changes if isinstance(c, str)]
        if not changes:
            changes = [NO_CHANGES]

        return FixResult(
            # Never hand back empty code when the answer is unusable
            code=self._text_field(parsed, "code", code),
            changes=changes,
            explanation=self._text_field(parsed, "explanation", NO_EXPLANATION),
        )
