"""Generator agent: produces source code from a requirement."""

from agents.base import BaseAgent, require_language, require_text
from core.state import GenerateResult

NO_CODE = "// No code generated"
NO_EXPLANATION = "No explanation provided"


class GeneratorAgent(BaseAgent):
    """Turns a natural-language requirement into code in the target language."""

    name = "generator"
    description = "Generates API code from a requirement"

    async def run(self, requirement, language, framework=None) -> GenerateResult:
        require_text(requirement, "Requirement")
        require_language(language)

        parts = [
            "Generate API code for the following requirement:",
            "",
            f"Requirement: {requirement}",
            f"Language: {language}",
        ]
        if framework:
            parts.append(f"Framework: {framework}")
        parts.extend(["", "Please generate production-ready code."])

        parsed = await self._call_json("\n".join(parts))

        return GenerateResult(
            code=self._text_field(parsed, "code", NO_CODE),
            explanation=self._text_field(parsed, "explanation", NO_EXPLANATION),
        )
