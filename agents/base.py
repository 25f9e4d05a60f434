"""Base class for the prompted operations (generate, test, fix)."""

import os

from config.defaults import DEFAULTS
from config.languages import LANGUAGES, is_supported
from core.errors import ValidationError
from utils.json_output import safe_parse_json

_PROMPT_DIR = os.path.join(os.path.dirname(__file__), "prompts")


def _load_prompt(name):
    with open(os.path.join(_PROMPT_DIR, f"{name}.txt")) as f:
        return f.read()


def require_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")


def require_language(language):
    if not language:
        raise ValidationError("Language is required")
    if not is_supported(language):
        raise ValidationError(
            f"Invalid language. Supported: {', '.join(LANGUAGES)}"
        )


def require_errors(errors):
    if not isinstance(errors, list) or not errors:
        raise ValidationError("Errors list is required")
    if not all(isinstance(e, str) for e in errors):
        raise ValidationError("Errors must be strings")


class BaseAgent:
    """Holds the model client and the system prompt for one operation.

    Subclasses set ``name`` (which also selects prompts/<name>.txt) and
    implement ``run``.
    """

    name = "base"
    description = "Base agent"

    def __init__(self, llm):
        self.llm = llm
        self.system_prompt = _load_prompt(self.name)
        self.temperature = DEFAULTS["temperatures"].get(self.name)

    async def _call_llm(self, user_message):
        """Send the user message with this agent's system prompt, expecting JSON."""
        return await self.llm.call_llm(
            self.system_prompt, user_message,
            temperature=self.temperature, response_format="json",
        )

    async def _call_json(self, user_message):
        """Call the model and parse its answer. Malformed output gives {}."""
        return safe_parse_json(await self._call_llm(user_message))

    # --- field readers with defaults ---

    @staticmethod
    def _text_field(parsed, key, default):
        value = parsed.get(key)
        return value if isinstance(value, str) and value else default
