"""Claude API client with rate-limit aware retries."""

import asyncio
import functools
import logging
import math
import os
from dataclasses import dataclass

import anthropic

from config.defaults import DEFAULTS
from core.errors import ExhaustedRetries, MissingCredential, UpstreamFailure

logger = logging.getLogger(__name__)

JSON_INSTRUCTION = "\n\nIMPORTANT: Respond ONLY with valid JSON. No markdown fences, no commentary."


@dataclass(frozen=True)
class ModelSettings:
    api_key: str
    base_url: str = DEFAULTS["base_url"]
    model: str = DEFAULTS["model"]
    proxy_url: str | None = None
    max_tokens: int = DEFAULTS["max_tokens"]
    timeout: float = DEFAULTS["request_timeout"]


def load_settings(environ=None):
    """Build ModelSettings from environment variables. Raises if no API key is set."""
    env = os.environ if environ is None else environ
    api_key = env.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise MissingCredential(
            "ANTHROPIC_API_KEY environment variable is not set. "
            "Get a key at https://console.anthropic.com/ and run:\n"
            "  export ANTHROPIC_API_KEY='your-key-here'"
        )
    return ModelSettings(
        api_key=api_key,
        base_url=env.get("ANTHROPIC_BASE_URL") or DEFAULTS["base_url"],
        model=env.get("CODELOOP_MODEL") or DEFAULTS["model"],
        proxy_url=env.get("HTTPS_PROXY") or env.get("HTTP_PROXY") or None,
    )


@functools.lru_cache(maxsize=1)
def get_settings():
    """Process-wide settings, read from the environment on first use."""
    return load_settings()


def _retry_after(error):
    """Seconds from the Retry-After header of a rate-limit response, if any."""
    response = getattr(error, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        # HTTP-date form is not worth parsing, fall back to exponential backoff
        return None
    # "inf", "nan" and negative values are not usable delays
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def backoff_delay(attempt, base_delay, retry_after=None):
    """Delay before retry number ``attempt`` (0-based)."""
    if retry_after is not None:
        return max(retry_after, base_delay)
    return base_delay * 2 ** attempt


class ModelClient:
    """Async chat-completion client.

    Rate-limit responses are retried with backoff, up to ``max_retries`` times.
    Every other API error is raised immediately as UpstreamFailure.

    Use as an async context manager so the HTTP pool is closed on exit.
    """

    def __init__(self, settings: ModelSettings, max_retries=None, base_delay=None,
                 sleep=asyncio.sleep, sdk_client=None):
        self.settings = settings
        self.max_retries = DEFAULTS["max_retries"] if max_retries is None else max_retries
        self.base_delay = DEFAULTS["base_delay"] if base_delay is None else base_delay
        self._sleep = sleep
        self._client = sdk_client or self._build_sdk_client(settings)

    @staticmethod
    def _build_sdk_client(settings):
        kwargs = {
            "api_key": settings.api_key,
            "base_url": settings.base_url,
            "timeout": settings.timeout,
            # Retries are handled by complete(), not by the SDK
            "max_retries": 0,
        }
        if settings.proxy_url:
            kwargs["http_client"] = anthropic.DefaultAsyncHttpxClient(proxy=settings.proxy_url)
        return anthropic.AsyncAnthropic(**kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self._client.close()

    async def complete(self, **params):
        """Send one Messages API request, retrying on rate limits."""
        attempt = 0
        while True:
            try:
                return await self._client.messages.create(**params)
            except anthropic.RateLimitError as e:
                if attempt >= self.max_retries:
                    raise ExhaustedRetries(
                        f"Rate limited after {attempt + 1} attempts", attempts=attempt + 1
                    ) from e
                delay = backoff_delay(attempt, self.base_delay, _retry_after(e))
                logger.warning(
                    "Rate limited (429), retrying in %.0fs (attempt %d/%d)",
                    delay, attempt + 1, self.max_retries,
                )
                await self._sleep(delay)
                attempt += 1
            except anthropic.APIError as e:
                raise UpstreamFailure(f"Model request failed: {e}") from e

    async def call_llm(self, system_prompt, user_message, temperature=None, response_format=None):
        """Call Claude and return the response text.

        Args:
            system_prompt: System prompt string.
            user_message: User message string.
            temperature: Sampling temperature, provider default if None.
            response_format: If "json", appends an instruction to return only JSON.
                             The text is returned unparsed either way.
        """
        if response_format == "json":
            system_prompt = system_prompt + JSON_INSTRUCTION

        params = {
            "model": self.settings.model,
            "max_tokens": self.settings.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_message}],
        }
        if temperature is not None:
            params["temperature"] = temperature

        message = await self.complete(**params)

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        if message.stop_reason == "max_tokens":
            logger.warning("Model response hit the token limit and may be truncated")
        return text or "{}"
