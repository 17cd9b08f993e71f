"""Async Claude client used by the draft generator and classifier."""

from __future__ import annotations

import asyncio
import json
import logging
import os

from mail_triage.config import DEFAULT_LLM_MODEL, TriageSettings
from mail_triage.exceptions import LLMError

logger = logging.getLogger(__name__)


class AsyncLLMClient:
    """Single-turn completions over the Anthropic SDK.

    Rate limits and timeouts are retried with exponential backoff; any
    other API error surfaces as ``LLMError`` straight away.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_LLM_MODEL,
        max_retries: int = 3,
        backoff_base: float = 1.0,
    ):
        if not (api_key or os.environ.get("ANTHROPIC_API_KEY")):
            raise LLMError(
                "Anthropic API key is required. "
                "Pass api_key or set ANTHROPIC_API_KEY."
            )
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError(
                "anthropic is required for LLM drafts and classification. "
                "Install with: pip install mail-triage[llm]"
            )
        self._client = AsyncAnthropic(api_key=api_key or None)
        self.model = model
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    @classmethod
    def from_settings(cls, settings: TriageSettings, api_key: str | None = None) -> AsyncLLMClient:
        return cls(api_key=api_key, model=settings.llm_model)

    async def generate(
        self,
        system_prompt: str,
        user_content: str,
        max_tokens: int = 1024,
    ) -> dict:
        """One user turn in, one reply out.

        Returns:
            dict with keys: text, input_tokens, output_tokens, model
        """
        from anthropic import APIError, APITimeoutError, RateLimitError

        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self._client.messages.create(
                    model=self.model,
                    max_tokens=max_tokens,
                    temperature=0.3,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_content}],
                )
            except (RateLimitError, APITimeoutError) as e:
                last_error = e
                delay = self.backoff_base * 2 ** (attempt - 1)
                logger.warning(
                    f"{type(e).__name__} from Claude, attempt {attempt}/{self.max_retries}; "
                    f"retrying in {delay:.0f}s"
                )
                await asyncio.sleep(delay)
                continue
            except APIError as e:
                raise LLMError(f"Claude API error: {e}") from e

            text = "".join(
                block.text for block in response.content if getattr(block, "type", "text") == "text"
            )
            return {
                "text": text,
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
                "model": self.model,
            }

        raise LLMError(f"Claude unavailable after {self.max_retries} attempts: {last_error}")

    async def generate_json(self, system_prompt: str, user_content: str, **kwargs) -> dict:
        """Like ``generate`` but the reply must be a JSON object."""
        result = await self.generate(system_prompt, user_content, **kwargs)
        return parse_json_reply(result["text"])


def parse_json_reply(text: str) -> dict:
    """Parse a JSON object from model output, tolerating a fenced code block."""
    output = text.strip()
    if output.startswith("```"):
        output = output.split("\n", 1)[1] if "\n" in output else ""
        output = output.rstrip().removesuffix("```")
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise LLMError(f"Model reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMError("Model reply is not a JSON object")
    return data
