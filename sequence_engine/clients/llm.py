"""Language-model capability used by the drafting and rewrite stages."""

import json
from typing import Any, Optional

import anthropic
import structlog

log = structlog.get_logger()

MODEL = "claude-opus-4-5-20251101"


class ModelCallError(RuntimeError):
    """A model call failed, timed out, or returned no content."""


class LanguageModel:
    """Text-completion capability.

    Subclasses implement complete(); draft() and rewrite() are the two shapes
    the pipeline uses.
    """

    async def complete(self, system: str, user: str, temperature: Optional[float] = None) -> str:
        raise NotImplementedError

    async def draft(self, system: str, prompt: str) -> str:
        return await self.complete(system, prompt)

    async def rewrite(self, instructions: str, text: str) -> str:
        return await self.complete(instructions, text, temperature=0)


class AnthropicModel(LanguageModel):
    """LanguageModel backed by the Anthropic Messages API."""

    def __init__(
        self,
        model: str = MODEL,
        rewrite_model: Optional[str] = None,
        max_tokens: int = 4000,
        timeout: float = 120.0,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.model = model
        self.rewrite_model = rewrite_model or model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(timeout=self.timeout)
        return self._client

    async def complete(self, system: str, user: str, temperature: Optional[float] = None) -> str:
        return await self._create(self.model, system, user, temperature)

    async def rewrite(self, instructions: str, text: str) -> str:
        return await self._create(self.rewrite_model, instructions, text, 0)

    async def _create(self, model: str, system: str, user: str, temperature: Optional[float]) -> str:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": self.max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": user}],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIError as e:
            log.error("model_call_failed", model=model, error=str(e))
            raise ModelCallError(f"{model} request failed: {e}") from e

        text = response.content[0].text.strip() if response.content else ""
        if not text:
            raise ModelCallError(f"No content returned by {model}")

        log.debug("model_call_complete", model=model, chars=len(text))
        return text


def parse_json_response(text: str) -> dict:
    """Parse JSON from model output, tolerating markdown code fences."""
    response_text = text.strip()
    if response_text.startswith("```"):
        response_text = response_text.split("```")[1]
        if response_text.startswith("json"):
            response_text = response_text[4:]
        response_text = response_text.strip()
    return json.loads(response_text)
