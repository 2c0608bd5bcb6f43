"""
Thin wrapper over the Anthropic Messages API.

Callers pass OpenAI-style message dicts ({"role", "content"}); a "system"
message is lifted into the `system` parameter. `chat_json` strips Markdown
code fences before parsing. Every provider failure surfaces as LLMError so
services can decide between a fallback and a 502.

`get_llm` is the FastAPI dependency; tests override it with a fake.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import anthropic

from app.core.config import settings
from app.core.errors import LLMError, LLMNotConfiguredError

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1024
DEFAULT_TEMPERATURE = 0.7

_FENCE_RE = re.compile(r"```(?:json)?\s*|```")


@dataclass
class LLMResponse:
    content: str
    input_tokens: int = 0
    output_tokens: int = 0


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


class AnthropicLLM:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self.model = model or settings.LLM_MODEL
        self._client: Optional[anthropic.Anthropic] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> anthropic.Anthropic:
        if not self.api_key:
            raise LLMNotConfiguredError("ANTHROPIC_API_KEY is not set")
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> LLMResponse:
        client = self._get_client()
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns = [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m["role"] in ("user", "assistant")
        ]
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": turns,
        }
        if system:
            kwargs["system"] = system

        try:
            response = client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            logger.error("Anthropic request failed: %s", exc)
            raise LLMError(str(exc)) from exc

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=text,
            input_tokens=getattr(usage, "input_tokens", 0) if usage else 0,
            output_tokens=getattr(usage, "output_tokens", 0) if usage else 0,
        )

    def chat_json(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> Any:
        response = self.chat(messages, max_tokens=max_tokens, temperature=temperature)
        cleaned = strip_code_fences(response.content)
        try:
            return json.loads(cleaned)
        except ValueError as exc:
            logger.error("LLM returned non-JSON content: %.200s", response.content)
            raise LLMError(f"Invalid JSON response from LLM: {exc}") from exc


_llm: Optional[AnthropicLLM] = None


def get_llm() -> AnthropicLLM:
    global _llm
    if _llm is None:
        _llm = AnthropicLLM()
    return _llm
