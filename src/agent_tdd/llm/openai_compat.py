"""OpenAI-compatible chat-completions backend (gateways, vLLM, ollama)."""

from __future__ import annotations

import re
from typing import Any

from openai import AsyncOpenAI

from .base import LLMClient, LLMResponse


class OpenAICompatClient(LLMClient):
    """Chat-completions client authenticated with a bearer key."""

    def __init__(
        self,
        base_url: str = "http://localhost:18789/v1",
        api_key: str = "dummy",
        timeout: float = 120.0,
    ):
        self.base_url = base_url
        # Retries stay off: a failed turn aborts the run instead.
        self.client = AsyncOpenAI(
            base_url=base_url, api_key=api_key, timeout=timeout, max_retries=0,
        )

    async def generate(
        self,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int = 16000,
        temperature: float = 0.0,
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
            "stream": False,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        response = await self.client.chat.completions.create(**kwargs)
        if not response.choices:
            raise ValueError(f"Response from {model} has no choices")

        choice = response.choices[0]
        text = _strip_thinking(choice.message.content or "")

        stop_reason = "end_turn"
        if choice.finish_reason == "length":
            stop_reason = "max_tokens"

        usage = response.usage
        return LLMResponse(
            text=text,
            stop_reason=stop_reason,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=model,
            raw_response=response,
        )


def _strip_thinking(text: str) -> str:
    """Remove <think>...</think> blocks some local models leave in content."""
    return re.sub(r"<think>.*?</think>\s*", "", text, flags=re.DOTALL).strip()
