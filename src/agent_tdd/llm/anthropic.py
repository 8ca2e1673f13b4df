"""Anthropic Claude backend."""

from __future__ import annotations

from typing import Any

import anthropic

from .base import LLMClient, LLMResponse


class AnthropicClient(LLMClient):
    """Messages API client.

    System turns are folded into the ``system`` parameter, since the
    Messages API does not accept them inline. Gateway-style ids such as
    ``anthropic/claude-opus-4-6`` are reduced to the bare model name.
    """

    def __init__(self, api_key: str | None = None, timeout: float = 120.0):
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout, max_retries=0,
        )

    async def generate(
        self,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int = 16000,
        temperature: float = 0.0,
    ) -> LLMResponse:
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        turns = [
            {"role": m["role"], "content": m["content"]}
            for m in messages if m["role"] != "system"
        ]

        kwargs: dict[str, Any] = {
            "model": model.rsplit("/", 1)[-1],
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": turns,
        }
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)

        response = await self.client.messages.create(**kwargs)

        text = "\n".join(
            block.text for block in response.content if block.type == "text"
        )
        return LLMResponse(
            text=text,
            stop_reason=response.stop_reason or "end_turn",
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            raw_response=response,
        )
