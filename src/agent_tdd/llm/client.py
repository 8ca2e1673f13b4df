"""Model invocation with typed failures."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import anthropic
import openai

from agent_tdd.config import LLMConfig, Provider

from .base import LLMClient, LLMResponse

# Expected failure modes of a single completion. Anything else is a bug
# and propagates.
_EXPECTED_ERRORS: tuple[type[BaseException], ...] = (
    openai.APIError,
    anthropic.APIError,
    ValueError,
)


@dataclass(frozen=True)
class ModelInvocationFailed:
    """A completion that timed out or came back unusable."""
    model: str
    reason: str

    def __str__(self) -> str:
        return f"Model call to {self.model} failed: {self.reason}"


class ModelClient:
    """Issues one non-streaming completion per call.

    ``invoke`` never raises for transport problems; it returns a
    :class:`ModelInvocationFailed` instead. Cancellation still propagates.
    """

    def __init__(self, backend: LLMClient, max_tokens: int = 16000,
                 temperature: float = 0.0, timeout: float = 120.0):
        self.backend = backend
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

    async def invoke(
        self,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
    ) -> LLMResponse | ModelInvocationFailed:
        try:
            response = await asyncio.wait_for(
                self.backend.generate(
                    model=model,
                    messages=messages,
                    max_tokens=max_tokens or self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return ModelInvocationFailed(model, f"timed out after {self.timeout:g}s")
        except _EXPECTED_ERRORS as e:
            return ModelInvocationFailed(model, f"{type(e).__name__}: {e}")
        return response


def create_llm_backend(llm_config: LLMConfig) -> LLMClient:
    """Create LLM backend based on provider config."""
    if llm_config.provider == Provider.ANTHROPIC:
        from agent_tdd.llm.anthropic import AnthropicClient
        return AnthropicClient(
            api_key=llm_config.api_key or None,
            timeout=llm_config.timeout_seconds,
        )

    if llm_config.provider == Provider.OPENAI:
        from agent_tdd.llm.openai_compat import OpenAICompatClient
        return OpenAICompatClient(
            base_url=llm_config.resolved_base_url(),
            api_key=llm_config.resolved_api_key(),
            timeout=llm_config.timeout_seconds,
        )

    raise ValueError(f"Unknown LLM provider: {llm_config.provider}")


def create_model_client(llm_config: LLMConfig) -> ModelClient:
    return ModelClient(
        create_llm_backend(llm_config),
        max_tokens=llm_config.max_tokens,
        temperature=llm_config.temperature,
        timeout=llm_config.timeout_seconds,
    )
