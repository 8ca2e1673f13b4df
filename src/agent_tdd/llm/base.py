"""Abstract base class for LLM backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

# Pricing per million tokens (USD)
PRICING = {
    "claude-opus-4-6": {"input": 5.0, "output": 25.0},
    "claude-sonnet-4-6": {"input": 3.0, "output": 15.0},
}


@dataclass
class LLMResponse:
    """Response from a single non-streaming completion."""
    text: str
    stop_reason: str  # "end_turn", "max_tokens"
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    raw_response: Any = None

    @property
    def cost_usd(self) -> float:
        # Gateway ids look like "anthropic/claude-opus-4-6"
        pricing = PRICING.get(self.model.rsplit("/", 1)[-1])
        if not pricing:
            return 0.0  # No pricing info for this model (local/free)
        return (
            self.input_tokens * pricing["input"] / 1_000_000
            + self.output_tokens * pricing["output"] / 1_000_000
        )


class LLMClient(ABC):
    """Abstract base for LLM API backends."""

    @abstractmethod
    async def generate(
        self,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: int = 16000,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Generate one complete response. Transport errors are raised."""
        ...
