"""Run state for one planner/implementer orchestration."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agent_tdd.extraction import DEFAULT_LANGUAGE
from agent_tdd.sandbox.base import SandboxResult

MAX_ROUNDS = 5

# Agent label used on events for the sandbox step; it is not a model role.
TESTER_AGENT = "tester"


class Role(str, Enum):
    """The two model-backed seats. Transitions are written per role."""
    PLANNER = "boss"
    IMPLEMENTER = "worker"

    @property
    def display_name(self) -> str:
        return "Boss" if self is Role.PLANNER else "Worker"


class RunState(str, Enum):
    PLANNING = "planning"
    CODING = "coding"
    TESTING = "testing"
    REVIEWING = "reviewing"
    DIAGNOSING = "diagnosing"
    DONE = "done"
    EXHAUSTED = "exhausted"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.DONE, RunState.EXHAUSTED, RunState.ABORTED)


@dataclass(frozen=True)
class Task:
    """A natural-language description of what to build."""
    description: str
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_cost_usd: float = 0.0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens

    def add(self, input_tokens: int, output_tokens: int, cost_usd: float = 0.0) -> None:
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.total_cost_usd += cost_usd


@dataclass
class RunContext:
    """Everything the orchestrator knows about a run in flight."""
    task: Task
    models: dict[Role, str]
    state: RunState = RunState.PLANNING
    round: int = 0  # 0 while planning
    code: str = ""
    tests: str = ""
    language: str = DEFAULT_LANGUAGE
    plan: str = ""
    last_result: SandboxResult | None = None
    last_feedback: str = ""
    error: str = ""
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    start_time: float = field(default_factory=time.time)

    def model_for(self, role: Role) -> str:
        return self.models[role]

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of this run for logging."""
        return {
            "task_id": self.task.task_id,
            "state": self.state.value,
            "rounds": self.round,
            "language": self.language,
            "token_usage": {
                "input": self.token_usage.input_tokens,
                "output": self.token_usage.output_tokens,
                "total": self.token_usage.total,
                "cost_usd": self.token_usage.total_cost_usd,
            },
            "elapsed_seconds": self.elapsed_seconds,
        }


@dataclass
class RunResult:
    """Final outcome of a run, mirrored by its terminal events."""
    task_id: str
    status: RunState
    final_code: str = ""
    final_tests: str = ""
    plan: str = ""
    language: str = DEFAULT_LANGUAGE
    rounds: int = 0
    error: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    wall_clock_seconds: float = 0.0

    @property
    def approved(self) -> bool:
        return self.status == RunState.DONE
