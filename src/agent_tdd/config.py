"""Configuration data models for the TDD orchestrator."""

from __future__ import annotations

import os
import sys
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

GATEWAY_URL_ENV = "AGENT_TDD_GATEWAY_URL"
GATEWAY_TOKEN_ENV = "AGENT_TDD_GATEWAY_TOKEN"

DEFAULT_PLANNER_MODEL = "anthropic/claude-opus-4-6"
DEFAULT_IMPLEMENTER_MODEL = "openai-codex/gpt-5.3-codex"


class Provider(str, Enum):
    OPENAI = "openai"        # any chat-completions gateway
    ANTHROPIC = "anthropic"


class LLMConfig(BaseModel):
    provider: Provider = Provider.OPENAI
    base_url: str = ""
    api_key: str = ""
    max_tokens: int = 16000
    temperature: float = 0.0
    timeout_seconds: float = 120.0

    def resolved_base_url(self) -> str:
        return self.base_url or os.environ.get(GATEWAY_URL_ENV, "http://localhost:18789/v1")

    def resolved_api_key(self) -> str:
        return self.api_key or os.environ.get(GATEWAY_TOKEN_ENV, "dummy")


class SandboxConfig(BaseModel):
    """Limits and interpreters for the code-execution sandbox."""
    timeout_seconds: float = 30.0
    max_output_bytes: int = 1024 * 1024
    python_executable: str = Field(default_factory=lambda: sys.executable or "python3")
    node_executable: str = "node"
    bash_executable: str = "bash"
    work_root: str | None = None  # None -> system temp dir


class OrchestratorConfig(BaseModel):
    """Configuration for the planner/implementer loop."""
    llm: LLMConfig = Field(default_factory=LLMConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    planner_model: str = DEFAULT_PLANNER_MODEL
    implementer_model: str = DEFAULT_IMPLEMENTER_MODEL
    log_dir: str | None = None


def load_config(path: str | Path) -> OrchestratorConfig:
    """Load orchestrator config from YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return OrchestratorConfig(**data)
