"""Tests for configuration loading and data models."""

import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from agent_tdd.config import (
    DEFAULT_IMPLEMENTER_MODEL,
    DEFAULT_PLANNER_MODEL,
    GATEWAY_TOKEN_ENV,
    GATEWAY_URL_ENV,
    LLMConfig,
    OrchestratorConfig,
    Provider,
    load_config,
)


def test_orchestrator_config_defaults():
    config = OrchestratorConfig()
    assert config.llm.provider == Provider.OPENAI
    assert config.llm.timeout_seconds == 120
    assert config.llm.max_tokens == 16000
    assert config.sandbox.timeout_seconds == 30
    assert config.sandbox.max_output_bytes == 1024 * 1024
    assert config.planner_model == DEFAULT_PLANNER_MODEL
    assert config.implementer_model == DEFAULT_IMPLEMENTER_MODEL
    assert config.log_dir is None


def test_load_config_from_yaml():
    data = {
        "planner_model": "anthropic/claude-sonnet-4-6",
        "llm": {"provider": "anthropic", "max_tokens": 4096},
        "sandbox": {"timeout_seconds": 5, "node_executable": "/opt/node/bin/node"},
    }
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(data, f)
        tmp_path = f.name

    config = load_config(tmp_path)
    assert config.planner_model == "anthropic/claude-sonnet-4-6"
    assert config.implementer_model == DEFAULT_IMPLEMENTER_MODEL
    assert config.llm.provider == Provider.ANTHROPIC
    assert config.llm.max_tokens == 4096
    assert config.sandbox.timeout_seconds == 5
    assert config.sandbox.node_executable == "/opt/node/bin/node"

    Path(tmp_path).unlink()


def test_load_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == OrchestratorConfig()


def test_invalid_provider_rejected():
    with pytest.raises(ValidationError):
        LLMConfig(provider="carrier-pigeon")


def test_gateway_settings_from_environment(monkeypatch):
    monkeypatch.setenv(GATEWAY_URL_ENV, "http://gateway.local:18789/v1")
    monkeypatch.setenv(GATEWAY_TOKEN_ENV, "secret")
    config = LLMConfig()
    assert config.resolved_base_url() == "http://gateway.local:18789/v1"
    assert config.resolved_api_key() == "secret"

    explicit = LLMConfig(base_url="http://other/v1", api_key="k")
    assert explicit.resolved_base_url() == "http://other/v1"
    assert explicit.resolved_api_key() == "k"
