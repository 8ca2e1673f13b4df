"""Structured JSON-lines run logger."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

from agent_tdd.context import Role
from agent_tdd.sandbox.base import SandboxResult


class RunLogger:
    """Appends orchestration events as structured JSON lines."""

    def __init__(self, logger_id: str, output_dir: str = "runs"):
        self.logger_id = logger_id
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.log_path = self.output_dir / f"{logger_id}.jsonl"

    def _write_event(self, event: dict[str, Any]) -> None:
        event["logger_id"] = self.logger_id
        event["timestamp"] = time.time()
        with open(self.log_path, "a") as f:
            f.write(json.dumps(event, default=str) + "\n")

    def log_run_start(self, task_id: str, task: str, models: dict[Role, str]) -> None:
        self._write_event({
            "event": "run_start",
            "task_id": task_id,
            "task": task,
            "models": {role.value: model for role, model in models.items()},
        })

    def log_model_call(
        self,
        task_id: str,
        round_number: int,
        role: Role,
        model: str,
        duration_seconds: float,
        input_tokens: int = 0,
        output_tokens: int = 0,
        error: str = "",
        blocks: list[str] | None = None,
    ) -> None:
        self._write_event({
            "event": "model_call",
            "task_id": task_id,
            "round": round_number,
            "role": role.value,
            "model": model,
            "duration_seconds": round(duration_seconds, 3),
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "failed": bool(error),
            "error": error[:1000],
            "blocks": blocks or [],
        })

    def log_sandbox_run(
        self,
        task_id: str,
        round_number: int,
        language: str,
        result: SandboxResult,
        duration_seconds: float,
    ) -> None:
        self._write_event({
            "event": "sandbox_run",
            "task_id": task_id,
            "round": round_number,
            "language": language,
            "passed": result.passed,
            "failed": result.failed,
            "exit_code": result.exit_code,
            "timed_out": result.timed_out,
            "truncated": result.truncated,
            "duration_seconds": round(duration_seconds, 3),
        })

    def log_run_end(self, task_id: str, result: dict[str, Any]) -> None:
        self._write_event({
            "event": "run_end",
            "task_id": task_id,
            "result": result,
        })
