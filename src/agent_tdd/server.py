"""HTTP entry point: start a run and stream its events as SSE."""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator

from fastapi import FastAPI
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from agent_tdd.config import OrchestratorConfig
from agent_tdd.context import Role, Task
from agent_tdd.events import ErrorEvent, EventPublisher
from agent_tdd.logging.logger import RunLogger
from agent_tdd.orchestrator import Orchestrator

DONE_SENTINEL = "data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class ModelSelection(BaseModel):
    boss: str | None = None
    worker: str | None = None


class RunRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task: str = ""
    mode: str = "tdd"
    planner_model: str | None = Field(default=None, alias="plannerModel")
    implementer_model: str | None = Field(default=None, alias="implementerModel")
    models: ModelSelection | None = None

    def resolve_models(self, config: OrchestratorConfig) -> dict[Role, str]:
        selection = self.models or ModelSelection()
        return {
            Role.PLANNER: self.planner_model or selection.boss or config.planner_model,
            Role.IMPLEMENTER: self.implementer_model or selection.worker or config.implementer_model,
        }


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def stream_run(
    orchestrator: Orchestrator,
    task: Task,
    models: dict[Role, str],
) -> AsyncIterator[str]:
    """Run the orchestrator and yield its events as SSE frames.

    If the client goes away the generator is cancelled or closed, which
    cancels the run in turn.
    """
    publisher = EventPublisher()
    run = asyncio.create_task(orchestrator.run(task, models, publisher))
    try:
        async for event in publisher:
            yield _sse(event.to_wire())
        await run
    except Exception as e:
        yield _sse(ErrorEvent(content=str(e) or "Unknown error").to_wire())
    finally:
        if not run.done():
            run.cancel()
    yield DONE_SENTINEL


async def _unknown_mode(mode: str) -> AsyncIterator[str]:
    yield _sse(ErrorEvent(content=f"Unknown mode: {mode}").to_wire())
    yield DONE_SENTINEL


def create_app(
    config: OrchestratorConfig | None = None,
    orchestrator: Orchestrator | None = None,
) -> FastAPI:
    config = config or OrchestratorConfig()
    if orchestrator is None:
        logger = RunLogger("server", config.log_dir) if config.log_dir else None
        orchestrator = Orchestrator.from_config(config, logger=logger)

    app = FastAPI(title="agent-tdd")
    app.state.config = config
    app.state.orchestrator = orchestrator

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/multi-agent")
    async def multi_agent(req: RunRequest):
        if not req.task.strip():
            return JSONResponse({"error": "No task provided"}, status_code=400)

        if req.mode != "tdd":
            stream = _unknown_mode(req.mode)
        else:
            stream = stream_run(
                app.state.orchestrator,
                Task(description=req.task),
                req.resolve_models(app.state.config),
            )
        return StreamingResponse(stream, media_type="text/event-stream", headers=SSE_HEADERS)

    return app
