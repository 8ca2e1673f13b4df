"""Progress events and the single-consumer channel that carries them."""

from __future__ import annotations

import asyncio
from typing import Annotated, Any, AsyncIterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from agent_tdd.sandbox.base import SandboxResult


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict in the stream's camelCase wire form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AgentStartEvent(_Event):
    type: Literal["agent_start"] = "agent_start"
    agent: str
    role: str
    action: str


class AgentThinkingEvent(_Event):
    type: Literal["agent_thinking"] = "agent_thinking"
    agent: str
    content: str


class AgentMessageEvent(_Event):
    type: Literal["agent_message"] = "agent_message"
    agent: str
    role: str
    action: str
    content: str


class RoundEvent(_Event):
    type: Literal["round"] = "round"
    round: int


class CodeUpdateEvent(_Event):
    type: Literal["code_update"] = "code_update"
    agent: str
    code: str | None = None
    tests: str | None = None


class SandboxCounts(BaseModel):
    passed: int
    failed: int
    total: int
    output: str

    @classmethod
    def from_result(cls, result: SandboxResult) -> SandboxCounts:
        return cls(passed=result.passed, failed=result.failed,
                   total=result.total, output=result.output)


class SandboxRunEvent(_Event):
    type: Literal["test_run"] = "test_run"
    test_results: SandboxCounts = Field(alias="testResults")


class CompleteEvent(_Event):
    type: Literal["complete"] = "complete"
    final_code: str = Field(alias="finalCode")
    tests: str | None = None
    plan: str | None = None


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    content: str


AgentEvent = Annotated[
    Union[
        AgentStartEvent,
        AgentThinkingEvent,
        AgentMessageEvent,
        RoundEvent,
        CodeUpdateEvent,
        SandboxRunEvent,
        CompleteEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]


class PublisherClosedError(RuntimeError):
    """Raised when emitting after the stream has been closed."""


class EventPublisher:
    """Ordered event stream with exactly one writer and one consumer.

    ``emit`` returns only once the consumer has finished with the event
    and asked for the next one, so the writer never runs ahead of delivery.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[AgentEvent | None] = asyncio.Queue()
        self._closed = False
        self._consumer_attached = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: AgentEvent) -> None:
        if self._closed:
            raise PublisherClosedError(f"cannot emit {event.type!r}: stream is closed")
        await self._queue.put(event)
        await self._queue.join()

    def try_emit(self, event: AgentEvent) -> bool:
        """Enqueue without waiting for delivery. Used while being cancelled."""
        if self._closed:
            return False
        self._queue.put_nowait(event)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def events(self) -> AsyncIterator[AgentEvent]:
        if self._consumer_attached:
            raise RuntimeError("event stream already has a consumer")
        self._consumer_attached = True
        while True:
            event = await self._queue.get()
            try:
                if event is None:
                    return
                yield event
            finally:
                self._queue.task_done()

    def __aiter__(self) -> AsyncIterator[AgentEvent]:
        return self.events()
