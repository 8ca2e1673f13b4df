"""Planner/implementer TDD loop."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from agent_tdd import prompts
from agent_tdd.config import OrchestratorConfig
from agent_tdd.context import (
    MAX_ROUNDS,
    TESTER_AGENT,
    Role,
    RunContext,
    RunResult,
    RunState,
    Task,
)
from agent_tdd.events import (
    AgentEvent,
    AgentMessageEvent,
    AgentStartEvent,
    AgentThinkingEvent,
    CodeUpdateEvent,
    CompleteEvent,
    ErrorEvent,
    EventPublisher,
    RoundEvent,
    SandboxCounts,
    SandboxRunEvent,
)
from agent_tdd.extraction import extract_all_blocks, extract_block, extract_language
from agent_tdd.llm.client import ModelClient, ModelInvocationFailed, create_model_client
from agent_tdd.logging.logger import RunLogger
from agent_tdd.sandbox import Sandbox, SandboxResult, create_sandbox

NO_TESTS_ERROR = "Boss failed to generate tests. Aborting."
CANCELLED_ERROR = "Run cancelled"


def is_approval(review: str) -> bool:
    return any(marker in review for marker in prompts.APPROVAL_MARKERS)


class Orchestrator:
    """Drives one run through planning, bounded coding rounds and a verdict.

    A run is strictly sequential: one model or sandbox call in flight at a
    time, and every event is delivered before the next step starts. The
    instance itself keeps no per-run state, so concurrent runs can share it.
    """

    def __init__(
        self,
        model_client: ModelClient,
        sandbox: Sandbox,
        logger: RunLogger | None = None,
        max_output_tokens: int | None = None,
    ):
        self.model_client = model_client
        self.sandbox = sandbox
        self.logger = logger
        self.max_output_tokens = max_output_tokens

        self._handlers: dict[RunState, Callable[[RunContext, EventPublisher], Awaitable[RunState]]] = {
            RunState.PLANNING: self._plan,
            RunState.CODING: self._code,
            RunState.TESTING: self._test,
            RunState.REVIEWING: self._review,
            RunState.DIAGNOSING: self._diagnose,
        }

    @classmethod
    def from_config(cls, config: OrchestratorConfig, logger: RunLogger | None = None) -> Orchestrator:
        return cls(
            model_client=create_model_client(config.llm),
            sandbox=create_sandbox(config.sandbox),
            logger=logger,
            max_output_tokens=config.llm.max_tokens,
        )

    async def run(
        self,
        task: Task,
        models: dict[Role, str],
        publisher: EventPublisher,
    ) -> RunResult:
        """Run the loop to a terminal state. The publisher is closed on return."""
        ctx = RunContext(task=task, models=dict(models))

        if self.logger:
            self.logger.log_run_start(task.task_id, task.description, ctx.models)

        try:
            while not ctx.state.is_terminal:
                ctx.state = await self._handlers[ctx.state](ctx, publisher)
        except asyncio.CancelledError:
            # A terminal state means its closing events are already out.
            if not ctx.state.is_terminal:
                ctx.state = RunState.ABORTED
                ctx.error = CANCELLED_ERROR
                # The consumer may be gone; do not wait for delivery.
                publisher.try_emit(ErrorEvent(content=CANCELLED_ERROR))
            raise
        finally:
            publisher.close()
            if self.logger:
                self.logger.log_run_end(task.task_id, {
                    **ctx.get_summary(),
                    "error": ctx.error,
                })

        return self._build_result(ctx)

    # -- states -----------------------------------------------------------

    async def _plan(self, ctx: RunContext, publisher: EventPublisher) -> RunState:
        await self._start(publisher, Role.PLANNER, "planning",
                          "Breaking down the task and designing the architecture...")

        reply = await self._ask(ctx, publisher, Role.PLANNER, "plan", [
            {"role": "system", "content": prompts.PLANNER_SYSTEM},
            {"role": "user", "content": prompts.PLAN_PROMPT.format(task=ctx.task.description)},
        ])
        if reply is None:
            return RunState.ABORTED

        ctx.plan = reply
        ctx.language = extract_language(reply)
        ctx.tests = extract_block(reply)
        if not ctx.tests:
            ctx.error = NO_TESTS_ERROR
            return await self._finish(ctx, publisher, RunState.ABORTED,
                                      ErrorEvent(content=NO_TESTS_ERROR),
                                      CompleteEvent(final_code=""))

        await publisher.emit(CodeUpdateEvent(agent=Role.PLANNER.value, tests=ctx.tests))
        ctx.round = 1
        return RunState.CODING

    async def _code(self, ctx: RunContext, publisher: EventPublisher) -> RunState:
        await publisher.emit(RoundEvent(round=ctx.round))

        first = ctx.round == 1
        await self._start(publisher, Role.IMPLEMENTER, "coding" if first else "fixing",
                          "Implementing the solution..." if first else "Fixing the issues...")

        if first:
            user = prompts.FIRST_ATTEMPT_PROMPT.format(
                task=ctx.task.description, language=ctx.language, tests=ctx.tests,
            )
        else:
            user = prompts.FIX_PROMPT.format(
                task=ctx.task.description,
                language=ctx.language,
                code=ctx.code,
                tests=ctx.tests,
                output=ctx.last_result.output if ctx.last_result else "",
                feedback=ctx.last_feedback,
            )

        reply = await self._ask(ctx, publisher, Role.IMPLEMENTER, "code", [
            {"role": "system", "content": prompts.IMPLEMENTER_SYSTEM.format(language=ctx.language)},
            {"role": "user", "content": user},
        ])
        if reply is None:
            return RunState.ABORTED

        # No block means the previous attempt stays current
        code = extract_block(reply, ctx.language)
        if code:
            ctx.code = code
            await publisher.emit(CodeUpdateEvent(agent=Role.IMPLEMENTER.value, code=code))
        return RunState.TESTING

    async def _test(self, ctx: RunContext, publisher: EventPublisher) -> RunState:
        await publisher.emit(AgentStartEvent(agent=TESTER_AGENT, role="Tests", action="running"))

        start = time.time()
        try:
            result = await self.sandbox.run(ctx.code, ctx.tests, ctx.language)
        except Exception as e:
            # A broken sandbox looks like broken code to the planner.
            result = SandboxResult.infrastructure_error(f"{type(e).__name__}: {e}")

        if self.logger:
            self.logger.log_sandbox_run(ctx.task.task_id, ctx.round, ctx.language,
                                        result, time.time() - start)

        ctx.last_result = result
        ctx.last_feedback = ""
        await publisher.emit(SandboxRunEvent(test_results=SandboxCounts.from_result(result)))
        return RunState.REVIEWING if result.succeeded else RunState.DIAGNOSING

    async def _review(self, ctx: RunContext, publisher: EventPublisher) -> RunState:
        await self._start(publisher, Role.PLANNER, "reviewing",
                          "All tests pass. Reviewing code quality...")

        reply = await self._ask(ctx, publisher, Role.PLANNER, "review", [
            {"role": "system", "content": prompts.REVIEWER_SYSTEM},
            {"role": "user", "content": prompts.REVIEW_PROMPT.format(
                task=ctx.task.description, language=ctx.language,
                code=ctx.code, tests=ctx.tests,
            )},
        ])
        if reply is None:
            return RunState.ABORTED

        if is_approval(reply):
            return await self._finish(ctx, publisher, RunState.DONE,
                                      CompleteEvent(final_code=ctx.code, tests=ctx.tests, plan=ctx.plan))

        ctx.last_feedback = reply
        return await self._next_round(ctx, publisher)

    async def _diagnose(self, ctx: RunContext, publisher: EventPublisher) -> RunState:
        await self._start(publisher, Role.PLANNER, "diagnosing",
                          "Tests failed. Analyzing what went wrong...")

        reply = await self._ask(ctx, publisher, Role.PLANNER, "feedback", [
            {"role": "system", "content": prompts.DIAGNOSER_SYSTEM},
            {"role": "user", "content": prompts.DIAGNOSE_PROMPT.format(
                language=ctx.language, code=ctx.code, tests=ctx.tests,
                output=ctx.last_result.output if ctx.last_result else "",
            )},
        ])
        if reply is None:
            return RunState.ABORTED

        ctx.last_feedback = reply
        return await self._next_round(ctx, publisher)

    async def _next_round(self, ctx: RunContext, publisher: EventPublisher) -> RunState:
        if ctx.round >= MAX_ROUNDS:
            ctx.error = f"Max rounds ({MAX_ROUNDS}) reached. Here's the best version so far."
            return await self._finish(ctx, publisher, RunState.EXHAUSTED,
                                      ErrorEvent(content=ctx.error),
                                      CompleteEvent(final_code=ctx.code, tests=ctx.tests))
        ctx.round += 1
        return RunState.CODING

    # -- helpers ----------------------------------------------------------

    async def _finish(
        self,
        ctx: RunContext,
        publisher: EventPublisher,
        state: RunState,
        *events: AgentEvent,
    ) -> RunState:
        """Enter a terminal state, then deliver its closing events."""
        ctx.state = state
        for event in events:
            await publisher.emit(event)
        return state

    async def _start(self, publisher: EventPublisher, role: Role, action: str, note: str) -> None:
        await publisher.emit(AgentStartEvent(agent=role.value, role=role.display_name, action=action))
        await publisher.emit(AgentThinkingEvent(agent=role.value, content=note))

    async def _ask(
        self,
        ctx: RunContext,
        publisher: EventPublisher,
        role: Role,
        action: str,
        messages: list[dict[str, str]],
    ) -> str | None:
        """One model turn. Returns None after reporting a failure."""
        model = ctx.model_for(role)
        start = time.time()
        reply = await self.model_client.invoke(model, messages, self.max_output_tokens)
        duration = time.time() - start

        if isinstance(reply, ModelInvocationFailed):
            ctx.error = str(reply)
            if self.logger:
                self.logger.log_model_call(ctx.task.task_id, ctx.round, role, model,
                                           duration, error=ctx.error)
            await self._finish(ctx, publisher, RunState.ABORTED, ErrorEvent(content=ctx.error))
            return None

        ctx.token_usage.add(reply.input_tokens, reply.output_tokens, reply.cost_usd)
        if self.logger:
            self.logger.log_model_call(
                ctx.task.task_id, ctx.round, role, model, duration,
                reply.input_tokens, reply.output_tokens,
                blocks=[block.label for block in extract_all_blocks(reply.text)],
            )

        await publisher.emit(AgentMessageEvent(
            agent=role.value, role=role.display_name, action=action, content=reply.text,
        ))
        return reply.text

    def _build_result(self, ctx: RunContext) -> RunResult:
        return RunResult(
            task_id=ctx.task.task_id,
            status=ctx.state,
            final_code=ctx.code if ctx.state != RunState.ABORTED else "",
            final_tests=ctx.tests,
            plan=ctx.plan,
            language=ctx.language,
            rounds=ctx.round,
            error=ctx.error,
            input_tokens=ctx.token_usage.input_tokens,
            output_tokens=ctx.token_usage.output_tokens,
            cost_usd=ctx.token_usage.total_cost_usd,
            wall_clock_seconds=ctx.elapsed_seconds,
        )
