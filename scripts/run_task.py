#!/usr/bin/env python3
"""CLI entry point: run one TDD orchestration and print its events."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from agent_tdd.config import OrchestratorConfig, load_config
from agent_tdd.context import Role, RunResult, Task
from agent_tdd.events import EventPublisher
from agent_tdd.logging.logger import RunLogger
from agent_tdd.orchestrator import Orchestrator


async def _print_events(publisher: EventPublisher, verbose: bool) -> None:
    async for event in publisher:
        wire = event.to_wire()
        if not verbose:
            # Full model turns and test output are long; keep the log readable.
            for key in ("content", "code", "tests", "finalCode", "plan"):
                if isinstance(wire.get(key), str) and len(wire[key]) > 200:
                    wire[key] = wire[key][:200] + "..."
        print(json.dumps(wire, ensure_ascii=False))


async def run_task_async(
    description: str,
    config: OrchestratorConfig,
    verbose: bool = False,
) -> RunResult:
    logger = RunLogger("cli", config.log_dir) if config.log_dir else None
    orchestrator = Orchestrator.from_config(config, logger=logger)
    publisher = EventPublisher()
    models = {
        Role.PLANNER: config.planner_model,
        Role.IMPLEMENTER: config.implementer_model,
    }
    result, _ = await asyncio.gather(
        orchestrator.run(Task(description=description), models, publisher),
        _print_events(publisher, verbose),
    )
    return result


def _save_result(result: RunResult, output: str) -> None:
    out_path = Path(output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(result.final_code + ("\n" if result.final_code else ""))
    print(f"\nFinal code saved to {out_path}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the planner/implementer TDD loop on a task")
    parser.add_argument("task", help="Natural-language description of what to build")
    parser.add_argument("--config", help="Path to orchestrator YAML config")
    parser.add_argument("--planner-model", help="Model id for the planner (boss)")
    parser.add_argument("--implementer-model", help="Model id for the implementer (worker)")
    parser.add_argument("--output", help="Write the final code to this file")
    parser.add_argument("--verbose", action="store_true", help="Print full event payloads")
    args = parser.parse_args()

    config = load_config(args.config) if args.config else OrchestratorConfig()
    if args.planner_model:
        config.planner_model = args.planner_model
    if args.implementer_model:
        config.implementer_model = args.implementer_model

    result = asyncio.run(run_task_async(args.task, config, verbose=args.verbose))

    print(f"\nResult: status={result.status.value}, rounds={result.rounds}, "
          f"tokens={result.input_tokens + result.output_tokens}, "
          f"cost=${result.cost_usd:.4f}, time={result.wall_clock_seconds:.1f}s")
    if result.error:
        print(f"Error: {result.error}")
    if args.output and result.final_code:
        _save_result(result, args.output)


if __name__ == "__main__":
    main()
