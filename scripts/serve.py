#!/usr/bin/env python3
"""Serve the multi-agent SSE endpoint with uvicorn."""

from __future__ import annotations

import argparse

from dotenv import load_dotenv
load_dotenv()

import uvicorn

from agent_tdd.config import OrchestratorConfig, load_config
from agent_tdd.server import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the TDD orchestrator over HTTP")
    parser.add_argument("--config", help="Path to orchestrator YAML config")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    config = load_config(args.config) if args.config else OrchestratorConfig()
    uvicorn.run(create_app(config), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
