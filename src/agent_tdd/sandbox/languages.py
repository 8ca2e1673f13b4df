"""How code and tests are combined into a runnable program, per language."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from agent_tdd.config import SandboxConfig


@dataclass
class Program:
    files: dict[str, str]  # relative path -> contents
    argv: list[str]


def _python_script(code: str, tests: str, config: SandboxConfig) -> Program:
    return Program(
        files={"test_main.py": f"{code}\n\n{tests}\n"},
        argv=[config.python_executable, "test_main.py"],
    )


def _node_modules(code: str, tests: str, config: SandboxConfig) -> Program:
    return Program(
        files={
            "code.js": f"{code}\n",
            "test.js": f"const code = require('./code');\n{tests}\n",
        },
        argv=[config.node_executable, "test.js"],
    )


def _shell_script(code: str, tests: str, config: SandboxConfig) -> Program:
    return Program(
        files={"main.sh": f"{code}\n\n{tests}\n"},
        argv=[config.bash_executable, "main.sh"],
    )


def _default_script(code: str, tests: str, config: SandboxConfig) -> Program:
    return Program(
        files={"code.py": f"{code}\n\n{tests}\n"},
        argv=[config.python_executable, "code.py"],
    )


Strategy = Callable[[str, str, SandboxConfig], Program]

STRATEGIES: dict[str, Strategy] = {
    "python": _python_script,
    "py": _python_script,
    "javascript": _node_modules,
    "js": _node_modules,
    "typescript": _node_modules,
    "ts": _node_modules,
    "node": _node_modules,
    "bash": _shell_script,
    "sh": _shell_script,
    "shell": _shell_script,
}


def build_program(language: str, code: str, tests: str, config: SandboxConfig) -> Program:
    """Unknown languages fall back to running everything as one Python script."""
    strategy = STRATEGIES.get(language.lower(), _default_script)
    return strategy(code, tests, config)
