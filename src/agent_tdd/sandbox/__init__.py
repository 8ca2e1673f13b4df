"""Code-execution sandboxes."""

from agent_tdd.config import SandboxConfig

from .base import Sandbox, SandboxResult
from .local import LocalProcessSandbox
from .parsing import parse_test_output


def create_sandbox(config: SandboxConfig | None = None) -> Sandbox:
    """Factory function to create the default sandbox from config."""
    return LocalProcessSandbox(config or SandboxConfig())


__all__ = [
    "LocalProcessSandbox",
    "Sandbox",
    "SandboxResult",
    "create_sandbox",
    "parse_test_output",
]
