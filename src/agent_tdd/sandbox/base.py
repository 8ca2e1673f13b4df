"""Base sandbox classes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class SandboxResult:
    """Outcome of one code + tests execution."""
    passed: int
    failed: int
    total: int
    output: str
    exit_code: int | None = None
    timed_out: bool = False
    truncated: bool = False

    @property
    def succeeded(self) -> bool:
        """True only when something passed and nothing failed."""
        return self.failed == 0 and self.passed > 0

    @classmethod
    def infrastructure_error(cls, message: str) -> SandboxResult:
        return cls(passed=0, failed=1, total=1, output=f"Sandbox error: {message}")


class Sandbox(ABC):
    """Runs a candidate implementation against a test suite."""

    @abstractmethod
    async def run(self, code: str, tests: str, language: str) -> SandboxResult:
        """Execute and classify. Must not leave anything behind."""
        ...
