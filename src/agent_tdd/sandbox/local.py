"""Local subprocess sandbox."""

from __future__ import annotations

import asyncio
import os
import shutil
import signal
import tempfile
from pathlib import Path

from agent_tdd.config import SandboxConfig

from .base import Sandbox, SandboxResult
from .languages import build_program
from .parsing import parse_test_output

_READ_CHUNK = 64 * 1024


class LocalProcessSandbox(Sandbox):
    """Runs each program in a fresh temp directory as a child process group.

    Isolation between runs comes from unique directory names, so one
    instance can serve any number of concurrent runs.
    """

    def __init__(self, config: SandboxConfig | None = None):
        self.config = config or SandboxConfig()

    async def run(self, code: str, tests: str, language: str) -> SandboxResult:
        # Filesystem work runs in a thread so other runs keep streaming.
        try:
            work_dir = Path(await asyncio.to_thread(
                tempfile.mkdtemp, prefix="agent-tdd-", dir=self.config.work_root,
            ))
        except OSError as e:
            return SandboxResult.infrastructure_error(f"cannot create working directory: {e}")

        try:
            program = build_program(language, code, tests, self.config)
            await asyncio.to_thread(_write_files, work_dir, program.files)
            return await self._execute(program.argv, work_dir)
        except OSError as e:
            # Missing interpreter, unwritable disk, ...
            return SandboxResult.infrastructure_error(str(e))
        finally:
            await asyncio.to_thread(shutil.rmtree, work_dir, ignore_errors=True)

    async def _execute(self, argv: list[str], work_dir: Path) -> SandboxResult:
        env = dict(os.environ, PYTHONDONTWRITEBYTECODE="1", PYTHONIOENCODING="utf-8")
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=work_dir,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            env=env,
            start_new_session=True,
        )

        buffer = bytearray()
        timed_out = truncated = False
        try:
            truncated = await asyncio.wait_for(
                self._drain(proc, buffer), timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            timed_out = True
        finally:
            # Also reached on cancellation
            if proc.returncode is None:
                _kill_group(proc)
                await proc.wait()

        output = buffer.decode("utf-8", errors="replace")
        if timed_out or truncated:
            # Killed: only explicit counts survive, and it never counts as a pass.
            passed, failed = parse_test_output(output, exit_code=proc.returncode or -1)
            failed = max(failed, 1)
            if timed_out:
                output += f"\n[Timed out after {self.config.timeout_seconds:g}s]"
            else:
                output += f"\n[Output truncated at {self.config.max_output_bytes} bytes]"
        else:
            passed, failed = parse_test_output(output, exit_code=proc.returncode)

        return SandboxResult(
            passed=passed,
            failed=failed,
            total=max(passed + failed, 1),
            output=output or "(no output)",
            exit_code=proc.returncode,
            timed_out=timed_out,
            truncated=truncated,
        )

    async def _drain(self, proc: asyncio.subprocess.Process, buffer: bytearray) -> bool:
        """Read combined output into ``buffer``. True if the cap was hit."""
        cap = self.config.max_output_bytes
        assert proc.stdout is not None
        while True:
            chunk = await proc.stdout.read(_READ_CHUNK)
            if not chunk:
                break
            buffer.extend(chunk)
            if len(buffer) > cap:
                del buffer[cap:]
                return True
        await proc.wait()
        return False


def _write_files(work_dir: Path, files: dict[str, str]) -> None:
    for name, content in files.items():
        (work_dir / name).write_text(content, encoding="utf-8")


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass
