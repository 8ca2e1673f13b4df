"""Tests for the local sandbox and output classification."""

import asyncio
import shutil
import tempfile
import threading

import pytest

from agent_tdd.config import SandboxConfig
from agent_tdd.sandbox import LocalProcessSandbox, create_sandbox, parse_test_output
from agent_tdd.sandbox.languages import build_program


def _sandbox(tmp_path, **overrides) -> LocalProcessSandbox:
    return LocalProcessSandbox(SandboxConfig(work_root=str(tmp_path), **overrides))


def test_python_round_trip_leaves_nothing_behind(tmp_path):
    sandbox = _sandbox(tmp_path)
    result = asyncio.run(sandbox.run("def add(a, b): return a + b", "assert add(1, 2) == 3", "python"))
    assert result.passed == 1
    assert result.failed == 0
    assert result.total == 1
    assert result.succeeded
    assert list(tmp_path.iterdir()) == []


def test_python_assertion_failure(tmp_path):
    sandbox = _sandbox(tmp_path)
    result = asyncio.run(sandbox.run("def add(a, b): return a - b", "assert add(1, 2) == 3", "py"))
    assert result.passed == 0
    assert result.failed == 1
    assert "AssertionError" in result.output
    assert result.exit_code != 0
    assert not result.succeeded


def test_unknown_language_runs_as_python_script(tmp_path):
    sandbox = _sandbox(tmp_path)
    result = asyncio.run(sandbox.run("x = 2", "assert x * 2 == 4\nprint('All tests passed!')", "cobol"))
    assert result.succeeded
    assert "All tests passed!" in result.output


def test_timeout_is_a_failure(tmp_path):
    sandbox = _sandbox(tmp_path, timeout_seconds=1)
    result = asyncio.run(sandbox.run("import time", "time.sleep(30)", "python"))
    assert result.timed_out
    assert result.failed >= 1
    assert "Timed out" in result.output
    assert list(tmp_path.iterdir()) == []


def test_output_cap_truncates_and_fails(tmp_path):
    sandbox = _sandbox(tmp_path, max_output_bytes=1000)
    result = asyncio.run(sandbox.run("import sys", "sys.stdout.write('x' * 100000)", "python"))
    assert result.truncated
    assert result.failed >= 1
    assert result.output.count("x") == 1000
    assert list(tmp_path.iterdir()) == []


def test_missing_interpreter_is_reported_as_failure(tmp_path):
    sandbox = _sandbox(tmp_path, node_executable="/nonexistent/bin/node")
    result = asyncio.run(sandbox.run("module.exports = {}", "console.log('hi')", "javascript"))
    assert result.failed == 1
    assert result.output.startswith("Sandbox error:")
    assert list(tmp_path.iterdir()) == []


def test_unwritable_work_root_is_reported_as_failure(tmp_path):
    sandbox = LocalProcessSandbox(SandboxConfig(work_root=str(tmp_path / "missing" / "dir")))
    result = asyncio.run(sandbox.run("x = 1", "assert x == 1", "python"))
    assert result.failed == 1
    assert "cannot create working directory" in result.output


def test_cancellation_kills_process_and_cleans_up(tmp_path):
    sandbox = _sandbox(tmp_path)

    async def scenario():
        run = asyncio.create_task(sandbox.run("import time", "time.sleep(30)", "python"))
        await asyncio.sleep(0.5)
        run.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run

    asyncio.run(asyncio.wait_for(scenario(), timeout=10))
    assert list(tmp_path.iterdir()) == []


def test_directory_work_stays_off_the_event_loop(tmp_path, monkeypatch):
    threads = []
    real_mkdtemp, real_rmtree = tempfile.mkdtemp, shutil.rmtree

    def mkdtemp(*args, **kwargs):
        threads.append(threading.current_thread())
        return real_mkdtemp(*args, **kwargs)

    def rmtree(*args, **kwargs):
        threads.append(threading.current_thread())
        return real_rmtree(*args, **kwargs)

    monkeypatch.setattr(tempfile, "mkdtemp", mkdtemp)
    monkeypatch.setattr(shutil, "rmtree", rmtree)

    result = asyncio.run(_sandbox(tmp_path).run("x = 1", "assert x == 1", "python"))

    assert result.succeeded
    assert len(threads) == 2
    assert all(t is not threading.main_thread() for t in threads)
    assert list(tmp_path.iterdir()) == []


def test_concurrent_runs_do_not_share_directories(tmp_path):
    sandbox = _sandbox(tmp_path)
    code = "import os\nprint(os.getcwd())"

    async def scenario():
        return await asyncio.gather(*(sandbox.run(code, "", "python") for _ in range(3)))

    results = asyncio.run(scenario())
    cwds = {r.output.strip() for r in results}
    assert len(cwds) == 3
    assert list(tmp_path.iterdir()) == []


@pytest.mark.skipif(shutil.which("node") is None, reason="node not installed")
def test_javascript_tests_require_code_module(tmp_path):
    sandbox = _sandbox(tmp_path)
    code = "function add(a, b) { return a + b; }\nmodule.exports = { add };"
    tests = "if (code.add(1, 2) !== 3) throw new Error('add broken');\nconsole.log('All tests passed!');"
    result = asyncio.run(sandbox.run(code, tests, "js"))
    assert result.succeeded


def test_build_program_strategies():
    config = SandboxConfig(python_executable="py3", node_executable="nodejs", bash_executable="sh5")

    py = build_program("Python", "code", "tests", config)
    assert py.argv == ["py3", "test_main.py"]
    assert py.files["test_main.py"].startswith("code\n\ntests")

    js = build_program("ts", "code", "tests", config)
    assert js.argv == ["nodejs", "test.js"]
    assert js.files["code.js"].strip() == "code"
    assert js.files["test.js"].startswith("const code = require('./code');")

    sh = build_program("bash", "code", "tests", config)
    assert sh.argv == ["sh5", "main.sh"]

    fallback = build_program("brainfuck", "code", "tests", config)
    assert fallback.argv == ["py3", "code.py"]


def test_create_sandbox_factory():
    assert isinstance(create_sandbox(), LocalProcessSandbox)


def test_parse_explicit_counts():
    assert parse_test_output("===== 3 passed in 0.12s =====") == (3, 0)
    assert parse_test_output("1 failed, 2 passed, 2 errors in 0.3s", exit_code=1) == (2, 3)
    assert parse_test_output("0 passed, 1 error") == (0, 1)


def test_parse_failure_markers_win():
    output = "Traceback (most recent call last):\nAssertionError: bad\nAll tests passed!"
    assert parse_test_output(output, exit_code=1) == (0, 1)
    assert parse_test_output("AssertionError: a\nAssertionError: b") == (0, 2)
    assert parse_test_output("FAIL: test_reverse") == (0, 1)
    assert parse_test_output("ValueError: nope") == (0, 1)


def test_parse_failure_markers_ignore_case():
    assert parse_test_output("reverse test failed: expected cba\n", exit_code=0) == (0, 1)
    assert parse_test_output("error: bad input\n", exit_code=0) == (0, 1)
    assert parse_test_output("Fail on empty string") == (0, 1)


def test_parse_success_and_implicit_pass():
    assert parse_test_output("All tests passed!") == (1, 0)
    assert parse_test_output("OK") == (1, 0)
    assert parse_test_output("") == (1, 0)


def test_parse_nonzero_exit_without_markers_fails():
    assert parse_test_output("", exit_code=1) == (0, 1)
