"""Classify captured test output into pass/fail counts."""

from __future__ import annotations

import re

_PASSED_RE = re.compile(r"(\d+)\s+passed")
_FAILED_RE = re.compile(r"(\d+)\s+failed")
_ERROR_RE = re.compile(r"(\d+)\s+errors?\b")

_FAILURE_RE = re.compile(r"AssertionError|Traceback|Error:|\bFAIL", re.IGNORECASE)
_ASSERTION_RE = re.compile(r"AssertionError")


def parse_test_output(output: str, exit_code: int | None = 0) -> tuple[int, int]:
    """Return ``(passed, failed)`` for the given output.

    1. Explicit "N passed" / "N failed" / "N error" counts, errors folded
       into failures.
    2. Any failure marker, or a non-zero exit status, means failure. One
       failure per ``AssertionError``, at least one.
    3. Otherwise the run counts as a single pass. An explicit success
       phrase ("All tests passed", "OK") lands here too.
    """
    passed_m = _PASSED_RE.search(output)
    failed_m = _FAILED_RE.search(output)
    error_m = _ERROR_RE.search(output)

    if passed_m or failed_m or error_m:
        passed = int(passed_m.group(1)) if passed_m else 0
        failed = int(failed_m.group(1)) if failed_m else 0
        if error_m:
            failed += int(error_m.group(1))
        return passed, failed

    if _FAILURE_RE.search(output) or exit_code not in (0, None):
        return 0, max(len(_ASSERTION_RE.findall(output)), 1)

    return 1, 0
