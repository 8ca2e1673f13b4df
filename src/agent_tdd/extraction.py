"""Pull code blocks and language tags out of free-form model text.

All control-flow decisions that depend on model prose go through the
functions in this module, so the heuristics can be tightened without
touching the orchestrator.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_LANGUAGE = "python"

# ```label\n body ```   (label optional; "c++", "objective-c", "c#" allowed)
_FENCE_RE = re.compile(r"```([\w+#.-]*)[ \t]*\r?\n(.*?)```", re.DOTALL)
_LANGUAGE_RE = re.compile(r"Language:\s*(\w+)", re.IGNORECASE)


@dataclass(frozen=True)
class CodeBlock:
    label: str
    body: str


def _fenced(text: str) -> list[tuple[str, str]]:
    return [(m.group(1), m.group(2)) for m in _FENCE_RE.finditer(text)]


def extract_block(text: str, preferred_label: str | None = None) -> str:
    """Return the body of the best fenced block in ``text``.

    A block labeled ``preferred_label`` (case-insensitive) wins. Otherwise
    the longest block is returned, on the assumption that the deliverable
    is the largest block. Returns ``""`` when there is no fenced block.
    """
    blocks = _fenced(text)
    if not blocks:
        return ""

    if preferred_label:
        wanted = preferred_label.lower()
        for label, body in blocks:
            if label.lower() == wanted:
                return body.strip()

    longest = ""
    for _, body in blocks:
        # ties go to the later block
        if len(body) >= len(longest):
            longest = body
    return longest.strip()


def extract_all_blocks(text: str) -> list[CodeBlock]:
    """All fenced blocks in order. Unlabeled blocks are labeled ``code``."""
    return [CodeBlock(label=label or "code", body=body.strip()) for label, body in _fenced(text)]


def extract_language(text: str, default: str = DEFAULT_LANGUAGE) -> str:
    """Language named by a ``Language: <word>`` line, lower-cased."""
    match = _LANGUAGE_RE.search(text)
    if match:
        return match.group(1).lower()
    return default
