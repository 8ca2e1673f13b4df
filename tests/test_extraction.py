"""Tests for code block and language extraction."""

from agent_tdd.extraction import (
    CodeBlock,
    extract_all_blocks,
    extract_block,
    extract_language,
)

MIXED = """Plan first.

```bash
pip install nothing
```

```python
def reverse(s):
    return s[::-1]
```

```
x
```
"""


def test_preferred_label_wins_over_length():
    text = "```python\nshort = 1\n```\n```text\n" + "a much longer block\n" * 5 + "```"
    assert extract_block(text, "python") == "short = 1"
    assert extract_block(text, "PYTHON") == "short = 1"


def test_longest_block_fallback():
    assert extract_block(MIXED) == "def reverse(s):\n    return s[::-1]"
    # no block labeled "ruby": still falls back to the longest
    assert extract_block(MIXED, "ruby") == "def reverse(s):\n    return s[::-1]"


def test_unlabeled_block():
    assert extract_block("```\nprint('hi')\n```") == "print('hi')"


def test_no_blocks():
    assert extract_block("Just prose, no code.") == ""
    assert extract_block("") == ""


def test_extraction_is_stable_on_refenced_output():
    once = extract_block(MIXED)
    assert extract_block(f"```\n{once}\n```") == once


def test_extract_all_blocks():
    blocks = extract_all_blocks(MIXED)
    assert blocks == [
        CodeBlock(label="bash", body="pip install nothing"),
        CodeBlock(label="python", body="def reverse(s):\n    return s[::-1]"),
        CodeBlock(label="code", body="x"),
    ]


def test_extract_language():
    assert extract_language("blah\nLanguage: JavaScript\n") == "javascript"
    assert extract_language("language:python") == "python"
    assert extract_language("no tag here") == "python"
    assert extract_language("no tag here", default="go") == "go"
