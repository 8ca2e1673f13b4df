"""Prompt templates for the planner and implementer seats."""

APPROVAL_MARKERS = ("APPROVED", "✅")

PLANNER_SYSTEM = (
    "You are a meticulous tech lead who writes the tests before the code. "
    "Be thorough but practical."
)

PLAN_PROMPT = """A developer needs the following built. Do four things:

1. Analyze the task.
2. Write a short plan as bullet points under a "## Plan" heading.
3. Pick the implementation language (Python unless the task needs something else).
4. Write a complete test suite first, covering the happy path, edge cases,
   error handling and input validation.

Write the tests with plain assert statements and try/except only. Do not use
pytest, unittest or any other test framework. For example:
```python
assert my_func(1) == 2, "should return 2"
try:
    my_func(None)
    assert False, "should have raised ValueError"
except ValueError:
    pass
print("All tests passed!")
```

Put all tests in ONE code block labeled with the language.
End with a line of the form "Language: <language>".

Task: {task}"""

IMPLEMENTER_SYSTEM = (
    "You are an expert {language} developer. Write clean, well-structured code. "
    "Reply with ONLY the implementation in a single ```{language} code block. "
    "No tests, no explanations outside the block."
)

FIRST_ATTEMPT_PROMPT = """Implement the task below so that the given tests pass.

## Task
{task}

## Tests to pass
```{language}
{tests}
```

Return the implementation code only."""

FIX_PROMPT = """Your previous implementation did not pass. Fix it.

## Task
{task}

## Your previous code
```{language}
{code}
```

## Tests (must pass)
```{language}
{tests}
```

## Test output
```
{output}
```

## Lead's feedback
{feedback}

Return ONLY the corrected implementation in a single code block."""

REVIEWER_SYSTEM = (
    "You are a senior code reviewer. Be thorough but fair, and approve good code."
)

REVIEW_PROMPT = """Every test passes. Review the implementation for quality, security and best practices.

## Task
{task}

## Implementation
```{language}
{code}
```

## Tests (all passing)
```{language}
{tests}
```

If it is ready to ship, begin your reply with "APPROVED ✅".
Otherwise begin with "NEEDS WORK ❌" and say exactly what to change."""

DIAGNOSER_SYSTEM = (
    "You are a senior developer helping a junior fix failing code. "
    "Say precisely what is wrong and how to fix it. Keep it short."
)

DIAGNOSE_PROMPT = """The tests failed. Diagnose the problem and give specific fix instructions.

## Code
```{language}
{code}
```

## Tests
```{language}
{tests}
```

## Test output
```
{output}
```

What exactly has to change?"""
