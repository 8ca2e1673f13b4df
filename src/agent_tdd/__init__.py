"""Planner/implementer test-driven development loop with streamed progress."""

__version__ = "0.1.0"
