"""Custom exception hierarchy for pyquest."""

from __future__ import annotations


class QuestError(Exception):
    """Base exception for all pyquest errors."""


class QuestConfigError(QuestError):
    """Invalid resolver or quest configuration.

    Raised at construction time, before any quest starts. This is a
    programmer error and is never captured into a resource record.
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class QuestRegistryError(QuestError):
    """A second in-flight registration was attempted for the same key."""

    def __init__(self, message: str, *, key: str) -> None:
        self.key = key
        super().__init__(message)


class QuestLoopError(QuestError):
    """A quest was started without a running event loop."""
