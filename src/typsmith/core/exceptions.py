"""Custom exception hierarchy for the fragment preview pipeline."""

from __future__ import annotations


class TypsmithError(RuntimeError):
    """Base exception for fragment preview failures."""


class ConfigError(TypsmithError):
    """Raised when a configuration file cannot be loaded or validated."""


class SetupError(TypsmithError):
    """Raised when the external compiler cannot be located."""


class CompileFailure(TypsmithError):
    """Raised when the compiler ran but did not produce an artifact."""

    def __init__(self, message: str, source: str = "", *, reason: str | None = None) -> None:
        super().__init__(message)
        self.source = source
        self.reason = reason


class SpawnFailure(CompileFailure):
    """Raised when the compiler process could not be started."""


class StaleResult(TypsmithError):
    """Signals a compile result that no longer matches the document text."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None
