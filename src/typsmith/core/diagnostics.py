"""Diagnostic abstractions shared across the preview pipeline."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that ignores every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter that forwards diagnostics to the standard logging module."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.warning(message, exc_info=exc)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.error(message, exc_info=exc)
        else:
            self._logger.error(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            self._logger.info(message)
            return
        self._logger.debug("diagnostic event %s: %s", name, dict(payload))


def _short(value: Any, width: int = 40) -> str:
    text = " ".join(str(value).split())
    if len(text) > width:
        return text[: width - 1] + "…"
    return text


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a human-friendly summary for selected diagnostic events."""
    data = dict(payload)

    if name == "compile_cached":
        key = str(data.get("key") or "<unknown>")[:12]
        return f"Reusing cached fragment {key}"

    if name == "compile_started":
        fragment = _short(data.get("fragment") or "")
        return f"Compiling: {fragment}"

    if name == "compile_finished":
        path = data.get("path") or "<unknown>"
        return f"Rendered fragment: {path}"

    if name == "compile_failed":
        fragment = _short(data.get("fragment") or "")
        reason = data.get("reason")
        suffix = f" ({reason})" if reason else ""
        return f"Fragment failed to compile: {fragment}{suffix}"

    if name == "result_stale":
        span = data.get("span")
        where = f" at {span[0]}-{span[1]}" if span else ""
        return f"Discarded outdated render{where}"

    if name == "jobs_cancelled":
        count = data.get("count", 0)
        return f"Cancelled {count} running compile job(s)"

    return None


__all__ = [
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "format_event_message",
]
