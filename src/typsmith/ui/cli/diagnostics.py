"""Diagnostic emitter bridging the preview pipeline with CLI rendering utilities."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from typsmith.core.diagnostics import DiagnosticEmitter, format_event_message

from .state import CLIState, emit_error, emit_warning, get_cli_state, render_message


class CliEmitter(DiagnosticEmitter):
    """Emit diagnostics through the CLI state's consoles.

    Events the state records are kept for the command to present; with ``-v``
    every event with a summary is also logged as it happens.
    """

    def __init__(self, state: CLIState | None = None, *, debug_enabled: bool | None = None) -> None:
        self.state = state or get_cli_state()
        if debug_enabled is None:
            debug_enabled = self.state.show_tracebacks
        self.debug_enabled = bool(debug_enabled)

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        emit_warning(message, exception=exc, state=self.state)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        emit_error(message, exception=exc, state=self.state)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.state.record_event(name, payload)
        if self.state.verbosity < 1:
            return
        message = format_event_message(name, payload)
        if message:
            render_message("info", message, state=self.state)


__all__ = ["CliEmitter"]
