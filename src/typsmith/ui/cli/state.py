"""Per-invocation CLI state: verbosity, consoles and retained pipeline events."""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
import sys
from typing import Any

import click
from rich.console import Console
from rich.text import Text

from typsmith.core.exceptions import exception_messages


__all__ = [
    "CLIState",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "render_message",
    "set_cli_state",
]

_STYLES = {"warning": "yellow", "error": "red"}


@dataclass(slots=True)
class CLIState:
    """Options shared by the commands of one invocation.

    Only events named in ``recorded`` are retained for presentation once the
    command finishes; the others are rendered live with ``-v`` or dropped.
    """

    verbosity: int = 0
    show_tracebacks: bool = False
    recorded: frozenset[str] = frozenset({"compile_failed"})
    events: dict[str, list[dict[str, Any]]] = field(default_factory=dict, init=False)

    @property
    def console(self) -> Console:
        return Console(file=sys.stdout)

    @property
    def err_console(self) -> Console:
        return Console(file=sys.stderr, highlight=False)

    def record_event(self, name: str, payload: Mapping[str, Any] | None = None) -> bool:
        """Retain ``payload`` when ``name`` is a recorded event."""
        if name not in self.recorded:
            return False
        self.events.setdefault(name, []).append(dict(payload or {}))
        return True

    def consume_events(self, name: str) -> list[dict[str, Any]]:
        return self.events.pop(name, [])


_CURRENT: ContextVar[CLIState | None] = ContextVar("typsmith_cli_state", default=None)


def get_cli_state(ctx: click.Context | None = None) -> CLIState:
    """Return the state attached to the running command, creating it if needed.

    Outside of a click context the state of the last command (or a fresh one)
    is returned.
    """
    ctx = ctx or click.get_current_context(silent=True)
    if ctx is not None:
        state = ctx.ensure_object(CLIState)
    else:
        state = _CURRENT.get() or CLIState()
    _CURRENT.set(state)
    return state


def set_cli_state(
    *,
    ctx: click.Context | None = None,
    verbosity: int | None = None,
    debug: bool | None = None,
) -> CLIState:
    state = get_cli_state(ctx)
    if verbosity is not None:
        state.verbosity = max(0, verbosity)
    if debug is not None:
        state.show_tracebacks = debug
    return state


def _details(message: str, exception: BaseException, verbosity: int) -> list[str]:
    if verbosity < 1:
        return []
    chain = exception_messages(exception)
    lines = [chain[0]] if chain and chain[0] not in message else []
    lines.append(f"type: {type(exception).__name__}")
    if verbosity >= 2 and len(chain) > 1:
        lines.append("caused by:")
        lines.extend(f"  {cause}" for cause in chain[1:])
    return lines


def render_message(
    level: str,
    message: str,
    *,
    exception: BaseException | None = None,
    state: CLIState | None = None,
) -> None:
    """Print ``message``; info goes to stdout, warnings and errors to stderr."""
    state = state or get_cli_state()
    if level == "info":
        state.console.log(message)
        return

    style = _STYLES.get(level, "red")
    text = Text.assemble((f"{level}: ", f"bold {style}"), (message, style))
    if exception is not None:
        details = _details(message, exception, state.verbosity)
        if details:
            text.append("\n" + "\n".join(details), style=style)
    state.err_console.print(text)


def emit_warning(
    message: str, *, exception: BaseException | None = None, state: CLIState | None = None
) -> None:
    render_message("warning", message, exception=exception, state=state)


def emit_error(
    message: str, *, exception: BaseException | None = None, state: CLIState | None = None
) -> None:
    render_message("error", message, exception=exception, state=state)


def debug_enabled() -> bool:
    """Return whether the last command asked for full tracebacks."""
    state = _CURRENT.get()
    return state is not None and state.show_tracebacks
