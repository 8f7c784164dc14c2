"""Rich-aware presenters for CLI output and diagnostics."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

import typer

from typsmith.core.annotations import Annotation

from .state import CLIState


if TYPE_CHECKING:  # pragma: no cover - typing only
    from rich.console import Console


def _get_console(state: CLIState, *, stderr: bool = False) -> Console | None:
    """Return the Rich console when writing to a terminal, None otherwise."""
    console = state.err_console if stderr else state.console
    if getattr(console, "is_terminal", False):
        return console
    return None


def format_path(path: Path) -> str:
    """Format a path relative to the current working directory for display."""
    resolved = path.resolve()
    try:
        return str(resolved.relative_to(Path.cwd()))
    except ValueError:
        return str(resolved)


def line_number(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _shorten(value: str, width: int = 48) -> str:
    text = " ".join(value.split())
    return text if len(text) <= width else text[: width - 1] + "…"


def present_annotations(
    state: CLIState, text: str, annotations: Sequence[Annotation], *, title: str
) -> None:
    """Display the rendered fragments of a document."""
    rows = [
        (
            str(line_number(text, item.span[0])),
            _shorten(item.original_text),
            format_path(item.artifact),
        )
        for item in annotations
    ]
    console = _get_console(state)
    if console is not None:
        from rich import box
        from rich.table import Table

        table = Table(title=title, box=box.SQUARE, show_edge=True, header_style="bold cyan")
        table.add_column("Line", justify="right", style="cyan")
        table.add_column("Fragment")
        table.add_column("Artifact", style="magenta")
        for row in rows:
            table.add_row(*row)
        console.print(table)
        return

    typer.echo(title)
    for line, fragment, artifact in rows:
        typer.echo(f"  * line {line}: {fragment} -> {artifact}")


def present_failures(state: CLIState, failures: Sequence[Mapping[str, Any]], report: str) -> None:
    """Display failed fragments and, with ``-v``, the last compiler report."""
    console = _get_console(state, stderr=True)
    rows = [
        (_shorten(str(entry.get("fragment") or "")), str(entry.get("reason") or "failed"))
        for entry in failures
    ]
    if console is not None:
        from rich import box
        from rich.panel import Panel
        from rich.table import Table
        from rich.text import Text

        table = Table(box=box.SQUARE, show_header=False)
        for fragment, reason in rows:
            table.add_row(Text(fragment, style="bold red"), Text(reason, style="yellow"))
        console.print(Panel(table, box=box.SQUARE, title="Typst failures", border_style="red"))
        if state.verbosity >= 1 and report:
            console.print(Panel(report, box=box.SQUARE, title="Last report", border_style="red"))
        return

    typer.echo("Typst failures", err=True)
    for fragment, reason in rows:
        typer.echo(f"  {fragment}: {reason}", err=True)
    if state.verbosity >= 1 and report:
        typer.echo(report, err=True)


__all__ = ["format_path", "line_number", "present_annotations", "present_failures"]
