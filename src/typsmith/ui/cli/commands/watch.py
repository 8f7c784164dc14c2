"""Keep the rendered fragments of a file up to date while it is edited."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Annotated

import click
import typer

from typsmith.core.annotations import Annotation
from typsmith.core.config import PreviewConfig
from typsmith.core.diagnostics import DiagnosticEmitter
from typsmith.core.document import TextDocument
from typsmith.core.exceptions import SetupError
from typsmith.core.session import PreviewSession

from .._options import (
    CacheDirOption,
    CompilerOption,
    ConfigOption,
    DebugOption,
    FormatOption,
    InputArgument,
    JobsOption,
    TimeoutOption,
    VerboseOption,
)
from ..diagnostics import CliEmitter
from ..presenter import format_path, line_number
from ..state import emit_error, set_cli_state
from .render import resolve_settings


AttachCallback = Callable[[TextDocument, Annotation], None]


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return None


async def watch_document(
    path: Path,
    config: PreviewConfig,
    *,
    emitter: DiagnosticEmitter | None = None,
    interval: float = 0.5,
    stop: asyncio.Event | None = None,
    on_attach: AttachCallback | None = None,
) -> None:
    """Poll ``path`` and mirror its changes into a live preview session.

    Each change becomes one minimal edit on the in-memory document, which
    invalidates the touched annotations and arms the debounced rescan. Runs
    until ``stop`` is set or the task is cancelled.
    """
    text = _read(path)
    if text is None:
        raise FileNotFoundError(path)
    document = TextDocument(text)

    def attached(annotation: Annotation) -> None:
        if on_attach is not None:
            on_attach(document, annotation)

    session = PreviewSession(document, config, emitter=emitter, on_attach=attached)
    session.enable()
    stop = stop or asyncio.Event()
    try:
        session.scan_all()
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            current = _read(path)
            if current is not None:
                document.set_text(current)
    finally:
        session.disable()


def watch(
    input_path: InputArgument,
    config: ConfigOption = None,
    cache_dir: CacheDirOption = None,
    compiler: CompilerOption = None,
    image_format: FormatOption = None,
    jobs: JobsOption = None,
    timeout: TimeoutOption = None,
    interval: Annotated[
        float,
        typer.Option("--interval", min=0.05, help="Seconds between checks of INPUT."),
    ] = 0.5,
    verbose: VerboseOption = 0,
    debug: DebugOption = False,
) -> None:
    """Watch INPUT and re-render fragments as they change. Stop with Ctrl+C."""
    ctx = click.get_current_context(silent=True)
    typer_ctx = ctx if isinstance(ctx, typer.Context) else None
    state = set_cli_state(ctx=typer_ctx, verbosity=verbose, debug=debug)
    # nothing is presented once watching stops
    state.recorded = frozenset()

    settings = resolve_settings(
        config,
        cache_dir=cache_dir,
        compiler=compiler,
        image_format=image_format,
        jobs=jobs,
        timeout=timeout,
    )

    def announce(document: TextDocument, annotation: Annotation) -> None:
        line = line_number(document.full_text(), annotation.span[0])
        typer.echo(f"line {line}: {format_path(annotation.artifact)}")

    try:
        asyncio.run(
            watch_document(
                input_path,
                settings,
                emitter=CliEmitter(state=state),
                interval=interval,
                on_attach=announce,
            )
        )
    except SetupError as exc:
        emit_error(str(exc), exception=exc, state=state)
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        typer.echo("Stopped watching.")


__all__ = ["watch", "watch_document"]
