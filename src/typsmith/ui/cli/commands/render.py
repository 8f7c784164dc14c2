"""Render every fragment of a document once."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
import typer

from typsmith.core.annotations import Annotation
from typsmith.core.config import PreviewConfig, load_config
from typsmith.core.diagnostics import DiagnosticEmitter
from typsmith.core.document import TextDocument
from typsmith.core.exceptions import ConfigError, SetupError
from typsmith.core.reporter import DiagnosticSurface, ReportBuffer
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
from ..presenter import present_annotations, present_failures
from ..state import emit_error, set_cli_state


def resolve_settings(
    config: Path | None,
    *,
    cache_dir: Path | None = None,
    compiler: str | None = None,
    image_format: str | None = None,
    jobs: int | None = None,
    timeout: float | None = None,
) -> PreviewConfig:
    """Load the configuration file and apply command-line overrides."""
    try:
        return load_config(
            config,
            cache_dir=cache_dir,
            compiler=compiler,
            image_format=image_format,
            max_jobs=jobs,
            timeout=timeout,
        )
    except ConfigError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


async def render_document(
    document: TextDocument,
    config: PreviewConfig,
    *,
    emitter: DiagnosticEmitter | None = None,
    surface: DiagnosticSurface | None = None,
) -> list[Annotation]:
    """Compile every fragment of ``document`` and return the resulting annotations."""
    session = PreviewSession(document, config, emitter=emitter, surface=surface)
    session.enable()
    try:
        session.scan_all()
        await session.wait_idle()
        return list(session.reconciler)
    finally:
        session.disable()


def render(
    input_path: InputArgument,
    config: ConfigOption = None,
    cache_dir: CacheDirOption = None,
    compiler: CompilerOption = None,
    image_format: FormatOption = None,
    jobs: JobsOption = None,
    timeout: TimeoutOption = None,
    verbose: VerboseOption = 0,
    debug: DebugOption = False,
) -> None:
    """Render every Typst fragment of INPUT and list the produced artifacts."""
    ctx = click.get_current_context(silent=True)
    typer_ctx = ctx if isinstance(ctx, typer.Context) else None
    state = set_cli_state(ctx=typer_ctx, verbosity=verbose, debug=debug)

    settings = resolve_settings(
        config,
        cache_dir=cache_dir,
        compiler=compiler,
        image_format=image_format,
        jobs=jobs,
        timeout=timeout,
    )
    text = input_path.read_text(encoding="utf-8")
    document = TextDocument(text)
    surface = ReportBuffer()
    emitter = CliEmitter(state=state)

    try:
        annotations = asyncio.run(
            render_document(document, settings, emitter=emitter, surface=surface)
        )
    except SetupError as exc:
        emit_error(str(exc), exception=exc, state=state)
        raise typer.Exit(code=1) from exc

    present_annotations(state, text, annotations, title=f"Rendered fragments: {input_path.name}")

    failures = state.consume_events("compile_failed")
    if failures:
        present_failures(state, failures, surface.content)
        raise typer.Exit(code=1)


__all__ = ["render", "render_document", "resolve_settings"]
