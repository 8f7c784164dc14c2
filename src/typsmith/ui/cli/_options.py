"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


INPUTS_PANEL = "Input Handling"
RENDERING_PANEL = "Rendering"
DIAGNOSTICS_PANEL = "Diagnostics"

InputArgument = Annotated[
    Path,
    typer.Argument(
        metavar="INPUT",
        help="Text document containing $...$ Typst fragments.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
    ),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="YAML file with preview settings.",
        exists=True,
        dir_okay=False,
        rich_help_panel=INPUTS_PANEL,
    ),
]

CacheDirOption = Annotated[
    Path | None,
    typer.Option(
        "--cache-dir",
        help="Directory storing rendered fragments (defaults to the user cache).",
        file_okay=False,
        rich_help_panel=RENDERING_PANEL,
    ),
]

CompilerOption = Annotated[
    str | None,
    typer.Option(
        "--compiler",
        help="Typst executable to invoke.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

FormatOption = Annotated[
    str | None,
    typer.Option(
        "--format",
        "-f",
        help="Artifact format: svg or png.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

JobsOption = Annotated[
    int | None,
    typer.Option(
        "--jobs",
        "-j",
        min=0,
        help="Maximum number of concurrent compiler processes (0 for no limit).",
        rich_help_panel=RENDERING_PANEL,
    ),
]

TimeoutOption = Annotated[
    float | None,
    typer.Option(
        "--timeout",
        help="Kill a compiler running longer than this many seconds.",
        rich_help_panel=RENDERING_PANEL,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks when an unexpected error occurs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]
