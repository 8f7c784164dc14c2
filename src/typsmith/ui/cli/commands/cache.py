"""Commands inspecting the on-disk fragment cache."""

from __future__ import annotations

import typer

from typsmith.core.cache import CompilationCache

from .._options import CacheDirOption, ConfigOption
from .render import resolve_settings


cache_app = typer.Typer(help="Inspect or clear the rendered fragment cache.")


@cache_app.command("path")
def cache_path(config: ConfigOption = None, cache_dir: CacheDirOption = None) -> None:
    """Print the directory holding rendered fragments."""
    settings = resolve_settings(config, cache_dir=cache_dir)
    typer.echo(str(settings.resolve_cache_dir()))


@cache_app.command("clear")
def cache_clear(config: ConfigOption = None, cache_dir: CacheDirOption = None) -> None:
    """Delete every rendered fragment."""
    settings = resolve_settings(config, cache_dir=cache_dir)
    cache = CompilationCache(settings.resolve_cache_dir(), suffix=settings.image_format)
    if cache.clear():
        typer.echo(f"Removed {cache.root}")
    else:
        typer.echo("Cache is already empty.")


__all__ = ["cache_app"]
