"""CLI command implementations exposed via `typsmith.ui.cli`."""

from __future__ import annotations

from .cache import cache_app
from .render import render
from .watch import watch


__all__ = ["cache_app", "render", "watch"]
