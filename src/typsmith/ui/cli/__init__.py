"""Public CLI exports for typsmith."""

from __future__ import annotations

from .app import app, main
from .commands import cache_app, render, watch
from .state import debug_enabled, emit_error, emit_warning, get_cli_state


__all__ = [
    "app",
    "cache_app",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "main",
    "render",
    "watch",
]
