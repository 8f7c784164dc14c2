"""Surface compiler failures to the user."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from typsmith.core.diagnostics import DiagnosticEmitter, NullEmitter


@runtime_checkable
class DiagnosticSurface(Protocol):
    """Dedicated read-only area where the last failure is displayed."""

    def replace(self, content: str) -> None: ...


class ReportBuffer:
    """In-memory diagnostic surface; its content can only be replaced wholesale."""

    def __init__(self, name: str = "*typsmith errors*") -> None:
        self.name = name
        self._content = ""

    @property
    def content(self) -> str:
        return self._content

    def replace(self, content: str) -> None:
        self._content = content


@dataclass(frozen=True, slots=True)
class CompileReport:
    message: str
    source: str

    def render(self) -> str:
        return f"{self.message.rstrip()}\n\n--- source ---\n{self.source}"


class ErrorReporter:
    """Write compiler diagnostics to a surface and emit a one-line notice."""

    def __init__(
        self,
        surface: DiagnosticSurface | None = None,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.surface = surface if surface is not None else ReportBuffer()
        self.emitter = emitter or NullEmitter()
        self.last: CompileReport | None = None

    def report(self, message: str, source: str) -> CompileReport:
        report = CompileReport(message=message, source=source)
        self.surface.replace(report.render())
        self.last = report
        name = getattr(self.surface, "name", "the diagnostics buffer")
        headline = message.strip().splitlines()[0] if message.strip() else "unknown error"
        self.emitter.error(f"Typst compilation failed: {headline} (see {name})")
        return report


__all__ = ["CompileReport", "DiagnosticSurface", "ErrorReporter", "ReportBuffer"]
