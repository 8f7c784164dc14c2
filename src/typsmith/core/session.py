"""Per-document preview session wiring the pipeline to a host document."""

from __future__ import annotations

import logging

from typsmith.core.annotations import AnnotationListener, AnnotationReconciler
from typsmith.core.cache import CompilationCache
from typsmith.core.compiler import CompileDispatcher, CompileJob, JobRegistry, resolve_compiler
from typsmith.core.config import PreviewConfig
from typsmith.core.context import ContextHarvester
from typsmith.core.diagnostics import DiagnosticEmitter, NullEmitter
from typsmith.core.document import Document, EditEvent, Span
from typsmith.core.fragments import DollarMathSyntax, FragmentSyntax
from typsmith.core.reporter import DiagnosticSurface, ErrorReporter
from typsmith.core.scheduler import ScanScheduler


_log = logging.getLogger(__name__)


class PreviewSession:
    """Hold every piece of mutable preview state belonging to one document.

    The compilation cache is the only collaborator meant to be shared between
    sessions. ``enable`` subscribes to document events; ``disable`` kills the
    running compilers and removes every annotation.
    """

    def __init__(
        self,
        document: Document,
        config: PreviewConfig | None = None,
        *,
        cache: CompilationCache | None = None,
        syntax: FragmentSyntax | None = None,
        emitter: DiagnosticEmitter | None = None,
        surface: DiagnosticSurface | None = None,
        on_attach: AnnotationListener | None = None,
        on_detach: AnnotationListener | None = None,
    ) -> None:
        self.document = document
        self.config = config or PreviewConfig()
        self.emitter = emitter or NullEmitter()
        self.cache = cache or CompilationCache(
            self.config.resolve_cache_dir(), suffix=self.config.image_format
        )
        self.harvester = ContextHarvester.from_config(self.config)
        self.registry = JobRegistry(max_jobs=self.config.max_jobs)
        self.dispatcher = CompileDispatcher(self.config, self.cache, emitter=self.emitter)
        self.reconciler = AnnotationReconciler(
            document, emitter=self.emitter, on_attach=on_attach, on_detach=on_detach
        )
        self.reporter = ErrorReporter(surface, emitter=self.emitter)
        self.scheduler = ScanScheduler(
            document,
            syntax=syntax or DollarMathSyntax(),
            harvester=self.harvester,
            dispatcher=self.dispatcher,
            registry=self.registry,
            reconciler=self.reconciler,
            reporter=self.reporter,
            delay=self.config.debounce_delay,
        )
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __enter__(self) -> PreviewSession:
        self.enable()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disable()

    def enable(self) -> None:
        """Locate the compiler and start reacting to document events.

        Raises ``SetupError`` when the compiler is missing; the session then
        stays disabled.
        """
        if self._enabled:
            return
        self.dispatcher.executable = resolve_compiler(self.config.compiler)
        self.document.add_edit_listener(self._on_edit)
        self.document.add_activity_listener(self._on_activity)
        self.document.add_cursor_listener(self._on_cursor)
        self._enabled = True
        _log.debug("preview enabled using %s", self.dispatcher.executable)

    def disable(self) -> None:
        """Stop the session, cancelling owned jobs and clearing annotations.

        Safe to call repeatedly; every call kills whatever is still running.
        """
        if self._enabled:
            self.document.remove_edit_listener(self._on_edit)
            self.document.remove_activity_listener(self._on_activity)
            self.document.remove_cursor_listener(self._on_cursor)
        self.scheduler.cancel()
        cancelled = self.registry.cancel_all()
        if cancelled:
            self.emitter.event("jobs_cancelled", {"count": cancelled})
        self.reconciler.clear()
        self.harvester.invalidate()
        self._enabled = False

    def scan(self, region: Span | None = None) -> list[CompileJob]:
        """Request renders for ``region``. Does nothing while the session is disabled."""
        if not self._ready():
            return []
        return self.scheduler.scan(region)

    def scan_visible(self) -> list[CompileJob]:
        if not self._ready():
            return []
        return self.scheduler.scan_visible()

    def scan_all(self) -> list[CompileJob]:
        if not self._ready():
            return []
        return self.scheduler.scan_all()

    def _ready(self) -> bool:
        if not self._enabled:
            _log.debug("ignoring scan request on a disabled session")
        return self._enabled

    async def wait_idle(self) -> None:
        """Wait until no compile job owned by this session is running."""
        await self.registry.drain()

    def _on_edit(self, event: EditEvent) -> None:
        self.reconciler.handle_edit(event)

    def _on_activity(self) -> None:
        self.scheduler.notify_activity()

    def _on_cursor(self, position: int) -> None:
        if self.config.automatic:
            self.reconciler.reveal(position)


__all__ = ["PreviewSession"]
