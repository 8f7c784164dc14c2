"""Debounced rescans turning document fragments into compile requests."""

from __future__ import annotations

import asyncio
from functools import partial
import logging
from pathlib import Path

from typsmith.core.annotations import AnnotationReconciler
from typsmith.core.compiler import CompileDispatcher, CompileJob, JobRegistry
from typsmith.core.context import ContextHarvester
from typsmith.core.document import Document, Span
from typsmith.core.fragments import Fragment, FragmentSyntax, fragments_in_region
from typsmith.core.reporter import ErrorReporter


_log = logging.getLogger(__name__)


class ScanScheduler:
    """Enumerate fragments of a region and request the missing renders.

    Activity notifications arm a single idle timer on the running event loop;
    every new notification pushes the pending rescan back by ``delay`` seconds.
    """

    def __init__(
        self,
        document: Document,
        *,
        syntax: FragmentSyntax,
        harvester: ContextHarvester,
        dispatcher: CompileDispatcher,
        registry: JobRegistry,
        reconciler: AnnotationReconciler,
        reporter: ErrorReporter,
        delay: float = 0.5,
    ) -> None:
        self.document = document
        self.syntax = syntax
        self.harvester = harvester
        self.dispatcher = dispatcher
        self.registry = registry
        self.reconciler = reconciler
        self.reporter = reporter
        self.delay = delay
        self._timer: asyncio.TimerHandle | None = None
        self._inflight: dict[tuple[Span, str], CompileJob] = {}

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def scan(self, region: Span | None = None) -> list[CompileJob]:
        """Request compilation of every fragment in ``region`` lacking an annotation."""
        if region is None:
            region = self.document.visible_region()
        context = self.harvester.harvest(self.document)
        cursor = self.document.cursor_position()
        jobs: list[CompileJob] = []
        self._inflight = {slot: job for slot, job in self._inflight.items() if not job.done}
        for fragment in fragments_in_region(self.syntax, self.document.full_text(), region):
            if fragment.contains(cursor):
                continue
            key = self.dispatcher.key_for(fragment, context)
            if self.reconciler.covering(fragment.span, key) is not None:
                continue
            slot = (fragment.span, key)
            running = self._inflight.get(slot)
            if running is not None:
                jobs.append(running)
                continue
            job = self.dispatcher.submit(
                fragment,
                context,
                registry=self.registry,
                on_complete=partial(self._completed, fragment, key),
                on_error=self.reporter.report,
            )
            if not job.done:
                self._inflight[slot] = job
            jobs.append(job)
        _log.debug("scan of %s requested %d fragment(s)", region, len(jobs))
        return jobs

    def scan_visible(self) -> list[CompileJob]:
        return self.scan(self.document.visible_region())

    def scan_all(self) -> list[CompileJob]:
        return self.scan((0, len(self.document.full_text())))

    def notify_activity(self) -> None:
        """Arm the idle timer, replacing any pending one."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        self.scan()

    def _completed(self, fragment: Fragment, key: str, artifact: Path) -> None:
        self.reconciler.apply(fragment.span, artifact, fragment.source_text, key=key)


__all__ = ["ScanScheduler"]
