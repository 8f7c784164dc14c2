"""Attach rendered artifacts to document spans, guarding against stale results."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace
import itertools
import logging
from pathlib import Path

from typsmith.core.diagnostics import DiagnosticEmitter, NullEmitter
from typsmith.core.document import Document, EditEvent, Span
from typsmith.core.exceptions import StaleResult


_log = logging.getLogger(__name__)
_TAGS = itertools.count(1)

AnnotationListener = Callable[["Annotation"], None]


@dataclass(frozen=True, slots=True)
class Annotation:
    """Visual replacement of ``span`` by the image at ``artifact``."""

    span: Span
    artifact: Path
    original_text: str
    key: str | None = None
    tag: int = field(default_factory=lambda: next(_TAGS))

    def overlaps(self, span: Span) -> bool:
        start, end = span
        if start == end:
            return self.span[0] <= start < self.span[1]
        return self.span[0] < end and self.span[1] > start

    def shifted(self, delta: int) -> Annotation:
        start, end = self.span
        return replace(self, span=(start + delta, end + delta))


class AnnotationReconciler:
    """Own the annotations of one document.

    ``on_attach`` / ``on_detach`` notify the host display layer. Results whose
    text no longer matches the document are dropped without notice.
    """

    def __init__(
        self,
        document: Document,
        *,
        emitter: DiagnosticEmitter | None = None,
        on_attach: AnnotationListener | None = None,
        on_detach: AnnotationListener | None = None,
    ) -> None:
        self.document = document
        self.emitter = emitter or NullEmitter()
        self.on_attach = on_attach
        self.on_detach = on_detach
        self._annotations: list[Annotation] = []

    def __iter__(self) -> Iterator[Annotation]:
        return iter(sorted(self._annotations, key=lambda item: item.span))

    def __len__(self) -> int:
        return len(self._annotations)

    def find(self, tag: int) -> Annotation | None:
        return next((item for item in self._annotations if item.tag == tag), None)

    def covering(self, span: Span, key: str | None = None) -> Annotation | None:
        """Return the live annotation for exactly ``span`` if it is still valid.

        When ``key`` is given the annotation must also have been rendered from
        that content key, so a changed global context invalidates it.
        """
        for annotation in self._annotations:
            if annotation.span != span:
                continue
            if key is not None and annotation.key != key:
                continue
            if self.document.text_at(span) == annotation.original_text:
                return annotation
        return None

    def apply(
        self, span: Span, artifact: Path, original_text: str, *, key: str | None = None
    ) -> Annotation | None:
        """Attach ``artifact`` to ``span`` if the span still holds ``original_text``."""
        try:
            self.validate(span, original_text)
        except StaleResult as exc:
            _log.debug("discarding result: %s", exc)
            self.emitter.event("result_stale", {"span": span, "artifact": str(artifact)})
            return None
        self.clear(span)
        annotation = Annotation(
            span=span, artifact=Path(artifact), original_text=original_text, key=key
        )
        self._annotations.append(annotation)
        if self.on_attach is not None:
            self.on_attach(annotation)
        return annotation

    def validate(self, span: Span, original_text: str) -> None:
        """Raise ``StaleResult`` unless the document still holds ``original_text`` at ``span``."""
        live = self.document.text_at(span)
        if live is None:
            raise StaleResult(f"span {span} is outside the document")
        if live != original_text:
            raise StaleResult(f"text at {span} changed since it was compiled")

    def clear(self, span: Span | None = None) -> list[Annotation]:
        """Remove annotations overlapping ``span`` (every annotation when None)."""
        if span is None:
            removed = list(self._annotations)
        else:
            removed = [item for item in self._annotations if item.overlaps(span)]
        return self._remove(removed)

    def handle_edit(self, event: EditEvent) -> list[Annotation]:
        """Drop annotations touched by ``event`` and shift the ones after it."""
        touched: list[Annotation] = []
        kept: list[Annotation] = []
        for annotation in self._annotations:
            if event.touches(annotation.span):
                touched.append(annotation)
            elif event.delta and annotation.span[0] >= event.end:
                kept.append(annotation.shifted(event.delta))
            else:
                kept.append(annotation)
        self._annotations = kept
        self._notify_detached(touched)
        return touched

    def reveal(self, position: int) -> list[Annotation]:
        """Remove the annotations strictly containing ``position``."""
        inside = [
            item for item in self._annotations if item.span[0] < position < item.span[1]
        ]
        return self._remove(inside)

    def _remove(self, annotations: list[Annotation]) -> list[Annotation]:
        if not annotations:
            return []
        doomed = {item.tag for item in annotations}
        self._annotations = [item for item in self._annotations if item.tag not in doomed]
        self._notify_detached(annotations)
        return annotations

    def _notify_detached(self, annotations: list[Annotation]) -> None:
        if self.on_detach is None:
            return
        for annotation in annotations:
            self.on_detach(annotation)


__all__ = ["Annotation", "AnnotationReconciler"]
