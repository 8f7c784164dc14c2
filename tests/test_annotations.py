from __future__ import annotations

from pathlib import Path

import pytest

from typsmith.core.annotations import Annotation, AnnotationReconciler
from typsmith.core.document import TextDocument
from typsmith.core.exceptions import StaleResult


class RecordingEmitter:
    debug_enabled = False

    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload) -> None:
        self.events.append((name, dict(payload)))


def _reconciler(text: str, **kwargs) -> tuple[TextDocument, AnnotationReconciler]:
    document = TextDocument(text)
    reconciler = AnnotationReconciler(document, **kwargs)
    document.add_edit_listener(reconciler.handle_edit)
    return document, reconciler


def test_apply_attaches_when_text_matches(tmp_path: Path) -> None:
    attached: list[Annotation] = []
    _, reconciler = _reconciler("a $x$ b", on_attach=attached.append)

    annotation = reconciler.apply((2, 5), tmp_path / "k.svg", "$x$", key="k")

    assert annotation is not None
    assert attached == [annotation]
    assert list(reconciler) == [annotation]
    assert reconciler.find(annotation.tag) is annotation
    assert reconciler.covering((2, 5)) is annotation
    assert reconciler.covering((2, 5), "k") is annotation
    assert reconciler.covering((2, 5), "other") is None


def test_stale_result_is_silently_discarded(tmp_path: Path) -> None:
    emitter = RecordingEmitter()
    document, reconciler = _reconciler("a $x$ b", emitter=emitter)
    document.insert(0, "zz ")

    assert reconciler.apply((2, 5), tmp_path / "k.svg", "$x$") is None
    assert len(reconciler) == 0
    assert [name for name, _ in emitter.events] == ["result_stale"]


def test_result_for_span_past_the_end_is_stale(tmp_path: Path) -> None:
    document, reconciler = _reconciler("a $x$ b")
    document.delete(1, 7)
    with pytest.raises(StaleResult):
        reconciler.validate((2, 5), "$x$")
    assert reconciler.apply((2, 5), tmp_path / "k.svg", "$x$") is None


def test_apply_replaces_annotation_on_same_span(tmp_path: Path) -> None:
    detached: list[Annotation] = []
    _, reconciler = _reconciler("$x$", on_detach=detached.append)

    first = reconciler.apply((0, 3), tmp_path / "a.svg", "$x$")
    second = reconciler.apply((0, 3), tmp_path / "b.svg", "$x$")

    assert detached == [first]
    assert list(reconciler) == [second]


def test_edit_inside_annotation_removes_it(tmp_path: Path) -> None:
    detached: list[Annotation] = []
    document, reconciler = _reconciler("a $x$ b $y$", on_detach=detached.append)
    touched = reconciler.apply((2, 5), tmp_path / "x.svg", "$x$")
    untouched = reconciler.apply((8, 11), tmp_path / "y.svg", "$y$")

    document.replace(3, 4, "z")

    assert detached == [touched]
    assert [item.tag for item in reconciler] == [untouched.tag]


def test_edit_before_annotation_shifts_it(tmp_path: Path) -> None:
    document, reconciler = _reconciler("a $x$ b")
    annotation = reconciler.apply((2, 5), tmp_path / "x.svg", "$x$")

    document.insert(0, ">> ")

    (shifted,) = list(reconciler)
    assert shifted.tag == annotation.tag
    assert shifted.span == (5, 8)
    assert reconciler.covering((5, 8)) is shifted


def test_edit_after_annotation_keeps_it(tmp_path: Path) -> None:
    document, reconciler = _reconciler("a $x$ b")
    annotation = reconciler.apply((2, 5), tmp_path / "x.svg", "$x$")
    document.insert(7, " more")
    document.insert(5, "!")
    assert list(reconciler) == [annotation]


def test_clear_by_span_and_all(tmp_path: Path) -> None:
    _, reconciler = _reconciler("$a$ $b$ $c$")
    reconciler.apply((0, 3), tmp_path / "a.svg", "$a$")
    reconciler.apply((4, 7), tmp_path / "b.svg", "$b$")
    reconciler.apply((8, 11), tmp_path / "c.svg", "$c$")

    removed = reconciler.clear((5, 9))
    assert sorted(item.original_text for item in removed) == ["$b$", "$c$"]
    assert len(reconciler) == 1

    reconciler.clear()
    assert len(reconciler) == 0


def test_reveal_removes_annotation_under_cursor(tmp_path: Path) -> None:
    _, reconciler = _reconciler("a $x$ b")
    reconciler.apply((2, 5), tmp_path / "x.svg", "$x$")

    assert reconciler.reveal(2) == []
    assert reconciler.reveal(5) == []
    assert len(reconciler.reveal(3)) == 1
    assert len(reconciler) == 0
