"""Document collaborator interface and an in-memory reference implementation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


Span = tuple[int, int]


@dataclass(frozen=True, slots=True)
class EditEvent:
    """A replacement of ``[start, end)`` (pre-edit offsets) by ``inserted`` characters."""

    start: int
    end: int
    inserted: int

    @property
    def delta(self) -> int:
        return self.inserted - (self.end - self.start)

    def touches(self, span: Span) -> bool:
        """Return True when the edit modifies text inside ``span``."""
        start, end = span
        if self.start == self.end:
            return start < self.start < end
        return self.start < end and self.end > start


EditListener = Callable[[EditEvent], None]
ActivityListener = Callable[[], None]
CursorListener = Callable[[int], None]


@runtime_checkable
class Document(Protocol):
    """Operations the preview pipeline needs from the host editing surface."""

    def visible_region(self) -> Span: ...

    def text_at(self, span: Span) -> str | None: ...

    def full_text(self) -> str: ...

    def cursor_position(self) -> int | None: ...

    def modification_version(self) -> int: ...

    def add_edit_listener(self, listener: EditListener) -> None: ...

    def remove_edit_listener(self, listener: EditListener) -> None: ...

    def add_activity_listener(self, listener: ActivityListener) -> None: ...

    def remove_activity_listener(self, listener: ActivityListener) -> None: ...

    def add_cursor_listener(self, listener: CursorListener) -> None: ...

    def remove_cursor_listener(self, listener: CursorListener) -> None: ...


class TextDocument:
    """Mutable text buffer with a modification counter and change notifications.

    Offsets are character offsets into the Python string. Every mutation bumps
    the version, then notifies edit listeners followed by activity listeners.
    """

    def __init__(self, text: str = "", *, cursor: int | None = None) -> None:
        self._text = text
        self._version = 0
        self._cursor = cursor
        self._visible: Span | None = None
        self._edit_listeners: list[EditListener] = []
        self._activity_listeners: list[ActivityListener] = []
        self._cursor_listeners: list[CursorListener] = []

    def __len__(self) -> int:
        return len(self._text)

    # ------------------------------------------------------------------ queries

    def visible_region(self) -> Span:
        if self._visible is None:
            return (0, len(self._text))
        start, end = self._visible
        size = len(self._text)
        return (min(start, size), min(end, size))

    def text_at(self, span: Span) -> str | None:
        start, end = span
        if start < 0 or end > len(self._text) or start > end:
            return None
        return self._text[start:end]

    def full_text(self) -> str:
        return self._text

    def cursor_position(self) -> int | None:
        return self._cursor

    def modification_version(self) -> int:
        return self._version

    # ---------------------------------------------------------------- mutations

    def replace(self, start: int, end: int, text: str) -> EditEvent:
        """Replace ``[start, end)`` with ``text`` and notify listeners."""
        if not 0 <= start <= end <= len(self._text):
            raise IndexError(f"span ({start}, {end}) outside document of length {len(self)}")
        self._text = self._text[:start] + text + self._text[end:]
        self._version += 1
        event = EditEvent(start, end, len(text))
        if self._cursor is not None and self._cursor >= end:
            self._cursor += event.delta
        elif self._cursor is not None and self._cursor > start:
            self._cursor = start + len(text)
        for listener in list(self._edit_listeners):
            listener(event)
        self._notify_activity()
        return event

    def insert(self, position: int, text: str) -> EditEvent:
        return self.replace(position, position, text)

    def delete(self, start: int, end: int) -> EditEvent:
        return self.replace(start, end, "")

    def set_text(self, text: str) -> EditEvent | None:
        """Turn the buffer into ``text`` with the smallest single edit."""
        edit = diff_edit(self._text, text)
        if edit is None:
            return None
        start, end, replacement = edit
        return self.replace(start, end, replacement)

    def move_cursor(self, position: int | None) -> None:
        if position is not None:
            position = max(0, min(position, len(self._text)))
        self._cursor = position
        if position is not None:
            for listener in list(self._cursor_listeners):
                listener(position)
        self._notify_activity()

    def set_visible_region(self, span: Span | None) -> None:
        self._visible = span
        self._notify_activity()

    # ---------------------------------------------------------------- listeners

    def add_edit_listener(self, listener: EditListener) -> None:
        self._edit_listeners.append(listener)

    def remove_edit_listener(self, listener: EditListener) -> None:
        if listener in self._edit_listeners:
            self._edit_listeners.remove(listener)

    def add_activity_listener(self, listener: ActivityListener) -> None:
        self._activity_listeners.append(listener)

    def remove_activity_listener(self, listener: ActivityListener) -> None:
        if listener in self._activity_listeners:
            self._activity_listeners.remove(listener)

    def add_cursor_listener(self, listener: CursorListener) -> None:
        self._cursor_listeners.append(listener)

    def remove_cursor_listener(self, listener: CursorListener) -> None:
        if listener in self._cursor_listeners:
            self._cursor_listeners.remove(listener)

    def _notify_activity(self) -> None:
        for listener in list(self._activity_listeners):
            listener()


def diff_edit(old: str, new: str) -> tuple[int, int, str] | None:
    """Return ``(start, end, replacement)`` turning ``old`` into ``new``.

    The replacement covers the region between the longest common prefix and
    the longest common suffix. Returns None when both texts are equal.
    """
    if old == new:
        return None
    limit = min(len(old), len(new))
    prefix = 0
    while prefix < limit and old[prefix] == new[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < limit - prefix
        and old[len(old) - 1 - suffix] == new[len(new) - 1 - suffix]
    ):
        suffix += 1
    return prefix, len(old) - suffix, new[prefix : len(new) - suffix]


__all__ = [
    "Document",
    "EditEvent",
    "Span",
    "TextDocument",
    "diff_edit",
]
