"""Fragment records and the pluggable grammar locating them in a document."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
import re
from typing import Protocol, runtime_checkable

from typsmith.core.document import Span


@dataclass(frozen=True, slots=True)
class Fragment:
    """A span of document text recognised as embedded Typst markup."""

    span: Span
    source_text: str

    @property
    def start(self) -> int:
        return self.span[0]

    @property
    def end(self) -> int:
        return self.span[1]

    def contains(self, position: int | None) -> bool:
        """Return True when ``position`` lies inside the fragment."""
        if position is None:
            return False
        return self.start < position < self.end

    def overlaps(self, region: Span) -> bool:
        start, end = region
        return self.start < end and self.end > start


@runtime_checkable
class FragmentSyntax(Protocol):
    """Grammar yielding the fragments embedded in a text."""

    def find(self, text: str, offset: int = 0) -> Iterable[Fragment]: ...


class DollarMathSyntax:
    """Locate ``$...$`` math fragments, ignoring escaped dollar signs."""

    pattern = re.compile(r"(?<!\\)\$((?:\\.|[^$\\])+?)\$", re.DOTALL)

    def find(self, text: str, offset: int = 0) -> Iterator[Fragment]:
        for match in self.pattern.finditer(text):
            if not match.group(1).strip():
                continue
            start, end = match.span()
            yield Fragment(span=(start + offset, end + offset), source_text=match.group(0))


def fragments_in_region(syntax: FragmentSyntax, text: str, region: Span) -> list[Fragment]:
    """Return fragments of ``text`` overlapping ``region``, in document order."""
    return [fragment for fragment in syntax.find(text) if fragment.overlaps(region)]


__all__ = [
    "DollarMathSyntax",
    "Fragment",
    "FragmentSyntax",
    "fragments_in_region",
]
