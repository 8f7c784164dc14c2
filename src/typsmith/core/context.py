"""Harvest document-wide Typst declarations prepended to every fragment."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
import logging
import re

from typsmith.core.config import FenceConfig, PreviewConfig
from typsmith.core.document import Document


_log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GlobalContext:
    """Declarations gathered from a document at a given modification version."""

    text: str
    version: int

    @classmethod
    def empty(cls, version: int = -1) -> GlobalContext:
        return cls(text="", version=version)


class ContextHarvester:
    """Extract global declarations and cache them per document version.

    Two declaration forms are recognised: single lines starting with the
    directive prefix (``#+TYPST: #let k = 2``) and fenced Typst blocks. Lines
    are concatenated in document order, newline terminated.
    """

    def __init__(
        self,
        *,
        directive_prefix: str = "#+TYPST:",
        fences: Sequence[FenceConfig] = (),
        declaration_keywords: Sequence[str] = (),
        require_declaration_prefix: bool = True,
    ) -> None:
        self.directive_prefix = directive_prefix
        self._fences = [(re.compile(fence.open), re.compile(fence.close)) for fence in fences]
        self.declaration_keywords = tuple(declaration_keywords)
        self.require_declaration_prefix = require_declaration_prefix
        self._cached: GlobalContext | None = None

    @classmethod
    def from_config(cls, config: PreviewConfig) -> ContextHarvester:
        return cls(
            directive_prefix=config.directive_prefix,
            fences=config.fences,
            declaration_keywords=config.declaration_keywords,
            require_declaration_prefix=config.require_declaration_prefix,
        )

    def harvest(self, document: Document) -> GlobalContext:
        """Return the global context for the current document version."""
        version = document.modification_version()
        if self._cached is not None and self._cached.version == version:
            return self._cached
        text = "".join(f"{line}\n" for line in self.declarations(document.full_text()))
        self._cached = GlobalContext(text=text, version=version)
        _log.debug("harvested %d characters of context at version %d", len(text), version)
        return self._cached

    def invalidate(self) -> None:
        self._cached = None

    def declarations(self, text: str) -> Iterator[str]:
        """Yield declaration lines found in ``text`` in document order."""
        closing: re.Pattern[str] | None = None
        for line in text.splitlines():
            if closing is not None:
                if closing.match(line):
                    closing = None
                elif self._keep_fenced_line(line):
                    yield line
                continue

            stripped = line.lstrip()
            if self.directive_prefix and stripped.startswith(self.directive_prefix):
                content = stripped[len(self.directive_prefix) :].strip()
                if content:
                    yield content
                continue

            for opening, close in self._fences:
                if opening.match(line):
                    closing = close
                    break

    def _keep_fenced_line(self, line: str) -> bool:
        if not line.strip():
            return False
        if not self.require_declaration_prefix:
            return True
        stripped = line.lstrip()
        return any(stripped.startswith(keyword) for keyword in self.declaration_keywords)


__all__ = ["ContextHarvester", "GlobalContext"]
