from __future__ import annotations

from typsmith.core.config import FenceConfig, PreviewConfig
from typsmith.core.context import ContextHarvester, GlobalContext
from typsmith.core.document import TextDocument


DOCUMENT = """\
#+TYPST: #let k = 2
Prose with $k$ inside.
```typst
#let a = 1
a plain line
#set text(fill: red)
```
  #+TYPST:   #import "lib.typ": *
"""


def test_harvest_collects_directives_and_fenced_declarations() -> None:
    harvester = ContextHarvester.from_config(PreviewConfig())
    context = harvester.harvest(TextDocument(DOCUMENT))

    assert context.text == (
        "#let k = 2\n#let a = 1\n#set text(fill: red)\n#import \"lib.typ\": *\n"
    )
    assert context.version == 0


def test_fenced_lines_kept_verbatim_without_keyword_filter() -> None:
    harvester = ContextHarvester(
        fences=[FenceConfig(open=r"^```typst$", close=r"^```$")],
        require_declaration_prefix=False,
    )
    lines = list(harvester.declarations(DOCUMENT))
    assert lines == [
        "#let k = 2",
        "#let a = 1",
        "a plain line",
        "#set text(fill: red)",
        '#import "lib.typ": *',
    ]


def test_org_source_blocks_are_recognised() -> None:
    text = "#+BEGIN_SRC typst :exports none\n#let v = 3\n#+END_SRC\n$v$\n"
    harvester = ContextHarvester.from_config(PreviewConfig())
    assert list(harvester.declarations(text)) == ["#let v = 3"]


def test_document_without_declarations_yields_empty_context() -> None:
    harvester = ContextHarvester.from_config(PreviewConfig())
    context = harvester.harvest(TextDocument("just $x$"))
    assert context == GlobalContext(text="", version=0)


def test_harvest_is_cached_per_version() -> None:
    harvester = ContextHarvester.from_config(PreviewConfig())
    document = TextDocument("#+TYPST: #let k = 2\n$k$")

    first = harvester.harvest(document)
    assert harvester.harvest(document) is first

    document.replace(18, 19, "3")
    second = harvester.harvest(document)
    assert second is not first
    assert second.text == "#let k = 3\n"
    assert second.version == 1


def test_invalidate_forces_a_new_harvest() -> None:
    harvester = ContextHarvester.from_config(PreviewConfig())
    document = TextDocument("#+TYPST: #let k = 2\n")
    first = harvester.harvest(document)
    harvester.invalidate()
    assert harvester.harvest(document) is not first
