from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import sys
import textwrap

import pytest

from typsmith.core.config import PreviewConfig
from typsmith.ui.cli import state as cli_state


_FAKE_TYPST = textwrap.dedent(
    """
    import pathlib
    import sys
    import time

    log, command, source, output = sys.argv[1:5]
    with open(log, "a", encoding="utf-8") as handle:
        handle.write(f"{command} {source} {output}\\n")

    text = pathlib.Path(source).read_text(encoding="utf-8")
    if "HANG" in text:
        time.sleep(60)
    if "FAIL" in text:
        sys.stderr.write("error: unknown variable: FAIL\\n")
        sys.exit(1)
    if "QUIET" in text:
        sys.exit(0)
    pathlib.Path(output).write_text(f"<svg><!-- {text} --></svg>", encoding="utf-8")
    """
)


@dataclass
class FakeTypst:
    """Stand-in compiler recording every invocation."""

    script: Path
    log: Path
    cache_dir: Path

    def calls(self) -> list[list[str]]:
        if not self.log.exists():
            return []
        return [line.split(" ") for line in self.log.read_text(encoding="utf-8").splitlines()]

    def config(self, **overrides) -> PreviewConfig:
        settings = {
            "compiler": sys.executable,
            "compiler_args": [str(self.script), str(self.log), "compile", "{input}", "{output}"],
            "cache_dir": self.cache_dir,
            "debounce_delay": 0.01,
        }
        settings.update(overrides)
        return PreviewConfig(**settings)


@pytest.fixture
def fake_typst(tmp_path: Path) -> FakeTypst:
    script = tmp_path / "fake_typst.py"
    script.write_text(_FAKE_TYPST, encoding="utf-8")
    return FakeTypst(script=script, log=tmp_path / "calls.log", cache_dir=tmp_path / "cache")


@pytest.fixture(autouse=True)
def _fresh_cli_state() -> None:
    cli_state._CURRENT.set(None)
