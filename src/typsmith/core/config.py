"""Configuration models used by the fragment preview pipeline.

PreviewConfig

`compiler` (`str`)
: Name or path of the Typst executable. Resolved on ``PATH`` when the session
  is enabled.

`compiler_args` (`list[str]`)
: Argument template passed to the compiler. ``{input}`` and ``{output}`` are
  replaced with the temporary source file and the cached artifact path.

`preamble` (`str`)
: Typst source prepended to every fragment before the global context. The
  default shrinks the page to the rendered content.

`image_format` (`"svg" | "png"`)
: Extension of the produced artifacts. Typst infers the output format from it.

`cache_dir` (`Path | None`)
: Directory holding rendered artifacts. Defaults to the ``fragments``
  namespace of the user cache root.

`debounce_delay` (`float`)
: Seconds of document inactivity before a rescan is triggered.

`max_jobs` (`int`)
: Maximum number of compiler processes running at once for a document.
  ``0`` disables the limit.

`timeout` (`float | None`)
: Seconds after which a running compiler is killed and the fragment reported
  as failed. ``None`` waits forever.

`automatic` (`bool`)
: Remove an annotation when the cursor enters it so the text can be edited.

`directive_prefix` (`str`)
: Prefix of single-line global declarations (``#+TYPST: #let k = 2``).

`fences` (`list[FenceConfig]`)
: Opening and closing patterns of fenced Typst blocks contributing to the
  global context.

`declaration_keywords` (`list[str]`)
: Line prefixes recognised as declarations inside fenced blocks.

`require_declaration_prefix` (`bool`)
: Keep only fenced-block lines starting with a declaration keyword.
"""

from __future__ import annotations

from pathlib import Path
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
import yaml

from typsmith.core.cache import default_fragment_dir
from typsmith.core.exceptions import ConfigError


DEFAULT_PREAMBLE = (
    "#set page(width: auto, height: auto, margin: 2pt, fill: none)\n#set text(size: 12pt)\n"
)


class FenceConfig(BaseModel):
    """Regular expressions delimiting a fenced Typst block."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    open: str
    close: str

    @field_validator("open", "close")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid fence pattern {value!r}: {exc}") from exc
        return value


def _default_fences() -> list[FenceConfig]:
    return [
        FenceConfig(open=r"^\s*```\s*typst\s*$", close=r"^\s*```\s*$"),
        FenceConfig(open=r"(?i)^\s*#\+begin_src\s+typst\b.*$", close=r"(?i)^\s*#\+end_src\s*$"),
    ]


class PreviewConfig(BaseModel):
    """Settings shared by every preview session."""

    model_config = ConfigDict(extra="forbid")

    compiler: str = "typst"
    compiler_args: list[str] = Field(default_factory=lambda: ["compile", "{input}", "{output}"])
    preamble: str = DEFAULT_PREAMBLE
    image_format: Literal["svg", "png"] = "svg"
    cache_dir: Path | None = None
    debounce_delay: float = Field(default=0.5, ge=0)
    max_jobs: int = Field(default=4, ge=0)
    timeout: float | None = Field(default=None, gt=0)
    automatic: bool = True
    directive_prefix: str = "#+TYPST:"
    fences: list[FenceConfig] = Field(default_factory=_default_fences)
    declaration_keywords: list[str] = Field(
        default_factory=lambda: ["#let", "#set", "#show", "#import", "#include"]
    )
    require_declaration_prefix: bool = True

    @field_validator("compiler_args")
    @classmethod
    def _check_placeholders(cls, value: list[str]) -> list[str]:
        joined = " ".join(value)
        for placeholder in ("{input}", "{output}"):
            if placeholder not in joined:
                raise ValueError(f"compiler_args must reference {placeholder}")
        return value

    def resolve_cache_dir(self) -> Path:
        """Return the artifact directory without creating it."""
        if self.cache_dir is not None:
            return Path(self.cache_dir).expanduser()
        return default_fragment_dir()


def load_config(path: str | Path | None = None, **overrides: Any) -> PreviewConfig:
    """Load a ``PreviewConfig`` from YAML and apply keyword overrides.

    The file may either hold the settings at the top level or nest them under a
    ``typsmith`` key. Overrides whose value is ``None`` are ignored.
    """
    data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        try:
            raw = config_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Unable to read configuration '{config_path}': {exc}") from exc
        try:
            payload = yaml.safe_load(raw) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in '{config_path}': {exc}") from exc
        if not isinstance(payload, dict):
            raise ConfigError(f"Configuration '{config_path}' must contain a mapping.")
        nested = payload.get("typsmith")
        data = dict(nested) if isinstance(nested, dict) else dict(payload)

    data.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return PreviewConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


__all__ = [
    "DEFAULT_PREAMBLE",
    "FenceConfig",
    "PreviewConfig",
    "load_config",
]
