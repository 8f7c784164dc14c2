from __future__ import annotations

from pathlib import Path

import pytest

from typsmith.core.cache import CACHE_NAMESPACE, cache_root_override
from typsmith.core.config import PreviewConfig, load_config
from typsmith.core.exceptions import ConfigError


def test_defaults() -> None:
    config = PreviewConfig()
    assert config.compiler == "typst"
    assert config.compiler_args == ["compile", "{input}", "{output}"]
    assert config.image_format == "svg"
    assert config.debounce_delay == 0.5
    assert config.max_jobs == 4
    assert config.timeout is None
    assert config.automatic is True
    assert config.directive_prefix == "#+TYPST:"
    assert len(config.fences) == 2


def test_compiler_args_require_placeholders() -> None:
    with pytest.raises(ValueError, match="output"):
        PreviewConfig(compiler_args=["compile", "{input}"])


def test_unknown_fields_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "typsmith.yml"
    path.write_text("compilr: typst\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_config(path)


def test_load_config_nested_section_and_overrides(tmp_path: Path) -> None:
    path = tmp_path / "typsmith.yml"
    path.write_text(
        "typsmith:\n  image_format: png\n  max_jobs: 2\n  debounce_delay: 1.5\n",
        encoding="utf-8",
    )

    config = load_config(path, max_jobs=8, compiler=None)

    assert config.image_format == "png"
    assert config.max_jobs == 8
    assert config.debounce_delay == 1.5
    assert config.compiler == "typst"


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "broken.yml"
    path.write_text("typsmith: [unterminated\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


def test_load_config_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "list.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)


def test_load_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Unable to read"):
        load_config(tmp_path / "missing.yml")


def test_cache_dir_defaults_to_user_cache(tmp_path: Path) -> None:
    with cache_root_override(tmp_path / "cache"):
        assert PreviewConfig().resolve_cache_dir() == tmp_path / "cache" / CACHE_NAMESPACE
    assert not (tmp_path / "cache").exists()


def test_explicit_cache_dir_wins(tmp_path: Path) -> None:
    config = PreviewConfig(cache_dir=tmp_path / "fragments")
    assert config.resolve_cache_dir() == tmp_path / "fragments"


def test_invalid_fence_pattern() -> None:
    with pytest.raises(ValueError, match="invalid fence pattern"):
        PreviewConfig(fences=[{"open": "(", "close": "x"}])
