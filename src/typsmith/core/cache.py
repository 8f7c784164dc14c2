"""Content-addressed, write-once store of rendered fragment artifacts."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from hashlib import sha256
import os
from pathlib import Path
import shutil


CACHE_NAMESPACE = "fragments"

_ROOT_OVERRIDE: ContextVar[Path | None] = ContextVar("typsmith_cache_root", default=None)


def default_cache_root(environ: Mapping[str, str] | None = None) -> Path:
    """Return the directory typsmith caches into when none is configured.

    Lookup order: an active ``cache_root_override``, ``TYPSMITH_CACHE_DIR``,
    ``XDG_CACHE_HOME/typsmith``, ``TYPSMITH_HOME/cache`` and finally
    ``~/.cache/typsmith``. The environment is read on every call.
    """
    override = _ROOT_OVERRIDE.get()
    if override is not None:
        return override
    env = os.environ if environ is None else environ
    if env.get("TYPSMITH_CACHE_DIR"):
        return Path(env["TYPSMITH_CACHE_DIR"]).expanduser()
    if env.get("XDG_CACHE_HOME"):
        return Path(env["XDG_CACHE_HOME"]).expanduser() / "typsmith"
    if env.get("TYPSMITH_HOME"):
        return Path(env["TYPSMITH_HOME"]).expanduser() / "cache"
    return Path.home() / ".cache" / "typsmith"


def default_fragment_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the artifact directory used when ``cache_dir`` is not set."""
    return default_cache_root(environ) / CACHE_NAMESPACE


@contextmanager
def cache_root_override(root: str | Path) -> Iterator[Path]:
    """Temporarily pin the default cache root, ignoring the environment."""
    path = Path(root).expanduser()
    token = _ROOT_OVERRIDE.set(path)
    try:
        yield path
    finally:
        _ROOT_OVERRIDE.reset(token)


class CompilationCache:
    """Map content keys to artifact files stored in a flat directory.

    A key is considered present as soon as ``<root>/<key>.<suffix>`` exists;
    there is no in-memory index. Artifacts are a pure function of their key, so
    concurrent writers for the same key race harmlessly.
    """

    def __init__(self, root: Path | str, *, suffix: str = "svg") -> None:
        self.root = Path(root)
        self.suffix = suffix.lstrip(".")

    @staticmethod
    def make_key(source: str) -> str:
        """Return the hex digest identifying ``source``."""
        return sha256(source.encode("utf-8")).hexdigest()

    def ensure(self) -> Path:
        """Ensure the cache directory exists and return it."""
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.{self.suffix}"

    def lookup(self, key: str) -> Path | None:
        """Return the artifact for ``key`` when it has already been rendered."""
        target = self.path_for(key)
        if target.is_file():
            return target
        return None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.lookup(key) is not None

    def clear(self) -> bool:
        """Delete every cached artifact. Returns True when something was removed."""
        if not self.root.exists():
            return False
        shutil.rmtree(self.root)
        return True


__all__ = [
    "CACHE_NAMESPACE",
    "CompilationCache",
    "cache_root_override",
    "default_cache_root",
    "default_fragment_dir",
]
