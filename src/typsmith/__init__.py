"""Incremental rendering of embedded Typst fragments."""

from __future__ import annotations

from typsmith.core.annotations import Annotation, AnnotationReconciler
from typsmith.core.cache import CompilationCache
from typsmith.core.compiler import CompileDispatcher, CompileJob, JobRegistry, JobState
from typsmith.core.config import PreviewConfig, load_config
from typsmith.core.context import ContextHarvester, GlobalContext
from typsmith.core.document import Document, EditEvent, TextDocument
from typsmith.core.exceptions import (
    CompileFailure,
    ConfigError,
    SetupError,
    SpawnFailure,
    StaleResult,
    TypsmithError,
)
from typsmith.core.fragments import DollarMathSyntax, Fragment, FragmentSyntax
from typsmith.core.reporter import ErrorReporter, ReportBuffer
from typsmith.core.scheduler import ScanScheduler
from typsmith.core.session import PreviewSession
from typsmith.version import get_version


__version__ = get_version()

__all__ = [
    "Annotation",
    "AnnotationReconciler",
    "CompilationCache",
    "CompileDispatcher",
    "CompileFailure",
    "CompileJob",
    "ConfigError",
    "ContextHarvester",
    "Document",
    "DollarMathSyntax",
    "EditEvent",
    "ErrorReporter",
    "Fragment",
    "FragmentSyntax",
    "GlobalContext",
    "JobRegistry",
    "JobState",
    "PreviewConfig",
    "PreviewSession",
    "ReportBuffer",
    "ScanScheduler",
    "SetupError",
    "SpawnFailure",
    "StaleResult",
    "TextDocument",
    "TypsmithError",
    "__version__",
    "get_version",
    "load_config",
]
