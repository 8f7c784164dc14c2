"""Dispatch fragments to the external Typst compiler.

Every request is reduced to a content key. Keys already present in the
compilation cache resolve synchronously; misses spawn one asynchronous
compiler process whose job is registered with the requesting document so it
can be cancelled when the document is torn down.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
import logging
import os
from pathlib import Path
import shutil
import subprocess
import tempfile

from typsmith.core.cache import CompilationCache
from typsmith.core.config import PreviewConfig
from typsmith.core.context import GlobalContext
from typsmith.core.diagnostics import DiagnosticEmitter, NullEmitter
from typsmith.core.exceptions import CompileFailure, SetupError, SpawnFailure
from typsmith.core.fragments import Fragment


_log = logging.getLogger(__name__)

CompleteCallback = Callable[[Path], None]
ErrorCallback = Callable[[str, str], None]


class JobState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in {JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED}


@dataclass(eq=False, slots=True)
class CompileJob:
    """A single compilation of ``source`` into the artifact at ``artifact``."""

    fragment: Fragment
    context: GlobalContext
    key: str
    source: str
    artifact: Path
    state: JobState = JobState.PENDING
    input_path: Path | None = None
    process: asyncio.subprocess.Process | None = None
    task: asyncio.Task[None] | None = None
    diagnostics: bytes | None = None
    _listeners: list[tuple[CompleteCallback, ErrorCallback]] = field(default_factory=list)

    @property
    def span(self) -> tuple[int, int]:
        return self.fragment.span

    @property
    def done(self) -> bool:
        return self.state.terminal

    def add_listener(self, on_complete: CompleteCallback, on_error: ErrorCallback) -> None:
        self._listeners.append((on_complete, on_error))

    async def wait(self) -> JobState:
        """Wait for the job to reach a terminal state and return it."""
        if self.task is not None and not self.task.done():
            await asyncio.wait({self.task})
        return self.state

    def cancel(self) -> bool:
        """Kill the compiler and release resources. Returns False if already done."""
        if self.done:
            return False
        self.state = JobState.CANCELLED
        self._kill()
        if self.task is not None and not self.task.done():
            self.task.cancel()
        self.release()
        self._listeners.clear()
        return True

    def release(self) -> None:
        """Remove the temporary input file and drop captured diagnostics."""
        if self.input_path is not None:
            self.input_path.unlink(missing_ok=True)
            self.input_path = None
        self.diagnostics = None

    def _kill(self) -> None:
        process = self.process
        if process is None or process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass

    def _succeed(self, path: Path) -> None:
        self.state = JobState.SUCCEEDED
        for on_complete, _ in self._drain_listeners():
            on_complete(path)

    def _fail(self, message: str, source: str) -> None:
        self.state = JobState.FAILED
        for _, on_error in self._drain_listeners():
            on_error(message, source)

    def _drain_listeners(self) -> Iterator[tuple[CompleteCallback, ErrorCallback]]:
        listeners, self._listeners = self._listeners, []
        yield from listeners


class JobRegistry:
    """Compile jobs in flight for one document, indexed by content key."""

    def __init__(self, *, max_jobs: int = 0) -> None:
        self.max_jobs = max_jobs
        self._jobs: dict[str, CompileJob] = {}
        self._semaphore: asyncio.Semaphore | None = None

    def __len__(self) -> int:
        return len(self._jobs)

    def __iter__(self) -> Iterator[CompileJob]:
        return iter(list(self._jobs.values()))

    def get(self, key: str) -> CompileJob | None:
        return self._jobs.get(key)

    def add(self, job: CompileJob) -> None:
        self._jobs[job.key] = job

    def discard(self, job: CompileJob) -> None:
        if self._jobs.get(job.key) is job:
            del self._jobs[job.key]

    @property
    def semaphore(self) -> asyncio.Semaphore | None:
        if self.max_jobs and self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_jobs)
        return self._semaphore

    def cancel_all(self) -> int:
        """Cancel every registered job and return how many were running."""
        cancelled = 0
        for job in list(self._jobs.values()):
            if job.cancel():
                cancelled += 1
            self.discard(job)
        return cancelled

    async def drain(self) -> None:
        """Wait until every registered job has finished."""
        while self._jobs:
            await asyncio.gather(*(job.wait() for job in list(self._jobs.values())))


def resolve_compiler(executable: str) -> str:
    """Return the full path of the compiler executable or raise ``SetupError``."""
    candidate = Path(executable).expanduser()
    if candidate.parent != Path(".") and candidate.is_file() and os.access(candidate, os.X_OK):
        return str(candidate)
    resolved = shutil.which(executable)
    if resolved:
        return resolved
    raise SetupError(f"Typst compiler '{executable}' was not found on PATH.")


class CompileDispatcher:
    """Turn fragments into artifacts through the cache or the external compiler."""

    def __init__(
        self,
        config: PreviewConfig,
        cache: CompilationCache,
        *,
        emitter: DiagnosticEmitter | None = None,
        executable: str | None = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.emitter = emitter or NullEmitter()
        self.executable = executable or config.compiler

    def compose_source(self, fragment: Fragment, context: GlobalContext) -> str:
        return self.config.preamble + context.text + fragment.source_text

    def key_for(self, fragment: Fragment, context: GlobalContext) -> str:
        return self.cache.make_key(self.compose_source(fragment, context))

    def submit(
        self,
        fragment: Fragment,
        context: GlobalContext,
        *,
        registry: JobRegistry,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
    ) -> CompileJob:
        """Request an artifact for ``fragment``.

        Cache hits call ``on_complete`` before returning. A request whose key is
        already being compiled for the same registry joins the running job.
        Must be called from within a running event loop.
        """
        source = self.compose_source(fragment, context)
        key = self.cache.make_key(source)
        job = CompileJob(
            fragment=fragment,
            context=context,
            key=key,
            source=source,
            artifact=self.cache.path_for(key),
        )

        cached = self.cache.lookup(key)
        if cached is not None:
            self.emitter.event("compile_cached", {"key": key, "path": str(cached)})
            job.add_listener(on_complete, on_error)
            job._succeed(cached)
            return job

        running = registry.get(key)
        if running is not None and not running.done:
            running.add_listener(on_complete, on_error)
            return running

        job.add_listener(on_complete, on_error)
        registry.add(job)
        job.task = asyncio.get_running_loop().create_task(self._run(job, registry))
        return job

    async def _run(self, job: CompileJob, registry: JobRegistry) -> None:
        try:
            semaphore = registry.semaphore
            if semaphore is None:
                path = await self._execute(job)
            else:
                async with semaphore:
                    path = await self._execute(job)
        except asyncio.CancelledError:
            job.state = JobState.CANCELLED
            job._kill()
            raise
        except CompileFailure as exc:
            self.emitter.event(
                "compile_failed",
                {"key": job.key, "fragment": job.fragment.source_text, "reason": exc.reason},
            )
            job._fail(str(exc), exc.source or job.source)
            return
        finally:
            job.release()
            registry.discard(job)

        self.emitter.event("compile_finished", {"key": job.key, "path": str(path)})
        job._succeed(path)

    async def _execute(self, job: CompileJob) -> Path:
        try:
            self.cache.ensure()
            fd, name = tempfile.mkstemp(prefix="typsmith-", suffix=".typ")
            job.input_path = Path(name)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(job.source)
        except OSError as exc:
            raise CompileFailure(
                f"Unable to prepare compiler input: {exc}", job.source, reason="io error"
            ) from exc

        command = [self.executable, *self._expand_args(job.input_path, job.artifact)]
        job.state = JobState.RUNNING
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            raise SpawnFailure(
                f"Failed to start {self.executable}: {exc}", job.source, reason="spawn failed"
            ) from exc

        job.process = process
        self.emitter.event(
            "compile_started", {"key": job.key, "fragment": job.fragment.source_text}
        )
        _log.debug("spawned %s for %s", command, job.key)

        try:
            if self.config.timeout is None:
                _, stderr = await process.communicate()
            else:
                _, stderr = await asyncio.wait_for(
                    process.communicate(), timeout=self.config.timeout
                )
        except asyncio.TimeoutError as exc:
            job._kill()
            await process.wait()
            raise CompileFailure(
                f"{self.executable} timed out after {self.config.timeout:g}s",
                job.source,
                reason="timeout",
            ) from exc

        job.diagnostics = stderr
        if job.artifact.is_file():
            return job.artifact

        detail = (stderr or b"").decode("utf-8", errors="replace").strip()
        message = f"{self.executable} exited with status {process.returncode} without output"
        if detail:
            message = f"{message}\n{detail}"
        raise CompileFailure(message, job.source, reason=f"exit status {process.returncode}")

    def _expand_args(self, input_path: Path, output_path: Path) -> list[str]:
        return [
            arg.replace("{input}", str(input_path)).replace("{output}", str(output_path))
            for arg in self.config.compiler_args
        ]


__all__ = [
    "CompileDispatcher",
    "CompileJob",
    "JobRegistry",
    "JobState",
    "resolve_compiler",
]
