from __future__ import annotations

import logging

import click
import pytest

from typsmith.core.diagnostics import LoggingEmitter, NullEmitter, format_event_message
from typsmith.core.exceptions import (
    CompileFailure,
    SpawnFailure,
    exception_hint,
    exception_messages,
)
from typsmith.ui.cli.diagnostics import CliEmitter
from typsmith.ui.cli.state import CLIState, debug_enabled, get_cli_state, set_cli_state


def _raise_spawn_failure() -> None:
    raise OSError("No such file or directory: 'typst'")


def _raise_nested_failure() -> None:
    try:
        _raise_spawn_failure()
    except OSError as exc:
        raise SpawnFailure("Failed to start typst", "$a$", reason="spawn failed") from exc


def test_null_emitter_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    emitter = NullEmitter()
    with caplog.at_level(logging.WARNING):
        emitter.warning("nothing to see")
        emitter.error("still quiet")
    assert not caplog.records
    emitter.event("ignored", {"value": 1})
    assert emitter.debug_enabled is False


def test_logging_emitter_logs_messages(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(debug_enabled=True)
    with caplog.at_level(logging.ERROR):
        emitter.error("boom")
    assert any(record.message == "boom" for record in caplog.records)
    assert emitter.debug_enabled is True


def test_logging_emitter_summarises_known_events(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter()
    with caplog.at_level(logging.DEBUG, logger="typsmith.core.diagnostics"):
        emitter.event("jobs_cancelled", {"count": 2})
        emitter.event("result_stale", {"span": (0, 3)})
        emitter.event("custom", {"flag": True})
    messages = [record.getMessage() for record in caplog.records]
    assert "Cancelled 2 running compile job(s)" in messages
    assert "Discarded outdated render at 0-3" in messages
    assert any(message.startswith("diagnostic event custom") for message in messages)


def test_format_event_message() -> None:
    assert format_event_message("compile_cached", {"key": "0123456789abcdef"}) == (
        "Reusing cached fragment 0123456789ab"
    )
    assert format_event_message("compile_started", {"fragment": "$x^2$"}) == "Compiling: $x^2$"
    assert format_event_message(
        "compile_failed", {"fragment": "$a$", "reason": "exit status 1"}
    ) == ("Fragment failed to compile: $a$ (exit status 1)")
    assert format_event_message("result_stale", {}) == "Discarded outdated render"
    assert format_event_message("unknown", {}) is None


def test_cli_emitter_bridges_state(capsys: pytest.CaptureFixture[str]) -> None:
    state = CLIState(verbosity=1, recorded=frozenset({"custom"}))
    emitter = CliEmitter(state=state)

    emitter.warning("Heads up", exc=None)
    emitter.error("Boom", exc=None)
    emitter.event("custom", {"flag": True})

    captured = capsys.readouterr()
    combined_output = f"{captured.out}\n{captured.err}"
    assert "Heads up" in combined_output
    assert "Boom" in combined_output
    assert state.consume_events("custom") == [{"flag": True}]
    assert state.consume_events("custom") == []


def test_cli_emitter_records_failures_when_quiet(capsys: pytest.CaptureFixture[str]) -> None:
    state = CLIState()
    emitter = CliEmitter(state=state)

    emitter.event("compile_started", {"fragment": "$a$"})
    emitter.event("compile_failed", {"fragment": "$a$", "reason": "exit status 1"})

    assert "Compiling" not in capsys.readouterr().out
    assert state.consume_events("compile_failed") == [
        {"fragment": "$a$", "reason": "exit status 1"}
    ]
    assert state.events == {}


def test_state_without_recorded_events_retains_nothing() -> None:
    state = CLIState(recorded=frozenset())
    emitter = CliEmitter(state=state)

    for _ in range(100):
        emitter.event("compile_finished", {"path": "a.svg"})
        emitter.event("compile_failed", {"fragment": "$a$"})

    assert state.events == {}


def test_cli_state_follows_click_context() -> None:
    ctx = click.Context(click.Command("render"))
    state = set_cli_state(ctx=ctx, verbosity=2, debug=True)

    assert ctx.obj is state
    assert get_cli_state(ctx) is state
    assert state.verbosity == 2
    assert debug_enabled() is True

    fresh = set_cli_state(ctx=click.Context(click.Command("render")), debug=False)
    assert fresh is not state
    assert debug_enabled() is False


def test_exception_messages_follow_causes() -> None:
    try:
        _raise_nested_failure()
    except CompileFailure as error:
        assert error.source == "$a$"
        assert error.reason == "spawn failed"
        assert exception_messages(error) == [
            "Failed to start typst",
            "No such file or directory: 'typst'",
        ]
        assert exception_hint(error) == "No such file or directory: 'typst'"
