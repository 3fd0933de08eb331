"""Tests for outcome synthesis, result payloads and terminal rendering."""

from __future__ import annotations

import click

from codexbridge.agent.codex_tool import CodexParams
from codexbridge.agent.outcome import (
    ABORTED,
    Aborted,
    Failed,
    Succeeded,
    build_result,
    progress_result,
    synthesize_outcome,
)
from codexbridge.agent.rendering import render_call, render_result
from codexbridge.config.models import SandboxMode
from codexbridge.stream import OperationState, parse_event


def _state(message: str = "") -> OperationState:
    state = OperationState(last_message=message)
    state.events.append(parse_event({"type": "thread.started"}))
    return state


class TestSynthesizeOutcome:
    def test_success(self) -> None:
        assert synthesize_outcome(_state("hi"), 0, "", cancelled=False) == Succeeded("hi")

    def test_nonzero_exit(self) -> None:
        outcome = synthesize_outcome(_state("partial"), 3, "oops", cancelled=False)
        assert outcome == Failed(exit_code=3, stderr="oops", message="partial")

    def test_signal_exit_is_failure(self) -> None:
        outcome = synthesize_outcome(_state(), -15, "", cancelled=False)
        assert isinstance(outcome, Failed)
        assert outcome.exit_code == -15

    def test_unknown_exit_is_failure(self) -> None:
        outcome = synthesize_outcome(_state(), None, "", cancelled=False)
        assert isinstance(outcome, Failed)
        assert outcome.exit_code == -1

    def test_cancel_wins_over_exit_code(self) -> None:
        outcome = synthesize_outcome(_state("half"), 0, "", cancelled=True)
        assert outcome == Aborted(partial_message="half", exit_code=0)


class TestBuildResult:
    def test_success_text(self) -> None:
        result = build_result(Succeeded("done"), _state("done"))
        assert result.text == "done"
        assert not result.is_error
        assert result.details.exit_code == 0
        assert result.details.streaming is False
        assert len(result.details.events) == 1

    def test_success_without_message(self) -> None:
        result = build_result(Succeeded(""), _state())
        assert result.text == "(Codex completed with no message output)"

    def test_failure_text(self) -> None:
        result = build_result(Failed(exit_code=1, stderr="bad"), _state())
        assert result.text.startswith("Codex exited with code 1.")
        assert "Stderr:\nbad" in result.text
        assert result.details.error == "bad"

    def test_failure_without_stderr(self) -> None:
        result = build_result(Failed(exit_code=4), _state())
        assert result.details.error == "exit code 4"

    def test_aborted(self) -> None:
        result = build_result(Aborted(partial_message="so far"), _state("so far"))
        assert result.text == "Codex execution aborted.\n\nPartial output:\nso far"
        assert result.details.error == ABORTED

    def test_aborted_before_start(self) -> None:
        result = build_result(Aborted(before_start=True), _state())
        assert result.text == "Codex execution aborted before start."
        assert result.details.events == []
        assert result.details.exit_code is None

    def test_progress(self) -> None:
        state = _state()
        result = progress_result(state.events[-1], state)
        assert result.text == "[starting]"
        assert result.details.streaming is True
        assert result.details.exit_code is None
        assert result.details.events is not state.events


class TestRendering:
    def test_call_header(self) -> None:
        params = CodexParams(prompt="fix the bug", model="o3", sandbox=SandboxMode.WORKSPACE_WRITE)
        text = click.unstyle(render_call(params))
        assert text == "codex (o3) [workspace-write]\nfix the bug"

    def test_call_header_defaults_read_only(self) -> None:
        text = click.unstyle(render_call(CodexParams(prompt="x" * 200)))
        header, prompt = text.split("\n")
        assert header == "codex [read-only]"
        assert len(prompt) == 80

    def test_streaming(self) -> None:
        state = _state()
        text = click.unstyle(render_result(progress_result(state.events[-1], state)))
        assert text == "[running] Codex (1 events)\n[starting]"

    def test_error(self) -> None:
        result = build_result(Failed(exit_code=1, stderr="bad"), _state())
        assert click.unstyle(render_result(result)) == "[error] Codex: bad"

    def test_collapsed_success(self) -> None:
        result = build_result(Succeeded("m" * 300), _state("m" * 300))
        text = click.unstyle(render_result(result))
        assert text.startswith("[ok] Codex: ")
        assert text.endswith("...")

    def test_expanded_success(self) -> None:
        result = build_result(Succeeded("the answer"), _state("the answer"))
        text = click.unstyle(render_result(result, expanded=True))
        assert text == "[ok] Codex completed (exit 0, 1 events)\n\nthe answer"
