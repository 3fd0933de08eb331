"""Tests for line reassembly, event parsing, classification and display."""

from __future__ import annotations

import json
import logging

import pytest

from codexbridge.stream import (
    AgentMessageItem,
    CommandExecutionItem,
    EventClassifier,
    ItemCompletedEvent,
    ItemStartedEvent,
    LineReassembler,
    OperationState,
    ThreadStartedEvent,
    TurnCompletedEvent,
    TurnFailedEvent,
    UnknownEvent,
    UnknownItem,
    format_event_for_display,
    parse_event,
    split_lines,
)
from codexbridge.stream.display import truncate

# ------------------------------------------------------------------ #
# Line reassembly
# ------------------------------------------------------------------ #


class TestSplitLines:
    def test_complete_and_leftover(self) -> None:
        lines, rest = split_lines(b"", b"one\ntwo\nthr")
        assert lines == ["one", "two"]
        assert rest == b"thr"

    def test_crlf_stripped(self) -> None:
        lines, rest = split_lines(b"", b"a\r\nb\r\n")
        assert lines == ["a", "b"]
        assert rest == b""

    def test_leftover_prepended(self) -> None:
        lines, rest = split_lines(b"hel", b"lo\n")
        assert lines == ["hello"]
        assert rest == b""

    def test_blank_lines_kept(self) -> None:
        lines, _ = split_lines(b"", b"\n\nx\n")
        assert lines == ["", "", "x"]


class TestLineReassembler:
    STREAM = (
        '{"type":"thread.started","thread_id":"t1"}\n'
        '{"type":"item.completed","item":{"type":"agent_message","text":"héllo ✓ 日本"}}\n'
        "tail"
    ).encode()

    def _collect(self, sizes: list[int]) -> list[str]:
        reassembler = LineReassembler()
        out: list[str] = []
        pos = 0
        for size in sizes:
            out.extend(reassembler.feed(self.STREAM[pos : pos + size]))
            pos += size
        out.extend(reassembler.feed(self.STREAM[pos:]))
        out.extend(reassembler.flush())
        return out

    @pytest.mark.parametrize("size", [1, 2, 3, 7, 64])
    def test_chunking_does_not_change_lines(self, size: int) -> None:
        whole = self._collect([len(self.STREAM)])
        chunks = [size] * (len(self.STREAM) // size)
        assert self._collect(chunks) == whole

    def test_multibyte_split_across_chunks(self) -> None:
        reassembler = LineReassembler()
        data = "✓\n".encode()
        assert reassembler.feed(data[:1]) == []
        assert reassembler.feed(data[1:2]) == []
        assert reassembler.feed(data[2:]) == ["✓"]

    def test_trailing_fragment_flushed(self) -> None:
        reassembler = LineReassembler()
        assert reassembler.feed(b"a\nb") == ["a"]
        assert reassembler.pending == b"b"
        assert reassembler.flush() == ["b"]
        assert reassembler.flush() == []


# ------------------------------------------------------------------ #
# Event parsing
# ------------------------------------------------------------------ #


class TestParseEvent:
    def test_thread_started(self) -> None:
        event = parse_event({"type": "thread.started", "thread_id": "abc"})
        assert isinstance(event, ThreadStartedEvent)
        assert event.thread_id == "abc"

    def test_item_kinds(self) -> None:
        event = parse_event(
            {"type": "item.started", "item": {"type": "command_execution", "command": "ls"}}
        )
        assert isinstance(event, ItemStartedEvent)
        assert isinstance(event.item, CommandExecutionItem)
        assert event.item.command == "ls"

    def test_unknown_item_preserved(self) -> None:
        event = parse_event(
            {"type": "item.completed", "item": {"type": "web_search", "query": "x"}}
        )
        assert isinstance(event, ItemCompletedEvent)
        assert isinstance(event.item, UnknownItem)
        assert event.item.type == "web_search"
        assert event.item.to_dict() == {"type": "web_search", "query": "x"}

    def test_unknown_event_preserved(self) -> None:
        raw = {"type": "session.configured", "model": "o3", "extra": [1, 2]}
        event = parse_event(raw)
        assert isinstance(event, UnknownEvent)
        assert event.type == "session.configured"
        assert event.to_dict() == raw

    def test_known_event_keeps_extra_fields(self) -> None:
        raw = {"type": "thread.started", "thread_id": "t", "new_field": True}
        assert parse_event(raw).to_dict() == raw

    def test_invalid_known_event_degrades(self) -> None:
        event = parse_event({"type": "item.completed", "item": "not-an-object"})
        assert isinstance(event, UnknownEvent)
        assert event.type == "item.completed"

    def test_missing_type(self) -> None:
        event = parse_event({"hello": "world"})
        assert isinstance(event, UnknownEvent)
        assert event.type == "unknown"

    def test_non_object(self) -> None:
        event = parse_event([1, 2, 3])
        assert isinstance(event, UnknownEvent)
        assert event.to_dict() == {"type": "unknown", "value": [1, 2, 3]}

    def test_turn_failed_message(self) -> None:
        event = parse_event({"type": "turn.failed", "error": {"message": "quota"}})
        assert isinstance(event, TurnFailedEvent)
        assert event.error_message == "quota"


# ------------------------------------------------------------------ #
# Classification
# ------------------------------------------------------------------ #


def _line(data: dict[str, object]) -> str:
    return json.dumps(data)


class TestEventClassifier:
    def test_appends_in_order(self) -> None:
        state = OperationState()
        classifier = EventClassifier(state)
        classifier.classify(_line({"type": "thread.started"}))
        classifier.classify(_line({"type": "turn.started"}))
        assert [e.type for e in state.events] == ["thread.started", "turn.started"]

    def test_blank_and_malformed_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        state = OperationState()
        classifier = EventClassifier(state)
        with caplog.at_level(logging.WARNING):
            assert classifier.classify("   ") is None
            assert classifier.classify("{not json") is None
        assert state.events == []
        assert "malformed JSON" in caplog.text

    def test_deeply_nested_json_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        state = OperationState()
        classifier = EventClassifier(state)
        with caplog.at_level(logging.WARNING):
            assert classifier.classify("[" * 100_000) is None
        assert state.events == []
        assert "malformed JSON" in caplog.text

    def test_oversized_line_skipped(self) -> None:
        state = OperationState()
        classifier = EventClassifier(state, max_line_bytes=32)
        big = _line({"type": "item.completed", "item": {"type": "reasoning", "text": "x" * 100}})
        assert classifier.classify(big) is None
        assert state.events == []

    def test_last_agent_message_wins(self) -> None:
        state = OperationState()
        classifier = EventClassifier(state)
        for text in ("first", "second"):
            classifier.classify(
                _line({"type": "item.completed", "item": {"type": "agent_message", "text": text}})
            )
        assert state.last_message == "second"

    def test_empty_agent_message_ignored(self) -> None:
        state = OperationState(last_message="kept")
        classifier = EventClassifier(state)
        classifier.classify(
            _line({"type": "item.completed", "item": {"type": "agent_message", "text": ""}})
        )
        assert state.last_message == "kept"

    def test_snapshot_is_a_copy(self) -> None:
        state = OperationState()
        EventClassifier(state).classify(_line({"type": "turn.started"}))
        snap = state.snapshot()
        snap.clear()
        assert len(state.events) == 1


# ------------------------------------------------------------------ #
# Display
# ------------------------------------------------------------------ #


class TestDisplay:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ({"type": "thread.started"}, "[starting]"),
            ({"type": "turn.started"}, "[turn started]"),
            (
                {"type": "turn.completed", "usage": {"output_tokens": 42}},
                "[turn completed: 42 tokens]",
            ),
            ({"type": "turn.completed"}, "[turn completed: 0 tokens]"),
            ({"type": "turn.failed", "error": {"message": "nope"}}, "[turn failed: nope]"),
            ({"type": "error", "message": "bad"}, "[error: bad]"),
            (
                {"type": "item.started", "item": {"type": "command_execution", "command": "ls -la"}},
                "-> Running: ls -la",
            ),
            (
                {"type": "item.started", "item": {"type": "reasoning"}},
                "-> reasoning",
            ),
            (
                {"type": "item.completed", "item": {"type": "reasoning", "text": "hmm"}},
                "[thinking] hmm",
            ),
            (
                {"type": "item.completed", "item": {"type": "agent_message", "text": "hi"}},
                "[message] hi",
            ),
            (
                {"type": "item.completed", "item": {"type": "file_edit"}},
                "[file] file_edit",
            ),
            (
                {"type": "item.completed", "item": {"type": "mcp_tool_call"}},
                "[mcp_tool_call]",
            ),
            ({"type": "something.new"}, "[something.new]"),
        ],
    )
    def test_format(self, raw: dict[str, object], expected: str) -> None:
        assert format_event_for_display(parse_event(raw)) == expected

    def test_command_result_preview(self) -> None:
        event = parse_event(
            {
                "type": "item.completed",
                "item": {
                    "type": "command_execution",
                    "aggregated_output": "a" * 80,
                    "exit_code": 0,
                },
            }
        )
        line = format_event_for_display(event)
        assert line.startswith("[ok] ")
        assert line.endswith("...")
        assert len(line) == len("[ok] ") + 50

    def test_command_failure(self) -> None:
        event = parse_event(
            {
                "type": "item.completed",
                "item": {"type": "command_execution", "aggregated_output": "err", "exit_code": 2},
            }
        )
        assert format_event_for_display(event) == "[exit 2] err"

    def test_turn_completed_type(self) -> None:
        assert isinstance(parse_event({"type": "turn.completed"}), TurnCompletedEvent)

    def test_truncate(self) -> None:
        assert truncate("short", 10) == "short"
        assert truncate("abcdefghijk", 8) == "abcde..."


def test_agent_message_item_type() -> None:
    event = parse_event({"type": "item.completed", "item": {"type": "agent_message", "text": "x"}})
    assert isinstance(event, ItemCompletedEvent)
    assert isinstance(event.item, AgentMessageItem)
