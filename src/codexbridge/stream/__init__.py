"""Codex JSONL stream — line reassembly, event models and classification."""

from codexbridge.stream.classifier import EventClassifier, OperationState
from codexbridge.stream.display import format_event_for_display
from codexbridge.stream.events import (
    AgentMessageItem,
    CodexEvent,
    CodexItem,
    CommandExecutionItem,
    FileCreateItem,
    FileEditItem,
    ItemCompletedEvent,
    ItemStartedEvent,
    ReasoningItem,
    StreamErrorEvent,
    ThreadStartedEvent,
    TurnCompletedEvent,
    TurnFailedEvent,
    TurnStartedEvent,
    UnknownEvent,
    UnknownItem,
    Usage,
    parse_event,
)
from codexbridge.stream.lines import LineReassembler, split_lines

__all__ = [
    "AgentMessageItem",
    "CodexEvent",
    "CodexItem",
    "CommandExecutionItem",
    "EventClassifier",
    "FileCreateItem",
    "FileEditItem",
    "ItemCompletedEvent",
    "ItemStartedEvent",
    "LineReassembler",
    "OperationState",
    "ReasoningItem",
    "StreamErrorEvent",
    "ThreadStartedEvent",
    "TurnCompletedEvent",
    "TurnFailedEvent",
    "TurnStartedEvent",
    "UnknownEvent",
    "UnknownItem",
    "Usage",
    "format_event_for_display",
    "parse_event",
    "split_lines",
]
