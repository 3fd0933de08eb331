"""One-line, human-readable renderings of stream events."""

from __future__ import annotations

from codexbridge.stream.events import (
    AgentMessageItem,
    CodexEvent,
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
)

#: Output longer than this is cut down to a preview.
OUTPUT_PREVIEW_CHARS = 50


def truncate(text: str, limit: int) -> str:
    """Cut *text* to *limit* characters, ending in ``...`` when shortened."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def format_event_for_display(event: CodexEvent) -> str:
    """Render *event* as a single status line."""
    match event:
        case ThreadStartedEvent():
            return "[starting]"
        case TurnStartedEvent():
            return "[turn started]"
        case TurnCompletedEvent():
            tokens = (event.usage.output_tokens if event.usage else None) or 0
            return f"[turn completed: {tokens} tokens]"
        case TurnFailedEvent():
            return f"[turn failed: {event.error_message}]"
        case StreamErrorEvent():
            return f"[error: {event.message or ''}]"
        case ItemStartedEvent(item=CommandExecutionItem() as item):
            return f"-> Running: {item.command or '(command)'}"
        case ItemStartedEvent():
            return f"-> {event.item.type}"
        case ItemCompletedEvent():
            return _format_completed_item(event)
        case _:
            return f"[{event.type}]"


def _format_completed_item(event: ItemCompletedEvent) -> str:
    item = event.item
    match item:
        case ReasoningItem():
            return f"[thinking] {item.text or ''}"
        case CommandExecutionItem():
            preview = truncate(item.aggregated_output or "", OUTPUT_PREVIEW_CHARS)
            status = "[ok]" if item.exit_code == 0 else f"[exit {item.exit_code}]"
            return f"{status} {preview.strip()}"
        case AgentMessageItem():
            return f"[message] {item.text or ''}"
        case FileCreateItem() | FileEditItem():
            return f"[file] {item.type}"
        case _:
            return f"[{item.type}]"
