"""Turn reassembled stdout lines into typed events and running state."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

from codexbridge.stream.events import (
    AgentMessageItem,
    CodexEvent,
    ItemCompletedEvent,
    parse_event,
)

logger = logging.getLogger(__name__)

#: Maximum bytes per JSONL line from Codex stdout (1 MB).
MAX_LINE_BYTES = 1_048_576


@dataclass
class OperationState:
    """Everything accumulated while one Codex invocation runs."""

    events: list[CodexEvent] = field(default_factory=list)
    last_message: str = ""
    streaming: bool = True

    def snapshot(self) -> list[CodexEvent]:
        """Copy of the event list, safe to hand to callers."""
        return list(self.events)


class EventClassifier:
    """Parse lines into events, appending them to an :class:`OperationState`."""

    def __init__(
        self,
        state: OperationState,
        max_line_bytes: int = MAX_LINE_BYTES,
        label: str = "codex",
    ) -> None:
        self.state = state
        self._max_line_bytes = max_line_bytes
        self._label = label

    def classify(self, line: str) -> CodexEvent | None:
        """Classify one line.

        Returns the appended event, or ``None`` when the line was blank,
        oversized or not JSON.  Never raises for bad input.
        """
        text = line.strip()
        if not text:
            return None

        if len(text.encode("utf-8", errors="replace")) > self._max_line_bytes:
            logger.warning(
                "%s: stdout line exceeds %d bytes, skipping",
                self._label,
                self._max_line_bytes,
            )
            return None

        try:
            data = json.loads(text)
        except (json.JSONDecodeError, RecursionError):
            logger.warning("%s: malformed JSON from stdout: %s", self._label, text[:200])
            return None

        event = parse_event(data)
        self.state.events.append(event)

        if isinstance(event, ItemCompletedEvent) and isinstance(
            event.item, AgentMessageItem
        ):
            if event.item.text:
                self.state.last_message = event.item.text

        return event
