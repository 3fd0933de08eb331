"""Pydantic v2 models for the Codex ``exec --json`` event stream.

Codex writes one JSON object per line.  Every object carries a string
``type``; the ones we understand are modelled here as a discriminated
union.  Anything else lands in :class:`UnknownEvent` / :class:`UnknownItem`
with all of its fields preserved, so a newer Codex release never breaks
parsing.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Tag,
    TypeAdapter,
    ValidationError,
)

logger = logging.getLogger(__name__)


class _StreamModel(BaseModel):
    """Common config: keep unknown keys so events round-trip unchanged."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Return the record as it arrived on the wire."""
        data = self.model_dump(mode="json", exclude_unset=True)
        if "type" in type(self).model_fields:
            data = {"type": getattr(self, "type"), **data}
        return data


# --------------------------------------------------------------------------- #
# Items
# --------------------------------------------------------------------------- #


class ReasoningItem(_StreamModel):
    type: Literal["reasoning"] = "reasoning"
    id: str | None = None
    text: str | None = None


class CommandExecutionItem(_StreamModel):
    type: Literal["command_execution"] = "command_execution"
    id: str | None = None
    command: str | None = None
    aggregated_output: str | None = None
    exit_code: int | None = None
    status: str | None = None


class AgentMessageItem(_StreamModel):
    type: Literal["agent_message"] = "agent_message"
    id: str | None = None
    text: str | None = None


class FileCreateItem(_StreamModel):
    type: Literal["file_create"] = "file_create"
    id: str | None = None


class FileEditItem(_StreamModel):
    type: Literal["file_edit"] = "file_edit"
    id: str | None = None


class UnknownItem(_StreamModel):
    """Any item kind this version does not model."""

    type: str = "unknown"
    id: str | None = None


_ITEM_TAGS = frozenset(
    {"reasoning", "command_execution", "agent_message", "file_create", "file_edit"}
)


def _item_discriminator(v: Any) -> str:
    tag = v.get("type") if isinstance(v, dict) else getattr(v, "type", None)
    return tag if isinstance(tag, str) and tag in _ITEM_TAGS else "unknown"


CodexItem = Annotated[
    Annotated[ReasoningItem, Tag("reasoning")]
    | Annotated[CommandExecutionItem, Tag("command_execution")]
    | Annotated[AgentMessageItem, Tag("agent_message")]
    | Annotated[FileCreateItem, Tag("file_create")]
    | Annotated[FileEditItem, Tag("file_edit")]
    | Annotated[UnknownItem, Tag("unknown")],
    Discriminator(_item_discriminator),
]
"""Discriminated union of item kinds carried by item events."""


# --------------------------------------------------------------------------- #
# Events
# --------------------------------------------------------------------------- #


class Usage(_StreamModel):
    input_tokens: int | None = None
    output_tokens: int | None = None
    cached_input_tokens: int | None = None


class ThreadStartedEvent(_StreamModel):
    type: Literal["thread.started"] = "thread.started"
    thread_id: str | None = None


class TurnStartedEvent(_StreamModel):
    type: Literal["turn.started"] = "turn.started"


class TurnCompletedEvent(_StreamModel):
    type: Literal["turn.completed"] = "turn.completed"
    usage: Usage | None = None


class TurnFailedEvent(_StreamModel):
    type: Literal["turn.failed"] = "turn.failed"
    error: dict[str, Any] | str | None = None

    @property
    def error_message(self) -> str:
        if isinstance(self.error, dict):
            return str(self.error.get("message", ""))
        return self.error or ""


class StreamErrorEvent(_StreamModel):
    """Top-level ``error`` record."""

    type: Literal["error"] = "error"
    message: str | None = None


class ItemStartedEvent(_StreamModel):
    type: Literal["item.started"] = "item.started"
    item: CodexItem


class ItemCompletedEvent(_StreamModel):
    type: Literal["item.completed"] = "item.completed"
    item: CodexItem


class UnknownEvent(_StreamModel):
    """Any event kind this version does not model (or could not validate)."""

    type: str = "unknown"


_EVENT_TAGS = frozenset(
    {
        "thread.started",
        "turn.started",
        "turn.completed",
        "turn.failed",
        "error",
        "item.started",
        "item.completed",
    }
)


def _event_discriminator(v: Any) -> str:
    tag = v.get("type") if isinstance(v, dict) else getattr(v, "type", None)
    return tag if isinstance(tag, str) and tag in _EVENT_TAGS else "unknown"


CodexEvent = Annotated[
    Annotated[ThreadStartedEvent, Tag("thread.started")]
    | Annotated[TurnStartedEvent, Tag("turn.started")]
    | Annotated[TurnCompletedEvent, Tag("turn.completed")]
    | Annotated[TurnFailedEvent, Tag("turn.failed")]
    | Annotated[StreamErrorEvent, Tag("error")]
    | Annotated[ItemStartedEvent, Tag("item.started")]
    | Annotated[ItemCompletedEvent, Tag("item.completed")]
    | Annotated[UnknownEvent, Tag("unknown")],
    Discriminator(_event_discriminator),
]
"""Discriminated union of all Codex stream events."""

_EVENT_ADAPTER: TypeAdapter[CodexEvent] = TypeAdapter(CodexEvent)


def parse_event(data: Any) -> CodexEvent:
    """Turn one decoded JSON value into a typed event.

    Never raises: a non-object becomes an ``UnknownEvent`` wrapping the
    value, and a known kind whose payload does not validate degrades to an
    ``UnknownEvent`` that keeps every original field.
    """
    if not isinstance(data, dict):
        return UnknownEvent(type="unknown", value=data)

    try:
        return _EVENT_ADAPTER.validate_python(data)
    except ValidationError as exc:
        logger.debug("event %r did not validate, keeping raw: %s", data.get("type"), exc)

    tag = data.get("type")
    fields = {k: v for k, v in data.items() if k != "type"}
    return UnknownEvent(type=tag if isinstance(tag, str) and tag else "unknown", **fields)
