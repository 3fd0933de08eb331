"""Shared constants and type aliases for codexbridge."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from codexbridge.agent.outcome import CodexToolResult

#: Name of the external command-line agent.
CODEX_EXECUTABLE = "codex"

#: Progress callback; may be a plain function or a coroutine function.
UpdateCallback = Callable[["CodexToolResult"], Awaitable[None] | None]
