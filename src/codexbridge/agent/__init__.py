"""Codex tool runtime — subprocess lifecycle, outcomes and rendering."""

from codexbridge.agent.codex_tool import (
    CodexParams,
    CodexRun,
    CodexTool,
    RunState,
    build_codex_args,
    build_codex_env,
)
from codexbridge.agent.errors import (
    CodexError,
    CodexNotFoundError,
    CodexPermissionError,
    CodexSpawnError,
    translate_spawn_error,
)
from codexbridge.agent.outcome import (
    Aborted,
    CodexDetails,
    CodexToolResult,
    Failed,
    Outcome,
    Succeeded,
    TextContent,
    build_result,
    synthesize_outcome,
)
from codexbridge.agent.rendering import render_call, render_result

__all__ = [
    "Aborted",
    "CodexDetails",
    "CodexError",
    "CodexNotFoundError",
    "CodexParams",
    "CodexPermissionError",
    "CodexRun",
    "CodexSpawnError",
    "CodexTool",
    "CodexToolResult",
    "Failed",
    "Outcome",
    "RunState",
    "Succeeded",
    "TextContent",
    "build_codex_args",
    "build_codex_env",
    "build_result",
    "render_call",
    "render_result",
    "synthesize_outcome",
    "translate_spawn_error",
]
