"""Terminal renderings of a Codex tool call and its (partial) result."""

from __future__ import annotations

import click

from codexbridge.agent.codex_tool import CodexParams
from codexbridge.agent.outcome import CodexToolResult
from codexbridge.stream.display import format_event_for_display, truncate

#: Prompt preview length in the call header.
_PROMPT_PREVIEW_CHARS = 80

#: Message preview length in the collapsed result.
_MESSAGE_PREVIEW_CHARS = 200


def render_call(params: CodexParams) -> str:
    """Header shown when the tool is invoked."""
    model = f" ({params.model})" if params.model else ""
    sandbox = f" [{params.sandbox.value}]" if params.sandbox else " [read-only]"
    prompt = truncate(params.prompt, _PROMPT_PREVIEW_CHARS)
    return (
        click.style("codex", bold=True)
        + click.style(model + sandbox, dim=True)
        + "\n"
        + click.style(prompt, fg="bright_black")
    )


def render_result(result: CodexToolResult, expanded: bool = False) -> str:
    """Render a progress update or the final result."""
    details = result.details

    if details.streaming:
        count = len(details.events)
        status = format_event_for_display(details.events[-1]) if details.events else "Starting..."
        return (
            click.style("[running] ", fg="yellow")
            + click.style(f"Codex ({count} events)", fg="bright_black")
            + "\n"
            + status
        )

    if details.error is not None:
        return click.style("[error] Codex: ", fg="red") + click.style(
            details.error or "Unknown error", fg="bright_black"
        )

    message = details.last_message or (result.content[0].text if result.content else "")
    if expanded:
        exit_code = details.exit_code if details.exit_code is not None else 0
        return (
            click.style("[ok] ", fg="green")
            + click.style(
                f"Codex completed (exit {exit_code}, {len(details.events)} events)",
                fg="bright_black",
            )
            + "\n\n"
            + message
        )

    return (
        click.style("[ok] ", fg="green")
        + click.style("Codex: ", fg="bright_black")
        + truncate(message, _MESSAGE_PREVIEW_CHARS)
    )
