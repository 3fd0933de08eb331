"""codexbridge run — execute one Codex task and stream its progress."""

from __future__ import annotations

import asyncio
import contextlib
import signal
from pathlib import Path

import click
from pydantic import ValidationError

from codexbridge.agent.codex_tool import CodexParams, CodexTool
from codexbridge.agent.errors import CodexSpawnError, format_stderr_preview
from codexbridge.agent.outcome import ABORTED, CodexToolResult
from codexbridge.agent.rendering import render_call, render_result
from codexbridge.cancellation import CancellationToken
from codexbridge.config.models import BridgeConfig, SandboxMode
from codexbridge.config.parser import ConfigError, load_config

#: Conventional exit status for "terminated by Ctrl+C".
EXIT_ABORTED = 130


@click.command()
@click.argument("prompt")
@click.option("-m", "--model", default=None, help="Model override for Codex.")
@click.option(
    "-s",
    "--sandbox",
    type=click.Choice([mode.value for mode in SandboxMode]),
    default=None,
    help="Sandbox mode (defaults to the configured one).",
)
@click.option(
    "-C",
    "--work-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Working directory for Codex.",
)
@click.option(
    "-f", "--file", "config_file", type=click.Path(), help="Config file path."
)
@click.option("--expanded", is_flag=True, help="Print the full final message.")
def run(
    prompt: str,
    model: str | None,
    sandbox: str | None,
    work_dir: str | None,
    config_file: str | None,
    expanded: bool,
) -> None:
    """Run PROMPT through Codex, printing one line per stream event."""
    try:
        config = load_config(Path(config_file) if config_file else None)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    try:
        params = CodexParams(
            prompt=prompt,
            model=model,
            sandbox=SandboxMode(sandbox) if sandbox else None,
            work_dir=work_dir,
        )
    except ValidationError as exc:
        messages = "; ".join(err["msg"] for err in exc.errors())
        click.echo(f"Error: invalid request: {messages}", err=True)
        raise SystemExit(2) from exc

    click.echo(render_call(params))

    try:
        result = asyncio.run(_run_tool(config, params))
    except CodexSpawnError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    if result.details.error == ABORTED:
        click.echo(render_result(result, expanded=expanded))
        raise SystemExit(EXIT_ABORTED)

    if result.is_error:
        error_msg = f"Codex exited with code {result.details.exit_code}."
        stderr_preview = format_stderr_preview(result.details.error or "")
        if stderr_preview:
            error_msg += f" Stderr:\n  {stderr_preview}"
        click.echo(error_msg, err=True)
        raise SystemExit(1)

    click.echo(render_result(result, expanded=expanded))


async def _run_tool(config: BridgeConfig, params: CodexParams) -> CodexToolResult:
    cancel = CancellationToken()
    loop = asyncio.get_running_loop()

    def _signal_cancel(sig_name: str) -> None:
        click.echo(f"\nReceived {sig_name}, stopping Codex...", err=True)
        cancel.cancel()

    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available off the main thread or on Windows event loops.
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(sig, _signal_cancel, sig.name)
            installed.append(sig)

    async def _on_update(update: CodexToolResult) -> None:
        click.echo(f"  {update.text}")

    tool = CodexTool(config.codex)
    try:
        return await tool.execute("cli", params, cancel=cancel, on_update=_on_update)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
