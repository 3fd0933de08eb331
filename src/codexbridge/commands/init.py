"""codexbridge init — write a starter codexbridge.yaml."""

from __future__ import annotations

from pathlib import Path

import click

from codexbridge.config.parser import DEFAULT_CONFIG_NAME

TEMPLATE_YAML = """\
# codexbridge configuration
version: "1"

codex:
  # Executable name or absolute path of the Codex CLI
  executable: codex
  # Sandbox used when a run does not pick one: read-only | workspace-write
  default_sandbox: read-only
  # Seconds between SIGTERM and SIGKILL when a run is cancelled
  kill_grace_seconds: 2.0
  # Remove ANTHROPIC/OPENAI/GOOGLE API keys so Codex uses its own login
  strip_api_keys: true
  # work_dir: /path/to/project

auth:
  # auth_json_path: ~/.codex/auth.json
  # Refresh the access token when it expires within this many seconds
  refresh_leeway_seconds: 120
  # Persist refreshed tokens back to auth_json_path
  write_back: true
"""


@click.command()
@click.option(
    "--force",
    is_flag=True,
    help=f"Overwrite existing {DEFAULT_CONFIG_NAME} if it exists.",
)
def init(force: bool) -> None:
    """Write a starter codexbridge.yaml in the current directory."""
    config_path = Path.cwd() / DEFAULT_CONFIG_NAME

    if config_path.exists() and not force:
        raise click.ClickException(
            f"{DEFAULT_CONFIG_NAME} already exists. Use --force to overwrite."
        )

    try:
        config_path.write_text(TEMPLATE_YAML, encoding="utf-8")
    except OSError as exc:
        raise click.ClickException(f"Cannot write {DEFAULT_CONFIG_NAME}: {exc}") from exc
    click.echo(f"  Created {DEFAULT_CONFIG_NAME}")

    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Log in to Codex with `codex login`")
    click.echo("  2. Check the login with `codexbridge auth status`")
    click.echo('  3. Run `codexbridge run "describe this repository"`')
