"""codexbridge auth — inspect and refresh the Codex CLI login."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import click

from codexbridge.auth.credentials import CodexCredentials, default_auth_path, load_credentials
from codexbridge.auth.jwt_claims import extract_account_id
from codexbridge.auth.refresh import CredentialRefreshError, get_codex_auth
from codexbridge.config.models import AuthConfig
from codexbridge.config.parser import ConfigError, load_config


def _format_duration(seconds: float) -> str:
    """Format a duration as '1h 05m', '1m 22s' or '34.2s'."""
    if seconds >= 3600:
        hours = int(seconds // 3600)
        minutes = int(seconds % 3600 // 60)
        return f"{hours}h {minutes:02d}m"
    if seconds >= 60:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs:02d}s"
    return f"{seconds:.1f}s"


def _auth_config(config_file: str | None, auth_file: Path | None) -> AuthConfig:
    try:
        config = load_config(Path(config_file) if config_file else None)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc
    if auth_file is None:
        return config.auth
    return config.auth.model_copy(update={"auth_json_path": auth_file})


def _describe(credentials: CodexCredentials, leeway_seconds: float) -> bool:
    """Print the credential summary and return whether it is valid."""
    now = datetime.now(tz=UTC)
    expires_at = credentials.expires_at
    if expires_at is None:
        click.echo("Access token expiry: unknown")
    elif expires_at > now:
        remaining = _format_duration((expires_at - now).total_seconds())
        click.echo(f"Access token expires: {expires_at.isoformat()} (in {remaining})")
    else:
        elapsed = _format_duration((now - expires_at).total_seconds())
        click.echo(f"Access token expired: {expires_at.isoformat()} ({elapsed} ago)")

    account_id = extract_account_id(credentials.access_token)
    if account_id:
        click.echo(f"Account: {account_id}")
    click.echo(f"Refresh token: {'present' if credentials.refresh_token else 'absent'}")

    valid = credentials.is_valid(leeway_seconds, now)
    if valid:
        click.echo(click.style("Status: valid", fg="green"))
    elif expires_at is None:
        click.echo(click.style("Status: unknown expiry (treated as invalid)", fg="yellow"))
    else:
        click.echo(click.style("Status: expired", fg="red"))
    return valid


@click.group()
def auth() -> None:
    """Inspect and refresh the Codex CLI login (~/.codex/auth.json)."""


@auth.command("status")
@click.option(
    "--auth-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Auth file to inspect (default: ~/.codex/auth.json).",
)
@click.option(
    "--leeway",
    type=float,
    default=0.0,
    show_default=True,
    help="Seconds the token must stay valid for.",
)
@click.option(
    "-f", "--file", "config_file", type=click.Path(), help="Config file path."
)
def status(auth_file: Path | None, leeway: float, config_file: str | None) -> None:
    """Show whether a usable Codex login exists. Never writes or refreshes."""
    auth_config = _auth_config(config_file, auth_file)
    path = auth_config.auth_json_path or default_auth_path()

    credentials = load_credentials(path)
    if credentials is None:
        click.echo(f"Not logged in (no usable token in {path}). Run `codex login`.")
        raise SystemExit(1)

    click.echo(f"Auth file: {path}")
    if not _describe(credentials, leeway):
        raise SystemExit(1)


@auth.command("refresh")
@click.option(
    "--auth-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Auth file to refresh (default: ~/.codex/auth.json).",
)
@click.option(
    "--no-write-back",
    is_flag=True,
    help="Refresh in memory only; leave the auth file untouched.",
)
@click.option(
    "-f", "--file", "config_file", type=click.Path(), help="Config file path."
)
def refresh(auth_file: Path | None, no_write_back: bool, config_file: str | None) -> None:
    """Refresh the access token if it is about to expire."""
    auth_config = _auth_config(config_file, auth_file)
    if no_write_back:
        auth_config = auth_config.model_copy(update={"write_back": False})
    path = auth_config.auth_json_path or default_auth_path()

    before = load_credentials(path)
    try:
        credentials = asyncio.run(get_codex_auth(auth_config))
    except CredentialRefreshError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    if credentials is None:
        click.echo(f"Not logged in (no usable token in {path}). Run `codex login`.")
        raise SystemExit(1)

    if before is not None and before.access_token == credentials.access_token:
        click.echo("Access token still fresh, no refresh needed.")
    elif auth_config.write_back:
        click.echo(f"Access token refreshed and saved to {path}.")
    else:
        click.echo("Access token refreshed (not saved).")
    _describe(credentials, 0.0)
