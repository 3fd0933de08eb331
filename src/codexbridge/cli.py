"""Root CLI group and version flag."""

import signal

import click

# Ensure SIGPIPE doesn't kill the process when stdout is piped into
# something that exits early (e.g. `codexbridge run ... | head`).
if hasattr(signal, "SIGPIPE"):
    signal.signal(signal.SIGPIPE, signal.SIG_IGN)

from codexbridge import __version__
from codexbridge.commands.auth import auth
from codexbridge.commands.init import init
from codexbridge.commands.run import run


@click.group()
@click.version_option(version=__version__, prog_name="codexbridge")
def cli() -> None:
    """codexbridge — drive the Codex CLI as a streaming, cancellable tool."""


cli.add_command(init)
cli.add_command(run)
cli.add_command(auth)
