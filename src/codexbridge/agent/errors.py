"""Exceptions raised by the Codex tool, and spawn-failure translation."""

from __future__ import annotations

import errno


class CodexError(Exception):
    """Base class for Codex tool errors."""


class CodexSpawnError(CodexError):
    """The Codex process could not be started."""


class CodexNotFoundError(CodexSpawnError):
    """The Codex executable is not installed or not on ``PATH``."""


class CodexPermissionError(CodexSpawnError):
    """The Codex executable exists but may not be executed."""


def translate_spawn_error(exc: OSError) -> CodexSpawnError:
    """Map an OS-level spawn failure to an actionable domain error."""
    if isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT:
        return CodexNotFoundError(
            "Codex CLI not found. Install with: npm install -g @openai/codex"
        )
    if isinstance(exc, PermissionError) or exc.errno == errno.EACCES:
        return CodexPermissionError(f"Permission denied running Codex CLI: {exc}")
    return CodexSpawnError(f"Failed to spawn Codex: {exc}")


def format_stderr_preview(stderr_text: str, max_lines: int = 5) -> str:
    """Extract and format the last N non-empty lines from stderr output."""
    lines = [line for line in stderr_text.split("\n") if line.strip()]
    last = lines[-max_lines:] if len(lines) > max_lines else lines
    return "\n  ".join(last)
