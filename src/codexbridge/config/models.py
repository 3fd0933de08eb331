"""Pydantic v2 models for codexbridge.yaml configuration."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

#: OAuth client id registered for the Codex CLI.
CODEX_CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"

#: OAuth token endpoint used by the Codex CLI.
CODEX_TOKEN_URL = "https://auth.openai.com/oauth/token"

#: Refresh the access token when it expires within this many seconds.
DEFAULT_REFRESH_LEEWAY_SECONDS = 120.0

#: Seconds between SIGTERM and SIGKILL when a run is cancelled.
DEFAULT_KILL_GRACE_SECONDS = 2.0


class SandboxMode(str, Enum):
    """Execution-permission level, in Codex's own sandbox vocabulary."""

    READ_ONLY = "read-only"
    WORKSPACE_WRITE = "workspace-write"


class CodexConfig(BaseModel):
    """How the Codex subprocess is launched and supervised."""

    model_config = ConfigDict(extra="forbid")

    executable: str = Field(
        default="codex",
        description="Codex executable name or path",
    )
    default_sandbox: SandboxMode = Field(
        default=SandboxMode.READ_ONLY,
        description="Sandbox used when a request does not choose one",
    )
    kill_grace_seconds: float = Field(
        default=DEFAULT_KILL_GRACE_SECONDS,
        gt=0,
        description="Seconds to wait after SIGTERM before SIGKILL",
    )
    max_line_bytes: int = Field(
        default=1_048_576,
        gt=0,
        description="Stream lines longer than this are dropped",
    )
    strip_api_keys: bool = Field(
        default=True,
        description="Remove provider API keys from the subprocess environment",
    )
    work_dir: str | None = Field(
        default=None,
        description="Default working directory (defaults to the current one)",
    )

    @field_validator("executable")
    @classmethod
    def _executable_not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "executable must not be empty"
            raise ValueError(msg)
        return value


class AuthConfig(BaseModel):
    """Where the Codex credential file lives and how it is refreshed."""

    model_config = ConfigDict(extra="forbid")

    auth_json_path: Path | None = Field(
        default=None,
        description="Codex auth file (defaults to ~/.codex/auth.json)",
    )
    refresh_leeway_seconds: float = Field(
        default=DEFAULT_REFRESH_LEEWAY_SECONDS,
        ge=0,
        description="Refresh when the access token expires within this window",
    )
    client_id: str = Field(
        default=CODEX_CLIENT_ID,
        description="OAuth client id",
    )
    token_url: str = Field(
        default=CODEX_TOKEN_URL,
        description="OAuth token endpoint",
    )
    write_back: bool = Field(
        default=True,
        description="Persist refreshed tokens to auth_json_path",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for the refresh exchange",
    )


class BridgeConfig(BaseModel):
    """Top-level codexbridge.yaml configuration."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1", description="Config schema version")
    codex: CodexConfig = Field(
        default_factory=CodexConfig,
        description="Codex subprocess settings",
    )
    auth: AuthConfig = Field(
        default_factory=AuthConfig,
        description="Credential settings",
    )
