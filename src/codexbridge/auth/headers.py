"""HTTP headers the Codex backend expects alongside the bearer token."""

from __future__ import annotations

import secrets
import time
from typing import TYPE_CHECKING

from codexbridge.auth.jwt_claims import extract_account_id

if TYPE_CHECKING:
    from codexbridge.auth.credentials import CodexCredentials

CODEX_CLIENT_VERSION = "0.21.0"
CODEX_ORIGINATOR = "codex_cli_rs"
CODEX_USER_AGENT = "codex_cli_rs/0.50.0 (codexbridge)"


def new_session_id() -> str:
    return f"{int(time.time() * 1000):x}-{secrets.token_hex(6)}-{secrets.token_hex(6)}"


def apply_codex_headers(headers: dict[str, str], access_token: str | None = None) -> None:
    """Fill in the Codex client headers without overriding caller values."""
    headers.setdefault("Version", CODEX_CLIENT_VERSION)
    headers.setdefault("OpenAI-Beta", "responses=experimental")
    headers.setdefault("session_id", new_session_id())
    headers.setdefault("originator", CODEX_ORIGINATOR)

    account_id = extract_account_id(access_token) if access_token else None
    if account_id:
        headers.setdefault("chatgpt-account-id", account_id)

    headers.setdefault("User-Agent", CODEX_USER_AGENT)


def build_auth_headers(credentials: CodexCredentials) -> dict[str, str]:
    """Bearer authorization plus the Codex client headers."""
    headers = {"Authorization": f"Bearer {credentials.access_token}"}
    apply_codex_headers(headers, credentials.access_token)
    return headers
