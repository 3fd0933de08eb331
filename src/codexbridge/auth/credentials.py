"""Read the Codex CLI credential file (``~/.codex/auth.json``).

Reading never raises: a missing, unreadable or malformed file simply means
"not authenticated".
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from codexbridge.auth.jwt_claims import extract_expiry

logger = logging.getLogger(__name__)


def default_auth_path() -> Path:
    """Where the Codex CLI keeps its login."""
    return Path.home() / ".codex" / "auth.json"


@dataclass(frozen=True)
class CodexCredentials:
    """Tokens from the auth file plus the (unverified) access-token expiry."""

    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None
    expires_at: datetime | None = None

    def expires_within(self, seconds: float, now: datetime | None = None) -> bool:
        """True if the expiry is known and falls within *seconds* of *now*.

        Unknown expiry is never "expiring soon", so it never triggers a
        refresh.
        """
        if self.expires_at is None:
            return False
        now = now or datetime.now(tz=UTC)
        return self.expires_at - timedelta(seconds=max(0.0, seconds)) <= now

    def is_valid(self, leeway_seconds: float = 0.0, now: datetime | None = None) -> bool:
        """Strict validity check for read-only consumers.

        Unknown expiry counts as invalid here, unlike :meth:`expires_within`.
        """
        if self.expires_at is None:
            return False
        return not self.expires_within(leeway_seconds, now)


@dataclass
class AuthDocument:
    """The parsed auth file, kept whole so unknown keys survive a rewrite."""

    path: Path
    data: dict[str, Any]

    @property
    def tokens(self) -> dict[str, Any]:
        tokens: dict[str, Any] = self.data["tokens"]
        return tokens


def read_auth_document(path: Path | None = None) -> AuthDocument | None:
    """Load the auth file, or ``None`` if it is absent or unusable."""
    auth_path = path or default_auth_path()
    try:
        data = json.loads(auth_path.read_text(encoding="utf-8"))
    except (OSError, ValueError, RecursionError) as exc:
        logger.debug("cannot read %s: %s", auth_path, exc)
        return None

    if not isinstance(data, dict) or not isinstance(data.get("tokens"), dict):
        logger.debug("%s has no tokens object", auth_path)
        return None
    return AuthDocument(path=auth_path, data=data)


def _optional_string(obj: dict[str, Any], key: str) -> str | None:
    value = obj.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def credentials_from_document(doc: AuthDocument) -> CodexCredentials | None:
    """Extract the tokens, or ``None`` when there is no usable access token."""
    tokens = doc.tokens
    access_token = _optional_string(tokens, "access_token")
    if access_token is None:
        return None
    return CodexCredentials(
        access_token=access_token,
        refresh_token=_optional_string(tokens, "refresh_token"),
        id_token=_optional_string(tokens, "id_token"),
        expires_at=extract_expiry(access_token),
    )


def load_credentials(path: Path | None = None) -> CodexCredentials | None:
    """Read-only credential lookup: no network, no writes."""
    doc = read_auth_document(path)
    if doc is None:
        return None
    return credentials_from_document(doc)


def check_credentials(path: Path | None = None, leeway_seconds: float = 0.0) -> bool:
    """True if a credential exists and is known to be valid for *leeway_seconds*."""
    credentials = load_credentials(path)
    return credentials is not None and credentials.is_valid(leeway_seconds)
