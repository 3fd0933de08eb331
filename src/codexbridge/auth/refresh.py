"""Keep the Codex access token fresh.

:class:`CodexAuthManager` reads ``auth.json``, refreshes the access token
through the OAuth token endpoint when it is about to expire, and writes the
result back atomically.  Unknown keys in the file are preserved.

Concurrent refreshes from separate processes are not coordinated: the
atomic rename keeps the file intact, and the last writer wins.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import math
import os
import secrets
import ssl
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import certifi
import httpx

from codexbridge.auth.credentials import (
    AuthDocument,
    CodexCredentials,
    credentials_from_document,
    default_auth_path,
    read_auth_document,
)
from codexbridge.auth.headers import build_auth_headers
from codexbridge.auth.jwt_claims import extract_expiry
from codexbridge.config.models import AuthConfig

logger = logging.getLogger(__name__)

#: Scope requested on every refresh.
REFRESH_SCOPE = "openid profile email"


class CredentialError(Exception):
    """Base class for credential errors."""


class CredentialRefreshError(CredentialError):
    """The token endpoint rejected or garbled a refresh."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotAuthenticatedError(CredentialError):
    """No usable Codex login was found."""


@dataclass(frozen=True)
class TokenRefreshResponse:
    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None
    expires_in: float | None = None
    token_type: str | None = None


def needs_refresh(
    credentials: CodexCredentials,
    leeway_seconds: float,
    now: datetime | None = None,
) -> bool:
    """Refresh only when the expiry is known and inside the leeway window."""
    return credentials.expires_within(leeway_seconds, now)


def _optional_string(obj: dict[str, Any], key: str) -> str | None:
    value = obj.get(key)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _parse_refresh_response(resp: httpx.Response) -> TokenRefreshResponse:
    if not resp.is_success:
        msg = f"Codex token refresh failed ({resp.status_code}): {resp.text}"
        raise CredentialRefreshError(msg, status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError as exc:
        msg = "Codex token refresh returned invalid JSON"
        raise CredentialRefreshError(msg, status_code=resp.status_code) from exc

    if not isinstance(data, dict):
        msg = "Codex token refresh returned non-object JSON"
        raise CredentialRefreshError(msg, status_code=resp.status_code)

    access_token = _optional_string(data, "access_token")
    if access_token is None:
        msg = "Codex token refresh response missing access_token"
        raise CredentialRefreshError(msg, status_code=resp.status_code)

    expires_in = data.get("expires_in")
    if isinstance(expires_in, bool) or not isinstance(expires_in, int | float):
        expires_in = None
    elif not math.isfinite(expires_in) or expires_in <= 0:
        expires_in = None

    return TokenRefreshResponse(
        access_token=access_token,
        refresh_token=_optional_string(data, "refresh_token"),
        id_token=_optional_string(data, "id_token"),
        expires_in=expires_in,
        token_type=_optional_string(data, "token_type"),
    )


async def refresh_tokens(
    client: httpx.AsyncClient,
    token_url: str,
    client_id: str,
    refresh_token: str,
) -> TokenRefreshResponse:
    """Exchange *refresh_token* for a new token set.

    Raises:
        CredentialRefreshError: On a network error, a non-2xx status, or a
            body that is not a JSON object with an ``access_token``.
    """
    form = {
        "client_id": client_id,
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "scope": REFRESH_SCOPE,
    }
    try:
        resp = await client.post(
            token_url,
            data=form,
            headers={"Accept": "application/json"},
        )
    except httpx.RequestError as exc:
        msg = f"Network error during Codex token refresh: {exc}"
        raise CredentialRefreshError(msg) from exc

    return _parse_refresh_response(resp)


def write_json_atomic(path: Path, data: Any) -> None:
    """Write *data* as JSON via a private temp file renamed over *path*."""
    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    tmp_path = path.with_name(f"{path.name}.tmp-{os.getpid()}-{secrets.token_hex(6)}")
    payload = json.dumps(data, indent=2) + "\n"

    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise


def _iso_now() -> str:
    """Return the current UTC time as ISO 8601 with milliseconds."""
    return datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def apply_refresh(doc: AuthDocument, refreshed: TokenRefreshResponse) -> CodexCredentials:
    """Merge *refreshed* into *doc* in place and return the new credentials.

    Only ``tokens.access_token``, ``tokens.refresh_token``,
    ``tokens.id_token`` and ``last_refresh`` change; a missing refresh or
    ID token in the response keeps the previous one.
    """
    tokens = doc.tokens
    previous = credentials_from_document(doc)
    refresh_token = refreshed.refresh_token or (previous.refresh_token if previous else None)
    id_token = refreshed.id_token or (previous.id_token if previous else None)

    tokens["access_token"] = refreshed.access_token
    tokens["refresh_token"] = refresh_token
    if id_token:
        tokens["id_token"] = id_token
    doc.data["last_refresh"] = _iso_now()

    return CodexCredentials(
        access_token=refreshed.access_token,
        refresh_token=refresh_token,
        id_token=id_token,
        expires_at=extract_expiry(refreshed.access_token),
    )


class CodexAuthManager:
    """Reads, refreshes and persists Codex credentials on demand."""

    def __init__(
        self,
        config: AuthConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or AuthConfig()
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def auth_path(self) -> Path:
        return self._config.auth_json_path or default_auth_path()

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                verify=ssl_context,
            )
        return self._client

    async def get_credentials(self) -> CodexCredentials | None:
        """Current credentials, refreshed first if they are about to expire.

        Returns ``None`` when there is no usable login.

        Raises:
            CredentialRefreshError: If a needed refresh fails.  The file on
                disk is left untouched in that case.
        """
        path = self.auth_path
        doc = await asyncio.to_thread(read_auth_document, path)
        if doc is None:
            return None
        credentials = credentials_from_document(doc)
        if credentials is None:
            return None

        if not needs_refresh(credentials, self._config.refresh_leeway_seconds):
            return credentials
        if credentials.refresh_token is None:
            logger.info("access token in %s expires soon but has no refresh token", path)
            return credentials

        logger.info("refreshing Codex access token (expires %s)", credentials.expires_at)
        refreshed = await refresh_tokens(
            self._http(),
            self._config.token_url,
            self._config.client_id,
            credentials.refresh_token,
        )
        updated = apply_refresh(doc, refreshed)

        if self._config.write_back:
            await asyncio.to_thread(write_json_atomic, path, doc.data)
            logger.info("wrote refreshed Codex tokens to %s", path)
        return updated

    async def headers(self) -> dict[str, str]:
        """Request headers carrying a fresh bearer token.

        Raises:
            NotAuthenticatedError: If there is no Codex login.
        """
        credentials = await self.get_credentials()
        if credentials is None:
            msg = f"Not logged in to Codex (no usable token in {self.auth_path}). Run `codex login`."
            raise NotAuthenticatedError(msg)
        return build_auth_headers(credentials)

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> CodexAuthManager:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


async def get_codex_auth(config: AuthConfig | None = None) -> CodexCredentials | None:
    """One-shot convenience wrapper around :class:`CodexAuthManager`."""
    async with CodexAuthManager(config) as manager:
        return await manager.get_credentials()
