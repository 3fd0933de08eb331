"""Codex CLI credentials — reading, validity checks and token refresh."""

from codexbridge.auth.credentials import (
    AuthDocument,
    CodexCredentials,
    check_credentials,
    credentials_from_document,
    default_auth_path,
    load_credentials,
    read_auth_document,
)
from codexbridge.auth.headers import apply_codex_headers, build_auth_headers
from codexbridge.auth.jwt_claims import (
    decode_jwt_payload,
    extract_account_id,
    extract_expiry,
)
from codexbridge.auth.refresh import (
    CodexAuthManager,
    CredentialError,
    CredentialRefreshError,
    NotAuthenticatedError,
    TokenRefreshResponse,
    apply_refresh,
    get_codex_auth,
    needs_refresh,
    refresh_tokens,
    write_json_atomic,
)

__all__ = [
    "AuthDocument",
    "CodexAuthManager",
    "CodexCredentials",
    "CredentialError",
    "CredentialRefreshError",
    "NotAuthenticatedError",
    "TokenRefreshResponse",
    "apply_codex_headers",
    "apply_refresh",
    "build_auth_headers",
    "check_credentials",
    "credentials_from_document",
    "decode_jwt_payload",
    "default_auth_path",
    "extract_account_id",
    "extract_expiry",
    "get_codex_auth",
    "load_credentials",
    "needs_refresh",
    "read_auth_document",
    "refresh_tokens",
    "write_json_atomic",
]
