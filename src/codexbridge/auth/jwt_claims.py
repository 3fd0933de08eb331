"""Read claims out of a JWT payload *without* verifying it.

Nothing here checks a signature.  The claims are only used to schedule a
refresh and to fill informational headers, never as proof of identity.
"""

from __future__ import annotations

import base64
import binascii
import json
import math
from datetime import UTC, datetime
from typing import Any

#: Claim namespace the OpenAI auth server uses for account metadata.
_OPENAI_AUTH_CLAIM = "https://api.openai.com/auth"


def decode_jwt_payload(token: str) -> dict[str, Any] | None:
    """Decode the middle segment of a three-part JWT, or return ``None``."""
    parts = token.split(".")
    if len(parts) != 3 or not parts[1]:
        return None

    segment = parts[1]
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError):
        return None

    if not isinstance(payload, dict):
        return None
    return payload


def extract_expiry(token: str) -> datetime | None:
    """The ``exp`` claim as an aware UTC datetime, or ``None`` if unknown."""
    payload = decode_jwt_payload(token)
    if payload is None:
        return None

    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, int | float):
        return None
    if not math.isfinite(exp) or exp <= 0:
        return None
    try:
        return datetime.fromtimestamp(exp, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def extract_account_id(token: str) -> str | None:
    """ChatGPT account id carried in the token, if any."""
    payload = decode_jwt_payload(token)
    if payload is None:
        return None
    auth = payload.get(_OPENAI_AUTH_CLAIM)
    if not isinstance(auth, dict):
        return None
    account_id = auth.get("chatgpt_account_id")
    if isinstance(account_id, str) and account_id.strip():
        return account_id
    return None
