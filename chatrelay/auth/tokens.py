"""
chatrelay - Session Tokens

Stateless HMAC-SHA256 session tokens:

    base64url(json_payload) + "." + hex(hmac_sha256(secret, json_payload))

The payload carries `sub`, `iat` and `exp` (epoch milliseconds). Tokens
are issued by the login route and checked on every relay request.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional, Tuple


def _now_ms() -> int:
    return int(time.time() * 1000)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _signature(data: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), data, hashlib.sha256).hexdigest()


def sign_token(payload: Dict[str, Any], secret: str) -> str:
    """Serialize and sign a payload."""
    data = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return f"{_b64url_encode(data)}.{_signature(data, secret)}"


def verify_token(
    token: Any,
    secret: str,
    now_ms: Optional[int] = None
) -> Optional[Dict[str, Any]]:
    """
    Check signature and expiry.

    Returns:
        The payload for a valid, unexpired token; None for anything else
    """
    if not token or not isinstance(token, str) or not secret:
        return None

    parts = token.split(".")
    if len(parts) != 2:
        return None
    encoded, signature = parts

    try:
        data = _b64url_decode(encoded)
    except (binascii.Error, ValueError):
        return None

    if not hmac.compare_digest(signature.encode("ascii", "replace"), _signature(data, secret).encode("ascii")):
        return None

    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None

    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)) or isinstance(exp, bool):
        return None

    now = _now_ms() if now_ms is None else now_ms
    if now > exp:
        return None

    return payload


def issue_session_token(
    subject: str,
    secret: str,
    ttl_seconds: int = 24 * 60 * 60,
    now_ms: Optional[int] = None
) -> Tuple[str, int]:
    """
    Issue a session token for `subject`.

    Returns:
        (token, expires_in_seconds)
    """
    now = _now_ms() if now_ms is None else now_ms
    token = sign_token(
        {"sub": subject, "iat": now, "exp": now + ttl_seconds * 1000},
        secret,
    )
    return token, ttl_seconds
