"""Signature and access-key helpers."""

import hashlib
import hmac
import json
from typing import Any


def canonical_payload(payload: dict[str, Any]) -> bytes:
    """Serialize a webhook payload deterministically, excluding its signature."""
    body = {k: v for k, v in payload.items() if k != "signature"}
    return json.dumps(body, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")


def sign_payload(payload: dict[str, Any], secret: str) -> str:
    """Compute the hex HMAC-SHA256 signature of a webhook payload."""
    return hmac.new(secret.encode("utf-8"), canonical_payload(payload), hashlib.sha256).hexdigest()


def verify_signature(payload: dict[str, Any], signature: str | None, secret: str) -> bool:
    """Check a webhook signature in constant time."""
    if not signature:
        return False
    return hmac.compare_digest(signature, sign_payload(payload, secret))


def verify_admin_key(provided: str | None, expected: str | None) -> bool:
    """Check an admin API key. An unset expected key denies everything."""
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
