"""Idempotency protection for webhook deliveries."""

import hashlib
import json
from datetime import UTC, datetime, timedelta
from typing import Any


class IdempotencyStore:
    """In-memory idempotency key store.

    Keys expire after the TTL. A multi-process deployment should back this
    with Redis instead.
    """

    def __init__(self, ttl: timedelta = timedelta(hours=24)):
        self._keys: dict[str, dict] = {}
        self._ttl = ttl

    def _cleanup_expired(self) -> None:
        """Remove expired keys."""
        now = datetime.now(UTC)
        expired = [k for k, v in self._keys.items() if v["expires_at"] < now]
        for k in expired:
            del self._keys[k]

    def get(self, key: str) -> dict | None:
        """Get stored result for idempotency key."""
        self._cleanup_expired()
        entry = self._keys.get(key)
        if entry and entry["expires_at"] > datetime.now(UTC):
            return entry["result"]
        return None

    def set(self, key: str, result: dict) -> None:
        """Store result for idempotency key."""
        self._keys[key] = {
            "result": result,
            "expires_at": datetime.now(UTC) + self._ttl,
        }

    def clear(self) -> None:
        self._keys.clear()


# Global store instance
_idempotency_store = IdempotencyStore()


def generate_idempotency_key(
    operation: str,
    entity_id: str,
    params: dict[str, Any] | None = None,
) -> str:
    """Generate a deterministic idempotency key.

    Args:
        operation: Operation name (e.g., "stripe_event", "payment_webhook")
        entity_id: Primary entity ID
        params: Additional parameters to include in key

    Returns:
        SHA256 hash of operation + entity + params
    """
    key_data = {
        "operation": operation,
        "entity_id": str(entity_id),
        "params": params or {},
    }
    key_str = json.dumps(key_data, sort_keys=True, default=str)
    return hashlib.sha256(key_str.encode()).hexdigest()


def check_idempotency(key: str) -> dict | None:
    """Return the stored result if the operation was already performed."""
    return _idempotency_store.get(key)


def store_idempotency_result(key: str, result: dict) -> None:
    """Store operation result for idempotency."""
    _idempotency_store.set(key, result)


def reset_idempotency_store() -> None:
    _idempotency_store.clear()
