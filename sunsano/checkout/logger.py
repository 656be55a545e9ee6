"""Payment event log.

Every event goes to the observability logger as a JSON line and is appended
to a capped log kept in session storage (oldest entries evicted first).
Persisting is best effort: when storage is unavailable the event is only
logged, and no error reaches the caller.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from sunsano.checkout.exceptions import StorageError
from sunsano.checkout.storage import SessionStorage

logger = logging.getLogger(__name__)

PAYMENT_LOG_KEY = "payment-logs"
DEFAULT_CAPACITY = 100


class PaymentLogger:
    """Structured, append-only payment event log."""

    def __init__(
        self,
        storage: SessionStorage | None = None,
        capacity: int = DEFAULT_CAPACITY,
        log: logging.Logger | None = None,
        key: str = PAYMENT_LOG_KEY,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"Payment log capacity must be at least 1, got {capacity}")
        self.storage = storage
        self.capacity = capacity
        self.key = key
        self._log = log or logger

    async def log(self, event: str, **data: Any) -> None:
        """Record a payment event."""
        entry = {
            "event": event,
            "timestamp": datetime.now(UTC).isoformat(),
            "order_id": data.get("order_id"),
            **data,
        }
        self._log.info(f"[PaymentLogger] {json.dumps(entry, default=str)}")

        if self.storage is None:
            return

        try:
            entries = await self._load()
            entries.append(entry)
            del entries[:-self.capacity]
            await self.storage.set(self.key, json.dumps(entries, default=str))
        except StorageError as e:
            self._log.warning(f"[PaymentLogger] Persisted log unavailable, event kept in log output only: {e}")

    async def entries(self) -> list[dict]:
        """Return the persisted events, oldest first."""
        if self.storage is None:
            return []
        try:
            return await self._load()
        except StorageError as e:
            self._log.warning(f"[PaymentLogger] Could not read persisted log: {e}")
            return []

    async def _load(self) -> list[dict]:
        raw = await self.storage.get(self.key)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except ValueError:
            self._log.warning("[PaymentLogger] Discarding corrupt persisted log")
            return []
        return entries if isinstance(entries, list) else []
