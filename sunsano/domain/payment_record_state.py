"""Persisted payment record state machine."""

from sunsano.core.exceptions import ValidationError

PAYMENT_RECORD_TRANSITIONS = {
    "pending": {"processing", "completed", "failed", "cancelled"},
    "processing": {"completed", "failed", "cancelled"},
    "completed": {"refunded"},
    "failed": set(),
    "cancelled": set(),
    "refunded": set(),
}


def assert_payment_transition(current: str, target: str) -> None:
    allowed = PAYMENT_RECORD_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise ValidationError(
            f"Invalid payment transition: {current} → {target}"
        )
