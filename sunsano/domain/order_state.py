"""Order state machine."""

from sunsano.core.exceptions import ValidationError

ORDER_STATUSES = ("pending", "processing", "paid", "failed", "cancelled", "shipped", "delivered")

ORDER_TRANSITIONS = {
    "pending": {"processing", "paid", "failed", "cancelled"},
    "processing": {"paid", "failed", "cancelled"},
    "paid": {"shipped"},
    "failed": {"pending"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

# Orders counted as revenue
COMPLETED_ORDER_STATUSES = ("paid", "shipped", "delivered")


def can_transition_order(current: str, target: str) -> bool:
    return target in ORDER_TRANSITIONS.get(current, set())


def assert_order_transition(current: str, target: str) -> None:
    if not can_transition_order(current, target):
        raise ValidationError(
            f"Invalid order transition: {current} → {target}"
        )
