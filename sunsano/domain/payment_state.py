"""Checkout payment state machine.

Tracks the payment status of a single checkout attempt:

    pending    -> processing | failed
    processing -> paid | failed | timeout
    paid       -> (terminal)
    failed     -> pending  (retry with a new attempt)
    timeout    -> pending  (retry with a new attempt)

Illegal moves are rejected and logged, never raised. Every accepted move is
recorded, so replaying the history from ``pending`` always yields the
current state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType

logger = logging.getLogger(__name__)


class PaymentState(str, Enum):
    """Payment status of a checkout attempt."""

    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    TIMEOUT = "timeout"


PAYMENT_TRANSITIONS: Mapping[PaymentState, frozenset[PaymentState]] = MappingProxyType({
    PaymentState.PENDING: frozenset({PaymentState.PROCESSING, PaymentState.FAILED}),
    PaymentState.PROCESSING: frozenset({PaymentState.PAID, PaymentState.FAILED, PaymentState.TIMEOUT}),
    PaymentState.PAID: frozenset(),
    PaymentState.FAILED: frozenset({PaymentState.PENDING}),
    PaymentState.TIMEOUT: frozenset({PaymentState.PENDING}),
})

RETRYABLE_STATES = frozenset({PaymentState.FAILED, PaymentState.TIMEOUT})


@dataclass(frozen=True)
class TransitionRecord:
    """One accepted state change."""

    from_state: PaymentState
    to_state: PaymentState
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "from": self.from_state.value,
            "to": self.to_state.value,
            "timestamp": self.timestamp.isoformat(),
        }


def _coerce_state(state: PaymentState | str) -> PaymentState | None:
    if isinstance(state, PaymentState):
        return state
    try:
        return PaymentState(state)
    except ValueError:
        return None


class PaymentStateMachine:
    """Payment state of one order, guarded by ``PAYMENT_TRANSITIONS``."""

    def __init__(self, order_id: str, log: logging.Logger | None = None) -> None:
        self.order_id = order_id
        self._log = log or logger
        self._state = PaymentState.PENDING
        self._history: list[TransitionRecord] = []
        self._log.info(
            f"[PaymentStateMachine] Order {self.order_id}: {self._state.value} → initialized"
        )

    @property
    def current_state(self) -> PaymentState:
        return self._state

    @property
    def history(self) -> tuple[TransitionRecord, ...]:
        return tuple(self._history)

    @property
    def is_terminal(self) -> bool:
        """True once the machine has no outgoing transitions."""
        return not PAYMENT_TRANSITIONS[self._state]

    def can_transition_to(self, state: PaymentState | str) -> bool:
        target = _coerce_state(state)
        return target is not None and target in PAYMENT_TRANSITIONS[self._state]

    def transition(self, new_state: PaymentState | str) -> bool:
        """Move to ``new_state`` if the table allows it.

        Returns:
            True if the state changed, False if the move was rejected
        """
        target = _coerce_state(new_state)
        if target is None or target not in PAYMENT_TRANSITIONS[self._state]:
            requested = target.value if target is not None else new_state
            self._log.warning(
                f"[PaymentStateMachine] Order {self.order_id}: "
                f"invalid transition from {self._state.value} to {requested}"
            )
            return False

        old_state = self._state
        self._state = target
        self._history.append(
            TransitionRecord(from_state=old_state, to_state=target, timestamp=datetime.now(UTC))
        )
        self._log.info(
            f"[PaymentStateMachine] Order {self.order_id}: {old_state.value} → {target.value}"
        )
        return True

    def retry(self) -> bool:
        """Start a new attempt after ``failed`` or ``timeout``."""
        return self.transition(PaymentState.PENDING)


def replay_history(
    history: Iterable[TransitionRecord],
    initial: PaymentState = PaymentState.PENDING,
) -> PaymentState:
    """Fold a transition history into the state it leads to.

    Raises:
        ValueError: If the records are not a contiguous sequence of legal moves
    """
    state = initial
    for record in history:
        if record.from_state is not state:
            raise ValueError(
                f"History gap: expected transition from {state.value}, got {record.from_state.value}"
            )
        if record.to_state not in PAYMENT_TRANSITIONS[state]:
            raise ValueError(
                f"Illegal transition in history: {state.value} → {record.to_state.value}"
            )
        state = record.to_state
    return state
