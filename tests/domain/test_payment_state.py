"""Tests for the checkout payment state machine."""

import logging
from itertools import product

import pytest

from sunsano.domain.payment_state import (
    PAYMENT_TRANSITIONS,
    PaymentState,
    PaymentStateMachine,
    TransitionRecord,
    replay_history,
)


class TestTransitions:
    """Transition predicate and table."""

    @pytest.mark.parametrize("source,target", list(product(PaymentState, PaymentState)))
    def test_predicate_matches_table(self, source, target):
        machine = PaymentStateMachine("SUN000001")
        machine._state = source
        assert machine.can_transition_to(target) == (target in PAYMENT_TRANSITIONS[source])

    def test_paid_has_no_successors(self):
        machine = PaymentStateMachine("SUN000001")
        assert machine.transition(PaymentState.PROCESSING)
        assert machine.transition(PaymentState.PAID)
        assert machine.is_terminal

        for target in PaymentState:
            assert not machine.transition(target)
        assert machine.current_state is PaymentState.PAID

    def test_double_paid_is_rejected_without_raising(self, caplog):
        machine = PaymentStateMachine("SUN000002")
        machine.transition("processing")
        assert machine.transition("paid")

        with caplog.at_level(logging.WARNING):
            assert machine.transition("paid") is False

        assert len(machine.history) == 2
        assert "invalid transition from paid to paid" in caplog.text

    def test_unknown_state_is_rejected(self):
        machine = PaymentStateMachine("SUN000003")
        assert machine.transition("refunded") is False
        assert machine.current_state is PaymentState.PENDING
        assert machine.history == ()

    def test_retry_after_timeout(self):
        machine = PaymentStateMachine("SUN000004")
        machine.transition(PaymentState.PROCESSING)
        machine.transition(PaymentState.TIMEOUT)

        assert machine.retry()
        assert machine.current_state is PaymentState.PENDING

    def test_retry_from_processing_is_rejected(self):
        machine = PaymentStateMachine("SUN000005")
        machine.transition(PaymentState.PROCESSING)
        assert machine.retry() is False


class TestHistory:
    """Recorded history replays to the current state."""

    def test_replay_matches_current_state(self):
        machine = PaymentStateMachine("SUN000006")
        for target in ("processing", "failed", "pending", "failed", "paid", "pending", "processing", "paid"):
            machine.transition(target)

        assert machine.current_state is PaymentState.PAID
        assert replay_history(machine.history) is machine.current_state
        # failed -> paid is rejected and leaves no record
        assert [r.to_state.value for r in machine.history] == [
            "processing", "failed", "pending", "failed", "pending", "processing", "paid",
        ]

    def test_replay_rejects_gaps(self):
        machine = PaymentStateMachine("SUN000007")
        machine.transition("processing")
        machine.transition("paid")
        first, second = machine.history

        with pytest.raises(ValueError):
            replay_history([second])

    def test_record_serializes(self):
        machine = PaymentStateMachine("SUN000008")
        machine.transition("failed")
        record = machine.history[0]

        assert isinstance(record, TransitionRecord)
        assert record.to_dict()["from"] == "pending"
        assert record.to_dict()["to"] == "failed"
