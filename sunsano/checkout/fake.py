"""Deterministic in-process payment provider with scripted outcomes."""

from collections.abc import Iterable
from itertools import count

from sunsano.checkout.draft import OrderDraft
from sunsano.checkout.exceptions import PaymentProviderError
from sunsano.checkout.provider import (
    CheckoutSessionResult,
    PaymentInitiation,
    PaymentProvider,
    PaymentStatus,
    SessionStatus,
)


class _Script:
    """Replays outcomes in order; the last one repeats forever."""

    def __init__(self, outcomes: Iterable, default) -> None:
        self._outcomes = list(outcomes)
        self._default = default

    def next(self):
        if not self._outcomes:
            return self._default
        if len(self._outcomes) == 1:
            outcome = self._outcomes[0]
        else:
            outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakePaymentProvider(PaymentProvider):
    """Scripted provider for tests and offline runs.

    Scripts accept plain outcomes or exception instances, which are raised
    in place of a result. Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        *,
        session_error: PaymentProviderError | None = None,
        session_payment_status: str = "paid",
        payment_statuses: Iterable[PaymentStatus | Exception] = ("pending",),
        webhook_outcomes: Iterable[bool | Exception] = (False,),
        initiation_error: PaymentProviderError | None = None,
        redirect_base: str = "https://checkout.example.test/pay",
    ) -> None:
        self.session_error = session_error
        self.session_payment_status = session_payment_status
        self.initiation_error = initiation_error
        self.redirect_base = redirect_base
        self._payment_statuses = _Script(payment_statuses, "pending")
        self._webhook_outcomes = _Script(webhook_outcomes, False)
        self._ids = count(1)
        self._sessions: dict[str, CheckoutSessionResult] = {}
        self.calls: list[tuple[str, object]] = []

    def calls_to(self, name: str) -> list:
        return [arg for call, arg in self.calls if call == name]

    async def create_checkout_session(self, draft: OrderDraft) -> CheckoutSessionResult:
        self.calls.append(("create_checkout_session", draft.order_number))
        if self.session_error is not None:
            raise self.session_error
        n = next(self._ids)
        session_id = f"cs_fake_{n}"
        result = CheckoutSessionResult(
            session_id=session_id,
            redirect_url=f"{self.redirect_base}/{session_id}",
            order_id=f"order-{n}",
            order_number=draft.order_number or f"SUN{n:06d}",
            payment_id=f"PAY{n:08d}",
        )
        self._sessions[session_id] = result
        return result

    async def get_session_status(self, session_id: str) -> SessionStatus:
        self.calls.append(("get_session_status", session_id))
        session = self._sessions.get(session_id)
        if session is None:
            raise PaymentProviderError(f"Unknown session {session_id}", status_code=404)
        return SessionStatus(
            session_id=session_id,
            payment_status=self.session_payment_status,
            order_id=session.order_id,
            order_number=session.order_number,
            payment_id=session.payment_id,
        )

    async def initiate_payment(self, draft: OrderDraft) -> PaymentInitiation:
        self.calls.append(("initiate_payment", draft.order_number))
        if self.initiation_error is not None:
            raise self.initiation_error
        n = next(self._ids)
        return PaymentInitiation(
            payment_id=f"PAY{n:08d}",
            order_id=f"order-{n}",
            order_number=draft.order_number or f"SUN{n:06d}",
            status="pending",
        )

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        self.calls.append(("get_payment_status", payment_id))
        return self._payment_statuses.next()

    async def deliver_webhook(self, payment_id: str) -> bool:
        self.calls.append(("deliver_webhook", payment_id))
        return self._webhook_outcomes.next()
