"""Checkout orchestration.

``CheckoutSystem`` drives the four-step wizard (cart review, customer data,
payment method, processing), creates the remote checkout session and, once
a payment is in flight, runs two timer tasks per attempt: a fixed-interval
status poll and a jittered webhook delivery with bounded retries. Whichever
reaches a terminal payment state first wins; the state machine rejects the
later move and all remaining timers are cancelled.

Provider failures never propagate to the caller: they become ``failed``
(session errors) or are tolerated up to the poll ceiling (status errors).
"""

import asyncio
import logging
import random
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from pydantic import ValidationError

from sunsano.checkout.draft import (
    CartItem,
    CustomerData,
    OrderDraft,
    PaymentMethod,
    WizardStep,
)
from sunsano.checkout.exceptions import PaymentProviderError
from sunsano.checkout.logger import PaymentLogger
from sunsano.checkout.provider import CheckoutSessionResult, PaymentProvider
from sunsano.checkout.view import CheckoutView, LoggingCheckoutView
from sunsano.domain.payment_state import RETRYABLE_STATES, PaymentState, PaymentStateMachine
from sunsano.domain.pricing import DEFAULT_DELIVERY_FEE, OrderTotals
from sunsano.utils.identifiers import generate_order_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutConfig:
    delivery_fee: Decimal = DEFAULT_DELIVERY_FEE
    poll_interval: float = 30.0
    max_polls: int = 20
    webhook_delay_min: float = 5.0
    webhook_delay_max: float = 15.0
    webhook_retry_delay: float = 10.0
    webhook_max_retries: int = 3

    @classmethod
    def from_settings(cls, settings) -> "CheckoutConfig":
        return cls(
            delivery_fee=settings.delivery_fee,
            poll_interval=settings.checkout_poll_interval,
            max_polls=settings.checkout_max_polls,
            webhook_delay_min=settings.checkout_webhook_delay_min,
            webhook_delay_max=settings.checkout_webhook_delay_max,
            webhook_retry_delay=settings.checkout_webhook_retry_delay,
            webhook_max_retries=settings.checkout_webhook_max_retries,
        )


@dataclass
class PaymentSession:
    """One checkout attempt and its timer tasks."""

    order_number: str
    machine: PaymentStateMachine = field(repr=False)
    session_id: str | None = None
    payment_id: str | None = None
    poll_count: int = 0
    webhook_retries: int = 0
    active: bool = True
    poll_task: asyncio.Task | None = field(default=None, repr=False)
    webhook_task: asyncio.Task | None = field(default=None, repr=False)

    @property
    def state(self) -> PaymentState:
        return self.machine.current_state


class CheckoutSystem:
    def __init__(
        self,
        provider: PaymentProvider,
        view: CheckoutView | None = None,
        payment_logger: PaymentLogger | None = None,
        config: CheckoutConfig | None = None,
        rng: random.Random | None = None,
        log: logging.Logger | None = None,
        order_number_factory: Callable[[], str] = generate_order_number,
    ) -> None:
        self.provider = provider
        self.view = view or LoggingCheckoutView()
        self.payment_logger = payment_logger or PaymentLogger()
        self.config = config or CheckoutConfig()
        self._rng = rng or random.Random()
        self._log = log or logger
        self._order_number_factory = order_number_factory

        self.current_step = WizardStep.CART_REVIEW
        self.draft = OrderDraft(delivery_fee=self.config.delivery_fee)
        self.state_machine: PaymentStateMachine | None = None
        self.session: PaymentSession | None = None
        self.checkout_session: CheckoutSessionResult | None = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Wizard
    # ------------------------------------------------------------------

    def start_checkout(self, items: Iterable[CartItem | dict]) -> None:
        """Open the wizard on the cart review step for a fresh order."""
        self._cleanup_payment_processing()
        self.draft = OrderDraft(
            items=[item if isinstance(item, CartItem) else CartItem.model_validate(item) for item in items],
            delivery_fee=self.config.delivery_fee,
        )
        self.state_machine = None
        self.session = None
        self.checkout_session = None
        self._go_to(WizardStep.CART_REVIEW)

    def next_step(self) -> bool:
        if self.current_step >= WizardStep.PAYMENT_METHOD:
            return False
        errors = self._step_errors(self.current_step)
        if errors:
            self.view.show_validation_errors(errors)
            return False
        self._go_to(WizardStep(self.current_step + 1))
        return True

    def prev_step(self) -> bool:
        if self.current_step <= WizardStep.CART_REVIEW:
            return False
        if self.session is not None and self.session.active:
            return False
        self._go_to(WizardStep(self.current_step - 1))
        return True

    def close_checkout(self) -> None:
        self._cleanup_payment_processing()
        self.view.close()

    def select_payment_method(self, method: PaymentMethod | str) -> bool:
        try:
            self.draft.payment_method = PaymentMethod(method)
        except ValueError:
            self.view.show_validation_errors(
                [{"field": "payment_method", "message": f"Unsupported payment method: {method}"}]
            )
            return False
        return True

    def submit_customer_data(self, data: CustomerData | dict) -> bool:
        """Validate and store the delivery details.

        Invalid input is reported to the view and leaves the draft unchanged.
        """
        try:
            customer = data if isinstance(data, CustomerData) else CustomerData.model_validate(data)
        except ValidationError as e:
            self.view.show_validation_errors([
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ])
            return False
        self.draft.customer = customer
        return True

    def totals(self) -> OrderTotals:
        return self.draft.totals()

    def order_summary(self) -> dict:
        totals = self.draft.totals()
        return {
            "order_number": self.draft.order_number,
            "order_date": self.draft.order_date.isoformat() if self.draft.order_date else None,
            "customer_email": self.draft.customer.email if self.draft.customer else None,
            "items": len(self.draft.items),
            "subtotal": str(totals.subtotal),
            "delivery_fee": str(totals.delivery_fee),
            "total": str(totals.total),
            "payment_method": self.draft.payment_method.value,
            "payment_state": self.state_machine.current_state.value if self.state_machine else None,
        }

    async def payment_logs(self) -> list[dict]:
        return await self.payment_logger.entries()

    def _go_to(self, step: WizardStep) -> None:
        self.current_step = step
        self.view.show_step(step)
        if step is WizardStep.CART_REVIEW:
            self.view.render_cart(self.draft, self.draft.totals())
        elif step is WizardStep.PAYMENT_METHOD:
            self.view.render_summary(self.draft, self.draft.totals())

    def _step_errors(self, step: WizardStep) -> list[dict]:
        if step is WizardStep.CART_REVIEW and not self.draft.items:
            return [{"field": "items", "message": "Your cart is empty"}]
        if step is WizardStep.CUSTOMER_DATA and self.draft.customer is None:
            return [{"field": "customer", "message": "Please fill in your delivery details"}]
        return []

    # ------------------------------------------------------------------
    # Checkout attempts
    # ------------------------------------------------------------------

    async def place_order(self) -> CheckoutSessionResult | None:
        """Create a remote checkout session and hand its URL to the view.

        Returns:
            The created session, or None if the attempt did not start or failed
        """
        session = await self._open_attempt()
        if session is None:
            return None

        self._status("creating_session", "Creating secure payment session...")
        try:
            result = await self.provider.create_checkout_session(self.draft)
        except PaymentProviderError as e:
            await self._handle_session_error(session, e)
            return None

        session.session_id = result.session_id
        session.payment_id = result.payment_id
        # Payment continues on the provider's page
        session.active = False
        self.checkout_session = result

        await self.payment_logger.log(
            "stripe_session_created",
            order_id=result.order_id,
            order_number=result.order_number,
            session_id=result.session_id,
        )
        self._status("redirecting", "Redirecting to secure payment page...")
        self.view.redirect(result.redirect_url)
        return result

    async def process_payment(self) -> str | None:
        """Initiate an in-page payment and start monitoring it.

        Returns:
            The payment id, or None if the attempt did not start or failed
        """
        session = await self._open_attempt()
        if session is None:
            return None

        self._status("payment_initiated", "Initialising payment...")
        try:
            initiation = await self.provider.initiate_payment(self.draft)
        except PaymentProviderError as e:
            await self._handle_session_error(session, e)
            return None

        self.start_payment_monitoring(initiation.payment_id)
        return initiation.payment_id

    async def retry_payment(self) -> CheckoutSessionResult | None:
        """Start a new attempt for the same order after failure or timeout."""
        machine = self.state_machine
        if machine is None or machine.current_state not in RETRYABLE_STATES:
            self._log.warning("Retry requested but no failed or timed out payment to retry")
            return None
        if self.current_step is not WizardStep.PAYMENT_METHOD:
            self._go_to(WizardStep.PAYMENT_METHOD)
        return await self.place_order()

    async def resume_after_redirect(self, session_id: str | None = None) -> PaymentState | None:
        """Pick the payment up again when the customer returns from the provider."""
        if session_id is None and self.checkout_session is not None:
            session_id = self.checkout_session.session_id
        if session_id is None:
            self._log.warning("No checkout session to resume")
            return None

        try:
            status = await self.provider.get_session_status(session_id)
        except PaymentProviderError as e:
            self._log.error(f"Could not verify checkout session {session_id}: {e}")
            self._show_payment_error("payment_failed", "Your payment could not be verified. Please try again.")
            return None

        machine = self.state_machine
        if machine is None or (status.order_number and machine.order_id != status.order_number):
            order_number = status.order_number or session_id
            machine = PaymentStateMachine(order_number, log=self._log)
            self.state_machine = machine
            self.draft.order_number = order_number
        if machine.current_state in RETRYABLE_STATES:
            machine.retry()

        if self.session is not None and self.session.active and self.session.machine is machine:
            return machine.current_state

        self.session = PaymentSession(
            order_number=machine.order_id,
            machine=machine,
            session_id=session_id,
            payment_id=status.payment_id,
        )
        self._go_to(WizardStep.PROCESSING)

        if status.payment_status == "paid":
            if machine.current_state is PaymentState.PENDING:
                machine.transition(PaymentState.PROCESSING)
            await self.handle_payment_success(self.session)
        elif status.payment_id:
            self.start_payment_monitoring(status.payment_id)
        else:
            machine.transition(PaymentState.PROCESSING)
            await self.handle_payment_failure(self.session, "payment was not completed")
        return machine.current_state

    async def _open_attempt(self) -> PaymentSession | None:
        if self.current_step is not WizardStep.PAYMENT_METHOD:
            self._log.warning(f"Cannot place order from step {self.current_step.name}")
            return None
        errors = self._step_errors(WizardStep.CART_REVIEW) + self._step_errors(WizardStep.CUSTOMER_DATA)
        if errors:
            self.view.show_validation_errors(errors)
            return None
        if self.session is not None and self.session.active:
            self._log.warning(f"Checkout attempt for {self.session.order_number} already in progress")
            return None

        machine = self.state_machine
        if machine is not None and machine.current_state in RETRYABLE_STATES:
            machine.retry()
        elif machine is None or machine.current_state is not PaymentState.PENDING:
            self.draft.stamp(self._order_number_factory())
            machine = PaymentStateMachine(self.draft.order_number, log=self._log)
            self.state_machine = machine

        session = PaymentSession(order_number=machine.order_id, machine=machine)
        self.session = session

        self.view.set_order_button(False)
        await self.payment_logger.log(
            "order_initiated",
            order_id=self.draft.order_number,
            payment_method=self.draft.payment_method.value,
            amount=str(self.draft.totals().total),
            customer=self.draft.customer.model_dump(mode="json"),
        )
        self._go_to(WizardStep.PROCESSING)
        return session

    async def _handle_session_error(self, session: PaymentSession, error: PaymentProviderError) -> None:
        session.active = False
        session.machine.transition(PaymentState.FAILED)
        await self.payment_logger.log(
            "order_failed",
            order_id=session.order_number,
            error=str(error),
        )
        self._show_payment_error("payment_failed", f"Payment could not be started: {error}")

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def start_payment_monitoring(self, payment_id: str) -> bool:
        """Move the attempt to processing and start polling plus webhook delivery.

        Must be called from a running event loop.
        """
        machine = self.state_machine
        if machine is None:
            self._log.warning(f"No checkout attempt to monitor payment {payment_id}")
            return False
        if self.session is None or self.session.machine is not machine:
            self.session = PaymentSession(order_number=machine.order_id, machine=machine)
        session = self.session

        if machine.current_state is PaymentState.PENDING:
            machine.transition(PaymentState.PROCESSING)
        if machine.current_state is not PaymentState.PROCESSING:
            self._log.warning(
                f"Not monitoring payment {payment_id}: order {machine.order_id} is {machine.current_state.value}"
            )
            return False

        self._cancel_timers()
        session.active = True
        session.payment_id = payment_id
        session.poll_count = 0
        session.webhook_retries = 0
        self._status("payment_pending", "Waiting for payment confirmation...")
        session.poll_task = self._spawn(self._poll_payment_status(session))
        session.webhook_task = self._spawn(self._simulate_webhook(session))
        return True

    async def wait_until_settled(self) -> None:
        """Wait for every outstanding timer task. Not to be awaited from one."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def _poll_payment_status(self, session: PaymentSession) -> None:
        max_polls = self.config.max_polls
        while session.active:
            await asyncio.sleep(self.config.poll_interval)
            if not session.active:
                return
            session.poll_count += 1

            try:
                status = await self.provider.get_payment_status(session.payment_id)
            except PaymentProviderError as e:
                self._log.warning(
                    f"Status check {session.poll_count}/{max_polls} for {session.payment_id} failed: {e}"
                )
                if session.poll_count >= max_polls:
                    await self.handle_payment_timeout(session)
                    return
                continue

            if status == "completed":
                await self.handle_payment_success(session)
                return
            if status == "failed":
                await self.handle_payment_failure(session, "declined by the payment provider")
                return
            if session.poll_count >= max_polls:
                await self.handle_payment_timeout(session)
                return
            self._status(
                "payment_polling",
                f"Waiting for payment confirmation ({session.poll_count}/{max_polls})...",
            )

    async def _simulate_webhook(self, session: PaymentSession) -> None:
        while session.active:
            delay = self._rng.uniform(self.config.webhook_delay_min, self.config.webhook_delay_max)
            await asyncio.sleep(delay)
            if not session.active:
                return

            try:
                delivered = await self.provider.deliver_webhook(session.payment_id)
            except PaymentProviderError as e:
                self._log.warning(f"Webhook delivery for {session.payment_id} failed: {e}")
                delivered = False

            if delivered:
                await self.handle_webhook_success(session)
                return

            await self.payment_logger.log(
                "webhook_failure",
                order_id=session.order_number,
                payment_id=session.payment_id,
                retry_count=session.webhook_retries,
            )
            if session.webhook_retries >= self.config.webhook_max_retries:
                self._log.info(
                    f"Webhook retries exhausted for {session.payment_id}, relying on status polling"
                )
                return
            session.webhook_retries += 1
            await asyncio.sleep(self.config.webhook_retry_delay)

    async def handle_webhook_success(self, session: PaymentSession | None = None) -> None:
        session = session or self.session
        if session is None:
            return
        await self.payment_logger.log(
            "webhook_success",
            order_id=session.order_number,
            payment_id=session.payment_id,
            webhook_type="payment_completed",
        )
        if session.machine.current_state is PaymentState.PROCESSING:
            await self.handle_payment_success(session)

    async def handle_payment_success(self, session: PaymentSession | None = None) -> bool:
        session = session or self.session
        if session is None:
            return False
        self._finish(session)
        if not session.machine.transition(PaymentState.PAID):
            return False
        await self.payment_logger.log(
            "payment_success",
            order_id=session.order_number,
            payment_id=session.payment_id,
            amount=str(self.draft.totals().total),
        )
        self._status("payment_success", "Payment successful!")
        self.view.show_confirmation(self.order_summary())
        return True

    async def handle_payment_failure(self, session: PaymentSession | None = None, reason: str = "") -> bool:
        session = session or self.session
        if session is None:
            return False
        self._finish(session)
        if not session.machine.transition(PaymentState.FAILED):
            return False
        await self.payment_logger.log(
            "payment_failed",
            order_id=session.order_number,
            payment_id=session.payment_id,
            reason=reason,
        )
        self._show_payment_error("payment_failed", f"Payment failed: {reason}" if reason else "Payment failed")
        return True

    async def handle_payment_timeout(self, session: PaymentSession | None = None) -> bool:
        session = session or self.session
        if session is None:
            return False
        self._finish(session)
        if not session.machine.transition(PaymentState.TIMEOUT):
            return False
        await self.payment_logger.log(
            "payment_timeout",
            order_id=session.order_number,
            payment_id=session.payment_id,
            poll_count=session.poll_count,
        )
        self._show_payment_error(
            "payment_timeout",
            "We did not receive a payment confirmation in time. Please try again.",
        )
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _show_payment_error(self, status: str, message: str) -> None:
        self._status(status, message)
        self.view.show_payment_error(message)
        self._go_to(WizardStep.PAYMENT_METHOD)
        self.view.set_order_button(True)

    def _status(self, status: str, message: str) -> None:
        machine = self.state_machine
        self.view.update_processing_status(status, message, {
            "order_number": self.draft.order_number,
            "payment_state": machine.current_state.value if machine else None,
            "timestamp": datetime.now(UTC).isoformat(),
        })

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _finish(self, session: PaymentSession) -> None:
        session.active = False
        if session is self.session:
            self._cancel_timers()

    def _cleanup_payment_processing(self) -> None:
        if self.session is not None:
            self.session.active = False
        self._cancel_timers()

    def _cancel_timers(self) -> None:
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        for task in list(self._tasks):
            if task is not current and not task.done():
                task.cancel()
