"""Presentation interface driven by the checkout orchestrator."""

import logging
from abc import ABC, abstractmethod

from sunsano.checkout.draft import OrderDraft, WizardStep
from sunsano.domain.pricing import OrderTotals

logger = logging.getLogger(__name__)


class CheckoutView(ABC):
    """Everything the checkout wizard shows to the customer."""

    @abstractmethod
    def show_step(self, step: WizardStep) -> None:
        pass

    @abstractmethod
    def render_cart(self, draft: OrderDraft, totals: OrderTotals) -> None:
        pass

    @abstractmethod
    def render_summary(self, draft: OrderDraft, totals: OrderTotals) -> None:
        pass

    @abstractmethod
    def show_validation_errors(self, errors: list[dict]) -> None:
        pass

    @abstractmethod
    def update_processing_status(self, status: str, message: str, details: dict) -> None:
        pass

    @abstractmethod
    def show_payment_error(self, message: str) -> None:
        pass

    @abstractmethod
    def set_order_button(self, enabled: bool) -> None:
        pass

    @abstractmethod
    def redirect(self, url: str) -> None:
        pass

    @abstractmethod
    def show_confirmation(self, summary: dict) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class LoggingCheckoutView(CheckoutView):
    """Headless view that writes every update to the log."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def show_step(self, step: WizardStep) -> None:
        self._log.info(f"Checkout step {step.value}: {step.name.lower()}")

    def render_cart(self, draft: OrderDraft, totals: OrderTotals) -> None:
        for item in draft.items:
            self._log.info(f"  {item.quantity} x {item.name} @ {item.unit_price}")
        self._log.info(
            f"  subtotal {totals.subtotal}, delivery {totals.delivery_fee}, total {totals.total}"
        )

    def render_summary(self, draft: OrderDraft, totals: OrderTotals) -> None:
        if draft.customer:
            self._log.info(
                f"Deliver to {draft.customer.firstname} {draft.customer.lastname}, "
                f"{draft.customer.address}, {draft.customer.zipcode} {draft.customer.city}"
            )
        self._log.info(f"Pay {totals.total} by {draft.payment_method.value}")

    def show_validation_errors(self, errors: list[dict]) -> None:
        for error in errors:
            self._log.warning(f"Invalid {error.get('field')}: {error.get('message')}")

    def update_processing_status(self, status: str, message: str, details: dict) -> None:
        self._log.info(f"[{status}] {message} {details}")

    def show_payment_error(self, message: str) -> None:
        self._log.error(message)

    def set_order_button(self, enabled: bool) -> None:
        self._log.debug(f"Order button {'enabled' if enabled else 'disabled'}")

    def redirect(self, url: str) -> None:
        self._log.info(f"Redirecting to {url}")

    def show_confirmation(self, summary: dict) -> None:
        self._log.info(f"Order confirmed: {summary}")

    def close(self) -> None:
        self._log.info("Checkout closed")
