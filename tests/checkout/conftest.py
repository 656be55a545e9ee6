"""Fixtures for the checkout orchestrator tests."""

import random

import pytest

from sunsano.checkout import CheckoutConfig, CheckoutView, MemorySessionStorage, PaymentLogger

SUNNY_ORANGE = {"id": "sunny-orange", "name": "Sunny Orange", "price": "3.90", "quantity": 2}


class RecordingView(CheckoutView):
    """View that records every call."""

    def __init__(self):
        self.events: list[tuple[str, object]] = []
        self.redirects: list[str] = []
        self.errors: list[str] = []
        self.validation_errors: list[dict] = []
        self.confirmations: list[dict] = []
        self.button_enabled: bool | None = None

    def show_step(self, step):
        self.events.append(("step", step))

    def render_cart(self, draft, totals):
        self.events.append(("cart", totals))

    def render_summary(self, draft, totals):
        self.events.append(("summary", totals))

    def show_validation_errors(self, errors):
        self.validation_errors.extend(errors)

    def update_processing_status(self, status, message, details):
        self.events.append(("status", status))

    def show_payment_error(self, message):
        self.errors.append(message)

    def set_order_button(self, enabled):
        self.button_enabled = enabled

    def redirect(self, url):
        self.redirects.append(url)

    def show_confirmation(self, summary):
        self.confirmations.append(summary)

    def close(self):
        self.events.append(("close", None))

    def statuses(self) -> list[str]:
        return [value for kind, value in self.events if kind == "status"]


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture
def payment_logger() -> PaymentLogger:
    return PaymentLogger(MemorySessionStorage())


@pytest.fixture
def fast_config() -> CheckoutConfig:
    """Timers that fire on the next loop iteration."""
    return CheckoutConfig(
        poll_interval=0,
        max_polls=3,
        webhook_delay_min=0,
        webhook_delay_max=0,
        webhook_retry_delay=0,
        webhook_max_retries=3,
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)
