"""Base checkout gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayType(str, Enum):
    """Supported checkout gateways."""

    STRIPE = "stripe"
    SIMULATED = "simulated"


@dataclass
class LineItem:
    """One checkout line, amount in cents."""

    name: str
    unit_amount: int
    quantity: int
    description: str | None = None


@dataclass
class SessionResult:
    """Result of creating a hosted checkout session."""

    success: bool
    session_id: str | None = None
    url: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


@dataclass
class SessionInfo:
    """Current state of a hosted checkout session."""

    success: bool
    session_id: str | None = None
    payment_status: str | None = None
    status: str | None = None
    payment_intent_id: str | None = None
    amount_total: int | None = None
    customer_email: str | None = None
    metadata: dict | None = None
    error_message: str | None = None


@dataclass
class RefundResult:
    """Result of a refund operation."""

    success: bool
    refund_id: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class CheckoutGateway(ABC):
    """Abstract base class for checkout gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        line_items: list[LineItem],
        currency: str,
        customer_email: str,
        success_url: str,
        cancel_url: str,
        metadata: dict | None = None,
        shipping_countries: list[str] | None = None,
    ) -> SessionResult:
        """Create a hosted checkout session.

        Args:
            line_items: Order lines with amounts in cents
            currency: Currency code (eur)
            customer_email: Prefilled customer email
            success_url: Redirect after payment, may contain {CHECKOUT_SESSION_ID}
            cancel_url: Redirect when the customer aborts
            metadata: Order references echoed back in webhooks
            shipping_countries: Allowed shipping address countries

        Returns:
            SessionResult with session id and redirect URL
        """
        pass

    @abstractmethod
    async def retrieve_session(self, session_id: str) -> SessionInfo:
        """Fetch the state of a checkout session."""
        pass

    @abstractmethod
    async def process_refund(
        self,
        transaction_id: str,
        amount: int,
        reason: str,
    ) -> RefundResult:
        """Process a refund.

        Args:
            transaction_id: Original payment transaction ID
            amount: Refund amount in cents
            reason: Refund reason

        Returns:
            RefundResult with refund details
        """
        pass

    @abstractmethod
    def verify_webhook(
        self,
        payload: bytes,
        signature: str | None,
    ) -> dict | None:
        """Verify webhook signature and parse payload.

        Args:
            payload: Raw request body
            signature: Webhook signature header

        Returns:
            Parsed event dict if valid, None if invalid
        """
        pass
