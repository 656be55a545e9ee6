"""Stripe checkout gateway adapter."""

import json
import logging

import stripe

from sunsano.config import settings
from sunsano.gateways.base import (
    CheckoutGateway,
    GatewayType,
    LineItem,
    RefundResult,
    SessionInfo,
    SessionResult,
)

logger = logging.getLogger(__name__)


class StripeGateway(CheckoutGateway):
    """Stripe Checkout implementation."""

    PAYMENT_METHOD_TYPES = ["card", "sepa_debit"]

    def __init__(self):
        self.secret_key = settings.stripe_secret_key
        self.webhook_secret = settings.stripe_webhook_secret

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.STRIPE

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
        """Create Stripe Checkout Session."""
        if not self.secret_key:
            return SessionResult(success=False, error_message="Stripe not configured")

        stripe.api_key = self.secret_key
        params = {
            "payment_method_types": self.PAYMENT_METHOD_TYPES,
            "line_items": [
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {
                            "name": item.name,
                            **({"description": item.description} if item.description else {}),
                        },
                        "unit_amount": item.unit_amount,
                    },
                    "quantity": item.quantity,
                }
                for item in line_items
            ],
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "customer_email": customer_email,
            "metadata": metadata or {},
        }
        if shipping_countries:
            params["shipping_address_collection"] = {"allowed_countries": shipping_countries}

        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            logger.error(f"Stripe session creation failed: {e}")
            return SessionResult(success=False, error_message=str(e))

        return SessionResult(
            success=True,
            session_id=session.id,
            url=session.url,
            raw_response={"id": session.id, "url": session.url},
        )

    async def retrieve_session(self, session_id: str) -> SessionInfo:
        """Retrieve Stripe Checkout Session."""
        if not self.secret_key:
            return SessionInfo(success=False, error_message="Stripe not configured")

        stripe.api_key = self.secret_key
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            return SessionInfo(success=False, session_id=session_id, error_message=str(e))

        payment_intent = session.payment_intent
        return SessionInfo(
            success=True,
            session_id=session.id,
            payment_status=session.payment_status,
            status=session.status,
            payment_intent_id=payment_intent if isinstance(payment_intent, str) else getattr(payment_intent, "id", None),
            amount_total=session.amount_total,
            customer_email=session.customer_email,
            metadata=dict(session.metadata or {}),
        )

    async def process_refund(
        self,
        transaction_id: str,
        amount: int,
        reason: str,
    ) -> RefundResult:
        """Process Stripe refund."""
        if not self.secret_key:
            return RefundResult(success=False, error_message="Stripe not configured")

        stripe.api_key = self.secret_key
        try:
            refund = stripe.Refund.create(
                payment_intent=transaction_id,
                amount=amount,
                reason="requested_by_customer",
                metadata={"reason": reason[:500]},
            )
        except stripe.StripeError as e:
            return RefundResult(success=False, error_message=str(e))

        return RefundResult(
            success=refund.status in ("succeeded", "pending"),
            refund_id=refund.id,
            raw_response={"status": refund.status, "id": refund.id},
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str | None,
    ) -> dict | None:
        """Verify Stripe webhook signature."""
        if not self.webhook_secret or not signature:
            return None

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Stripe webhook rejected: {e}")
            return None
        return json.loads(payload)
