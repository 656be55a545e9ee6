"""Simulated checkout gateway for development without Stripe keys."""

import json
import time

from sunsano.gateways.base import (
    CheckoutGateway,
    GatewayType,
    LineItem,
    RefundResult,
    SessionInfo,
    SessionResult,
)

SIMULATED_SESSION_PREFIX = "cs_simulated_"


class SimulatedGateway(CheckoutGateway):
    """Gateway that completes every session immediately.

    Sessions redirect straight to the success URL and always report
    ``paid``. Webhooks are accepted unsigned.
    """

    def __init__(self):
        self._sessions: dict[str, SessionInfo] = {}

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.SIMULATED

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
        """Create simulated session (always succeeds)."""
        session_id = f"{SIMULATED_SESSION_PREFIX}{time.time_ns() // 1000}"
        self._sessions[session_id] = SessionInfo(
            success=True,
            session_id=session_id,
            payment_status="paid",
            status="complete",
            payment_intent_id=f"pi_simulated_{session_id[len(SIMULATED_SESSION_PREFIX):]}",
            amount_total=sum(item.unit_amount * item.quantity for item in line_items),
            customer_email=customer_email,
            metadata=dict(metadata or {}),
        )
        return SessionResult(
            success=True,
            session_id=session_id,
            url=success_url.replace("{CHECKOUT_SESSION_ID}", session_id),
            raw_response={"simulated": True},
        )

    async def retrieve_session(self, session_id: str) -> SessionInfo:
        """Simulated sessions are always paid."""
        info = self._sessions.get(session_id)
        if info is not None:
            return info
        return SessionInfo(
            success=True,
            session_id=session_id,
            payment_status="paid",
            status="complete",
            metadata={},
        )

    async def process_refund(
        self,
        transaction_id: str,
        amount: int,
        reason: str,
    ) -> RefundResult:
        """Process simulated refund (always succeeds)."""
        return RefundResult(
            success=True,
            refund_id=f"re_simulated_{transaction_id}",
            raw_response={"amount": amount, "reason": reason},
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str | None,
    ) -> dict | None:
        """Parse the unsigned event body."""
        try:
            event = json.loads(payload)
        except ValueError:
            return None
        return event if isinstance(event, dict) else None
