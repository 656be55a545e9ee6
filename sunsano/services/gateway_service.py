"""Checkout gateway service.

Routes checkout operations to the appropriate gateway adapter.
No business logic here - only gateway coordination.
"""

from sunsano.config import settings
from sunsano.gateways.base import (
    CheckoutGateway,
    GatewayType,
    LineItem,
    RefundResult,
    SessionInfo,
    SessionResult,
)
from sunsano.gateways.simulated import SIMULATED_SESSION_PREFIX, SimulatedGateway
from sunsano.gateways.stripe_gateway import StripeGateway


class GatewayService:
    """Service for managing checkout gateway operations."""

    def __init__(self):
        self._gateways: dict[GatewayType, CheckoutGateway] = {}

    @property
    def active_type(self) -> GatewayType:
        """Stripe when a secret key is configured, otherwise simulated."""
        return GatewayType.STRIPE if settings.stripe_secret_key else GatewayType.SIMULATED

    def _get_gateway(self, gateway_type: str | GatewayType | None = None) -> CheckoutGateway:
        """Get or create gateway instance."""
        if gateway_type is None:
            gateway_type = self.active_type
        elif isinstance(gateway_type, str):
            try:
                gateway_type = GatewayType(gateway_type)
            except ValueError:
                gateway_type = GatewayType.SIMULATED

        if gateway_type not in self._gateways:
            if gateway_type == GatewayType.STRIPE:
                self._gateways[gateway_type] = StripeGateway()
            else:
                self._gateways[gateway_type] = SimulatedGateway()

        return self._gateways[gateway_type]

    async def create_checkout_session(
        self,
        line_items: list[LineItem],
        customer_email: str,
        metadata: dict | None = None,
    ) -> tuple[GatewayType, SessionResult]:
        """Create checkout session via the active gateway."""
        gateway = self._get_gateway()
        result = await gateway.create_checkout_session(
            line_items=line_items,
            currency=settings.currency,
            customer_email=customer_email,
            success_url=settings.checkout_success_url,
            cancel_url=settings.checkout_cancel_url,
            metadata=metadata,
            shipping_countries=settings.shipping_countries,
        )
        return gateway.gateway_type, result

    async def retrieve_session(self, session_id: str) -> SessionInfo:
        """Retrieve session from the gateway that issued it."""
        if session_id.startswith(SIMULATED_SESSION_PREFIX):
            return await self._get_gateway(GatewayType.SIMULATED).retrieve_session(session_id)
        return await self._get_gateway().retrieve_session(session_id)

    async def process_refund(
        self,
        gateway_type: str | GatewayType,
        transaction_id: str,
        amount: int,
        reason: str,
    ) -> RefundResult:
        """Process refund via gateway."""
        gateway = self._get_gateway(gateway_type)
        return await gateway.process_refund(
            transaction_id=transaction_id,
            amount=amount,
            reason=reason,
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str | None,
    ) -> dict | None:
        """Verify webhook with the active gateway."""
        return self._get_gateway().verify_webhook(payload, signature)


# Singleton instance
gateway_service = GatewayService()
