"""Hosted checkout service.

Creates checkout sessions for orders and applies the results reported by
Stripe (webhook events or a session lookup after the customer returns).
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sunsano.core.exceptions import ExternalServiceError
from sunsano.domain.pricing import to_minor_units
from sunsano.gateways.base import LineItem
from sunsano.models.order import Order
from sunsano.models.payment import Payment
from sunsano.schemas.order import OrderCreate
from sunsano.services.gateway_service import gateway_service
from sunsano.services.order_service import order_service
from sunsano.services.payment_service import payment_service

logger = logging.getLogger(__name__)

PAID_SESSION_STATUSES = ("paid", "no_payment_required")


@dataclass
class EventOutcome:
    """Result of applying a webhook event or session lookup."""

    result: dict
    order: Order | None = None
    # Email to send afterwards: "confirmation" or "payment_failed"
    notify: str | None = None


class StripeService:
    """Service for hosted checkout sessions."""

    @staticmethod
    def _line_items(order: Order) -> list[LineItem]:
        items = [
            LineItem(
                name=line["name"],
                unit_amount=to_minor_units(Decimal(str(line["price"]))),
                quantity=line["quantity"],
            )
            for line in order.items
        ]
        if order.delivery_cost:
            items.append(LineItem(
                name="Lieferung",
                unit_amount=to_minor_units(order.delivery_cost),
                quantity=1,
            ))
        return items

    async def create_checkout_session(self, db: AsyncSession, data: OrderCreate) -> tuple[Order, Payment]:
        """Create (or reuse) the order and open a checkout session for it.

        Raises:
            ExternalServiceError: If the gateway refuses the session
        """
        order = await order_service.get_or_create_for_checkout(db, data)

        gateway_type, result = await gateway_service.create_checkout_session(
            line_items=self._line_items(order),
            customer_email=order.customer_email,
            metadata={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "customer_email": order.customer_email,
            },
        )
        if not result.success:
            logger.error(f"Checkout session for order {order.order_number} failed: {result.error_message}")
            raise ExternalServiceError("stripe", result.error_message)

        order.stripe_session_id = result.session_id
        payment = await payment_service.initialize_payment(
            db,
            order,
            gateway=gateway_type.value,
            gateway_transaction_id=result.session_id,
            redirect_url=result.url,
        )

        logger.info(
            f"Checkout session created: {result.session_id} for order {order.order_number} "
            f"(payment {payment.payment_id}, {gateway_type.value})"
        )
        return order, payment

    async def _payment_for_session(self, db: AsyncSession, session_id: str, metadata: dict) -> Payment | None:
        payment = await payment_service.get_by_gateway_transaction(db, session_id)
        if payment is None and metadata.get("order_number"):
            order = await order_service.get_by_number(db, metadata["order_number"])
            if order is not None:
                payment = await payment_service.get_latest_for_order(db, order.id)
        return payment

    async def _complete(self, db: AsyncSession, payment: Payment, payment_intent_id: str | None) -> bool:
        """Mark a payment completed; True only on the first completion."""
        if payment_intent_id:
            payment.order.stripe_payment_id = payment_intent_id
        if payment.status not in ("pending", "processing"):
            if payment.status not in ("completed", "refunded"):
                logger.warning(f"Not completing payment {payment.payment_id} in status {payment.status}")
            return False
        return await payment_service.set_status(db, payment, "completed")

    async def get_session_status(self, db: AsyncSession, session_id: str) -> EventOutcome:
        """Look up a session and sync a paid session into its order."""
        info = await gateway_service.retrieve_session(session_id)
        if not info.success:
            raise ExternalServiceError("stripe", info.error_message)

        payment = await self._payment_for_session(db, session_id, info.metadata or {})
        order = payment.order if payment else None

        notify = None
        if payment is not None and info.payment_status in PAID_SESSION_STATUSES:
            if await self._complete(db, payment, info.payment_intent_id):
                notify = "confirmation"

        metadata = info.metadata or {}
        return EventOutcome(
            result={
                "session_id": session_id,
                "payment_status": info.payment_status,
                "order_id": str(order.id) if order else metadata.get("order_id"),
                "order_number": order.order_number if order else metadata.get("order_number"),
                "payment_id": payment.payment_id if payment else None,
            },
            order=order,
            notify=notify,
        )

    async def handle_event(self, db: AsyncSession, event: dict) -> EventOutcome:
        """Apply a verified webhook event."""
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == "checkout.session.completed":
            return await self._handle_session_completed(db, obj)
        if event_type == "payment_intent.succeeded":
            return await self._handle_payment_intent(db, obj, "completed")
        if event_type == "payment_intent.payment_failed":
            return await self._handle_payment_intent(db, obj, "failed")

        logger.info(f"Unhandled event type: {event_type}")
        return EventOutcome(result={"processed": False, "message": "Event type not handled"})

    async def _handle_session_completed(self, db: AsyncSession, session: dict) -> EventOutcome:
        session_id = session.get("id", "")
        payment = await self._payment_for_session(db, session_id, session.get("metadata") or {})
        if payment is None:
            logger.warning(f"Order not found for checkout session {session_id}")
            return EventOutcome(result={"processed": False, "message": "Order not found"})

        order = payment.order
        notify = None
        if session.get("payment_status", "paid") in PAID_SESSION_STATUSES:
            if await self._complete(db, payment, session.get("payment_intent")):
                notify = "confirmation"
        else:
            # Delayed methods (SEPA debit) settle with a later payment_intent event
            if session.get("payment_intent"):
                order.stripe_payment_id = session["payment_intent"]
            if payment.status == "pending":
                await payment_service.set_status(db, payment, "processing")

        logger.info(f"Checkout session {session_id} completed for order {order.order_number}: {order.status}")
        return EventOutcome(
            result={
                "processed": True,
                "order_id": str(order.id),
                "order_number": order.order_number,
                "status": order.status,
            },
            order=order,
            notify=notify,
        )

    async def _handle_payment_intent(self, db: AsyncSession, intent: dict, outcome: str) -> EventOutcome:
        intent_id = intent.get("id")
        result = await db.execute(select(Order).where(Order.stripe_payment_id == intent_id))
        order = result.scalars().first()
        payment = await payment_service.get_latest_for_order(db, order.id) if order else None
        if payment is None:
            logger.warning(f"Order not found for payment intent {intent_id}")
            return EventOutcome(result={"processed": False, "message": "Order not found"})

        notify = None
        if outcome == "completed":
            if await self._complete(db, payment, intent_id):
                notify = "confirmation"
        elif payment.status in ("pending", "processing"):
            error = (intent.get("last_payment_error") or {}).get("message")
            await payment_service.set_status(db, payment, "failed", reason=error)
            notify = "payment_failed"

        logger.info(f"Payment intent {intent_id} {outcome} for order {order.order_number}")
        return EventOutcome(
            result={
                "processed": True,
                "order_id": str(order.id),
                "order_number": order.order_number,
                "status": order.status,
            },
            order=order,
            notify=notify,
        )


stripe_service = StripeService()
