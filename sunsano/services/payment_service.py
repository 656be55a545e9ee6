"""Payment record service.

Payment records follow ``domain/payment_record_state.py``; the outcome of
a payment is mirrored onto its order (completed -> paid, failed or
cancelled -> failed).
"""

import logging
import random
import string
from datetime import UTC, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sunsano.config import settings
from sunsano.core.exceptions import NotFoundError, PaymentError, ValidationError
from sunsano.domain.payment_record_state import assert_payment_transition
from sunsano.domain.pricing import quantize_money, to_minor_units
from sunsano.models.order import Order
from sunsano.models.payment import Payment, Refund
from sunsano.schemas.payment import PaymentWebhookPayload
from sunsano.services.gateway_service import gateway_service
from sunsano.services.order_service import order_service
from sunsano.utils.identifiers import generate_payment_id, generate_refund_reference

logger = logging.getLogger(__name__)

ORDER_OUTCOME = {
    "processing": "processing",
    "completed": "paid",
    "failed": "failed",
    "cancelled": "failed",
}


class PaymentService:
    """Service for payment attempts, webhooks and refunds."""

    async def _unique_payment_id(self, db: AsyncSession) -> str:
        while True:
            payment_id = generate_payment_id()
            result = await db.execute(select(Payment.id).where(Payment.payment_id == payment_id))
            if not result.scalar_one_or_none():
                return payment_id

    async def initialize_payment(
        self,
        db: AsyncSession,
        order: Order,
        gateway: str | None = None,
        gateway_transaction_id: str | None = None,
        redirect_url: str | None = None,
        retry_of: str | None = None,
    ) -> Payment:
        """Create a pending payment attempt for the order's total."""
        payment_id = await self._unique_payment_id(db)
        payment = Payment(
            payment_id=payment_id,
            order=order,
            amount=order.total,
            currency=order.currency,
            payment_method=order.payment_method,
            gateway=gateway,
            gateway_transaction_id=gateway_transaction_id,
            provider_reference="PROV" + "".join(random.choices(string.digits, k=6)),
            redirect_url=redirect_url or f"{settings.frontend_url}/payment/{payment_id}",
            status="pending",
            retry_of=retry_of,
        )
        db.add(payment)
        await db.flush()

        logger.info(
            f"Payment initialized: {payment_id} for order {order.order_number}, "
            f"{payment.amount} via {payment.payment_method}"
        )
        return payment

    async def get_payment(self, db: AsyncSession, payment_id: str) -> Payment:
        """Get payment by public id, with its order loaded."""
        result = await db.execute(
            select(Payment)
            .where(Payment.payment_id == payment_id)
            .options(selectinload(Payment.order))
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def get_by_gateway_transaction(self, db: AsyncSession, transaction_id: str) -> Payment | None:
        result = await db.execute(
            select(Payment)
            .where(Payment.gateway_transaction_id == transaction_id)
            .options(selectinload(Payment.order))
            .order_by(Payment.created_at.desc())
        )
        return result.scalars().first()

    async def get_latest_for_order(self, db: AsyncSession, order_id) -> Payment | None:
        result = await db.execute(
            select(Payment)
            .where(Payment.order_id == order_id)
            .options(selectinload(Payment.order))
            .order_by(Payment.created_at.desc())
        )
        return result.scalars().first()

    async def set_status(self, db: AsyncSession, payment: Payment, new_status: str, reason: str | None = None) -> bool:
        """Move a payment to ``new_status`` and mirror the outcome on its order.

        Returns:
            bool: False if the payment already had that status

        Raises:
            ValidationError: If the transition is not allowed
        """
        if payment.status == new_status:
            return False
        assert_payment_transition(payment.status, new_status)

        previous = payment.status
        payment.status = new_status
        if new_status == "completed":
            payment.completed_at = datetime.now(UTC)
        if reason:
            payment.failure_reason = reason

        order_status = ORDER_OUTCOME.get(new_status)
        if order_status:
            await order_service.apply_payment_outcome(
                db, payment.order, order_status, f"Payment {payment.payment_id} {new_status}"
            )
        await db.flush()

        logger.info(f"Payment {payment.payment_id} status: {previous} -> {new_status}")
        return True

    async def process_webhook(self, db: AsyncSession, payload: PaymentWebhookPayload) -> tuple[Payment, bool]:
        """Apply a provider status notification.

        Returns:
            tuple: (payment, whether its status changed)

        Raises:
            ValidationError: On amount or order mismatch, or an illegal transition
        """
        payment = await self.get_payment(db, payload.payment_id)

        if payload.order_id and payload.order_id not in (str(payment.order_id), payment.order.order_number):
            logger.warning(f"Webhook order mismatch for {payment.payment_id}: {payload.order_id}")
            raise ValidationError("Order mismatch")

        if quantize_money(payload.amount) != quantize_money(payment.amount):
            logger.warning(
                f"Webhook amount mismatch for {payment.payment_id}: "
                f"expected {payment.amount}, received {payload.amount}"
            )
            raise ValidationError("Amount mismatch")

        payment.webhook_attempts = (payment.webhook_attempts or 0) + 1
        changed = await self.set_status(db, payment, payload.status)
        await db.flush()

        logger.info(
            f"Webhook processed for {payment.payment_id}: {payload.status} "
            f"(attempt {payment.webhook_attempts})"
        )
        return payment, changed

    async def retry_payment(self, db: AsyncSession, payment_id: str) -> Payment:
        """Create a new attempt for a failed payment."""
        payment = await self.get_payment(db, payment_id)
        if payment.status != "failed":
            raise ValidationError("Payment is not in failed state")

        order = payment.order
        if order.status == "failed":
            await order_service.update_status(db, order, "pending", f"Payment {payment_id} retried")

        new_payment = await self.initialize_payment(
            db,
            order,
            gateway=payment.gateway,
            retry_of=payment.payment_id,
        )
        logger.info(f"Payment retry initiated: {payment_id} -> {new_payment.payment_id}")
        return new_payment

    async def process_refund(self, db: AsyncSession, payment_id: str, amount, reason: str) -> Refund:
        """Refund part or all of a completed payment."""
        payment = await self.get_payment(db, payment_id)
        if payment.status != "completed":
            raise ValidationError("Payment must be completed for refund")

        result = await db.execute(
            select(func.coalesce(func.sum(Refund.amount), 0)).where(
                Refund.payment_id == payment.id,
                Refund.status != "failed",
            )
        )
        already_refunded = quantize_money(result.scalar() or 0)
        amount = quantize_money(amount)
        if amount + already_refunded > quantize_money(payment.amount):
            raise ValidationError("Refund amount cannot exceed payment amount")

        refund = Refund(
            refund_id=generate_refund_reference(),
            payment_id=payment.id,
            amount=amount,
            reason=reason,
            status="pending",
        )
        db.add(refund)

        gateway_result = await gateway_service.process_refund(
            gateway_type=payment.gateway or gateway_service.active_type,
            transaction_id=payment.gateway_transaction_id or payment.payment_id,
            amount=to_minor_units(amount),
            reason=reason,
        )
        if not gateway_result.success:
            refund.status = "failed"
            refund.error_message = gateway_result.error_message
            await db.flush()
            logger.error(f"Refund for {payment_id} failed: {gateway_result.error_message}")
            raise PaymentError(f"Refund failed: {gateway_result.error_message}")

        refund.status = "completed"
        refund.gateway_refund_id = gateway_result.refund_id
        refund.completed_at = datetime.now(UTC)
        if amount + already_refunded == quantize_money(payment.amount):
            await self.set_status(db, payment, "refunded")
        await db.flush()

        logger.info(f"Refund {refund.refund_id} of {amount} for payment {payment_id}: {reason}")
        return refund

    async def get_stats(self, db: AsyncSession) -> dict:
        counts: dict[str, int] = {}
        result = await db.execute(select(Payment.status, func.count()).group_by(Payment.status))
        for status, count in result.all():
            counts[status] = count

        total = sum(counts.values())
        successful = counts.get("completed", 0) + counts.get("refunded", 0)
        return {
            "total": total,
            "successful": successful,
            "failed": counts.get("failed", 0) + counts.get("cancelled", 0),
            "pending": counts.get("pending", 0) + counts.get("processing", 0),
            "refunded": counts.get("refunded", 0),
            "success_rate": round(successful / total * 100, 2) if total else 0.0,
        }

    async def cleanup_old_payments(self, db: AsyncSession, older_than_days: int | None = None) -> int:
        """Delete failed and cancelled attempts past the retention window."""
        days = older_than_days if older_than_days is not None else settings.payment_retention_days
        cutoff = datetime.now(UTC) - timedelta(days=days)
        result = await db.execute(
            select(Payment).where(
                Payment.status.in_(("failed", "cancelled")),
                Payment.created_at < cutoff,
            )
        )
        payments = result.scalars().all()
        for payment in payments:
            await db.delete(payment)
        await db.flush()

        if payments:
            logger.info(f"Cleaned up {len(payments)} old payments")
        return len(payments)


payment_service = PaymentService()
