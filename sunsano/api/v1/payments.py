"""Payment endpoints."""

import logging

import pydantic
from fastapi import APIRouter, BackgroundTasks, Request

from sunsano.api.deps import AdminAccess, DbSession
from sunsano.config import settings
from sunsano.core.exceptions import ValidationError, WebhookSignatureError
from sunsano.core.security import verify_signature
from sunsano.schemas.payment import (
    PaymentRetryRequest,
    PaymentRetryResponse,
    PaymentStatsResponse,
    PaymentStatusResponse,
    PaymentWebhookPayload,
    PaymentWebhookResponse,
    RefundRequest,
    RefundResponse,
)
from sunsano.services.notification_service import notification_service
from sunsano.services.payment_service import payment_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/stats", response_model=PaymentStatsResponse, dependencies=[AdminAccess])
async def payment_stats(db: DbSession) -> dict:
    return await payment_service.get_stats(db)


@router.get("/{payment_id}/status", response_model=PaymentStatusResponse)
async def get_payment_status(payment_id: str, db: DbSession) -> PaymentStatusResponse:
    """Current status of a payment attempt."""
    payment = await payment_service.get_payment(db, payment_id)
    return PaymentStatusResponse(
        payment_id=payment.payment_id,
        status=payment.status,
        amount=payment.amount,
        order_id=payment.order_id,
        order_number=payment.order.order_number,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


@router.post("/webhook", response_model=PaymentWebhookResponse)
async def payment_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: DbSession,
) -> PaymentWebhookResponse:
    """Status notification from the payment provider.

    The body carries an HMAC-SHA256 ``signature`` over the remaining
    fields, serialized with sorted keys.
    """
    try:
        body = await request.json()
        payload = PaymentWebhookPayload.model_validate(body)
    except ValueError as e:
        # pydantic.ValidationError and JSON decode errors are both ValueErrors
        errors = None
        if isinstance(e, pydantic.ValidationError):
            errors = [
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
        raise ValidationError("Invalid webhook payload", errors=errors)

    if not verify_signature(body, payload.signature, settings.payment_webhook_secret):
        logger.warning(f"Rejected payment webhook with invalid signature for {payload.payment_id}")
        raise WebhookSignatureError()

    payment, changed = await payment_service.process_webhook(db, payload)

    if changed and payment.status == "completed":
        background_tasks.add_task(notification_service.send_order_confirmation, payment.order)
    elif changed and payment.status in ("failed", "cancelled"):
        background_tasks.add_task(notification_service.send_payment_failed, payment.order)

    return PaymentWebhookResponse(
        payment_id=payment.payment_id,
        order_id=payment.order_id,
        status=payment.status,
        processed=changed,
    )


@router.post("/retry", response_model=PaymentRetryResponse)
async def retry_payment(data: PaymentRetryRequest, db: DbSession) -> PaymentRetryResponse:
    """Start a new attempt for a failed payment."""
    payment = await payment_service.retry_payment(db, data.payment_id)
    return PaymentRetryResponse(
        new_payment_id=payment.payment_id,
        status=payment.status,
        retry_of=payment.retry_of,
        redirect_url=payment.redirect_url,
    )


@router.post("/refund", response_model=RefundResponse, dependencies=[AdminAccess])
async def refund_payment(data: RefundRequest, db: DbSession) -> RefundResponse:
    """Refund part or all of a completed payment (admin only)."""
    refund = await payment_service.process_refund(db, data.payment_id, data.amount, data.reason)
    return RefundResponse(
        refund_id=refund.refund_id,
        payment_id=data.payment_id,
        amount=refund.amount,
        status=refund.status,
    )
