"""Hosted checkout (Stripe) endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Header, Request

from sunsano.api.deps import DbSession
from sunsano.core.exceptions import WebhookSignatureError
from sunsano.core.idempotency import (
    check_idempotency,
    generate_idempotency_key,
    store_idempotency_result,
)
from sunsano.schemas.checkout import (
    CheckoutSessionResponse,
    SessionStatusResponse,
    StripeWebhookResponse,
)
from sunsano.schemas.order import OrderCreate
from sunsano.services.gateway_service import gateway_service
from sunsano.services.notification_service import notification_service
from sunsano.services.stripe_service import EventOutcome, stripe_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _schedule_notification(background_tasks: BackgroundTasks, outcome: EventOutcome) -> None:
    if outcome.order is None:
        return
    if outcome.notify == "confirmation":
        background_tasks.add_task(notification_service.send_order_confirmation, outcome.order)
    elif outcome.notify == "payment_failed":
        background_tasks.add_task(notification_service.send_payment_failed, outcome.order)


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(data: OrderCreate, db: DbSession) -> CheckoutSessionResponse:
    """Create the order and a hosted checkout session for it."""
    order, payment = await stripe_service.create_checkout_session(db, data)
    return CheckoutSessionResponse(
        session_id=payment.gateway_transaction_id,
        redirect_url=payment.redirect_url,
        order_id=order.id,
        order_number=order.order_number,
        payment_id=payment.payment_id,
    )


@router.post("/webhook", response_model=StripeWebhookResponse)
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: DbSession,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
) -> dict:
    """Handle checkout events.

    Each event id is processed once; redeliveries return the stored result.
    """
    payload = await request.body()
    event = gateway_service.verify_webhook(payload, stripe_signature)
    if event is None:
        raise WebhookSignatureError()

    idempotency_key = None
    if event.get("id"):
        idempotency_key = generate_idempotency_key("stripe_event", event["id"])
        cached = check_idempotency(idempotency_key)
        if cached is not None:
            logger.info(f"Duplicate event {event['id']} ignored")
            return cached

    outcome = await stripe_service.handle_event(db, event)
    _schedule_notification(background_tasks, outcome)

    if idempotency_key:
        store_idempotency_result(idempotency_key, outcome.result)
    return outcome.result


@router.get("/session/{session_id}", response_model=SessionStatusResponse)
async def get_session_status(
    session_id: str,
    background_tasks: BackgroundTasks,
    db: DbSession,
) -> dict:
    """Status of a checkout session; a paid session marks its order paid."""
    outcome = await stripe_service.get_session_status(db, session_id)
    _schedule_notification(background_tasks, outcome)
    return outcome.result
