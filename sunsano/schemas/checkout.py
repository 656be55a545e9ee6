"""Hosted checkout (Stripe) Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel


class CheckoutSessionResponse(BaseModel):
    session_id: str
    redirect_url: str
    order_id: UUID
    order_number: str
    payment_id: str


class SessionStatusResponse(BaseModel):
    session_id: str
    payment_status: str  # paid, unpaid, no_payment_required
    order_id: UUID | None = None
    order_number: str | None = None
    payment_id: str | None = None


class StripeWebhookResponse(BaseModel):
    processed: bool
    message: str | None = None
    order_id: UUID | None = None
    order_number: str | None = None
    status: str | None = None
