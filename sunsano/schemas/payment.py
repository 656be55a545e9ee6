"""Payment-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class PaymentStatusResponse(BaseModel):
    """Schema for payment status check."""

    payment_id: str
    status: str
    amount: Decimal
    order_id: UUID
    order_number: str
    created_at: datetime
    updated_at: datetime


class PaymentWebhookPayload(BaseModel):
    """Status notification from the payment provider."""

    payment_id: str = Field(..., min_length=1)
    status: str = Field(..., pattern="^(completed|failed|pending|cancelled)$")
    amount: Decimal = Field(..., ge=0)
    order_id: str | None = None
    signature: str = Field(..., min_length=1)


class PaymentWebhookResponse(BaseModel):
    payment_id: str
    order_id: UUID
    status: str
    processed: bool


class PaymentRetryRequest(BaseModel):
    payment_id: str = Field(..., min_length=1)


class PaymentRetryResponse(BaseModel):
    new_payment_id: str
    status: str
    retry_of: str
    redirect_url: str | None = None


class RefundRequest(BaseModel):
    """Schema for admin refund."""

    payment_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    reason: str = Field("requested_by_customer", min_length=3, max_length=500)


class RefundResponse(BaseModel):
    refund_id: str
    payment_id: str
    amount: Decimal
    status: str


class PaymentStatsResponse(BaseModel):
    total: int
    successful: int
    failed: int
    pending: int
    refunded: int
    success_rate: float  # percent of all attempts
