"""Order-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

ORDER_STATUS_PATTERN = "^(pending|processing|paid|failed|cancelled|shipped|delivered)$"


class OrderItem(BaseModel):
    """One order line."""

    product_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    quantity: int = Field(..., ge=1, le=100)
    description: str | None = Field(None, max_length=500)


class CustomerInfo(BaseModel):
    """Delivery details of the customer."""

    model_config = ConfigDict(str_strip_whitespace=True)

    firstname: str = Field(..., min_length=2, max_length=50)
    lastname: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str | None = Field(None, max_length=30)
    address: str = Field(..., min_length=5, max_length=200)
    zipcode: str = Field(..., min_length=4, max_length=10)
    city: str = Field(..., min_length=2, max_length=100)
    notes: str | None = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Schema for placing an order.

    Client-computed totals are optional; when given they must match the
    server-side calculation.
    """

    order_number: str | None = Field(None, pattern=r"^SUN\d{6}$")
    order_date: datetime | None = None
    customer: CustomerInfo
    items: list[OrderItem] = Field(..., min_length=1, max_length=50)
    payment_method: str = Field(..., pattern="^(cash|card|paypal)$")
    subtotal: Decimal | None = None
    delivery_cost: Decimal | None = None
    total: Decimal | None = None


class OrderItemsUpdate(BaseModel):
    items: list[OrderItem] = Field(..., min_length=1, max_length=50)


class OrderStatusUpdate(BaseModel):
    """Schema for admin status change."""

    status: str = Field(..., pattern=ORDER_STATUS_PATTERN)
    notes: str | None = Field(None, max_length=1000)


class OrderNoteCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)
    note_type: str = Field("general", pattern="^(general|customer|internal)$")


class OrderNoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    note_type: str
    status: str | None
    created_at: datetime


class OrderResponse(BaseModel):
    """Schema for order response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    status: str
    customer_firstname: str
    customer_lastname: str
    customer_email: str
    customer_phone: str | None
    customer_address: str
    customer_zipcode: str
    customer_city: str
    customer_notes: str | None
    items: list[OrderItem]
    subtotal: Decimal
    delivery_cost: Decimal
    total: Decimal
    currency: str
    payment_method: str
    stripe_session_id: str | None
    paid_at: datetime | None
    created_at: datetime
    updated_at: datetime
    notes: list[OrderNoteResponse] = []


class OrderListResponse(BaseModel):
    """Schema for paginated order list."""

    orders: list[OrderResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class StatusChange(BaseModel):
    status: str | None
    timestamp: datetime
    note: str


class OrderHistoryResponse(BaseModel):
    order: OrderResponse
    history: list[OrderNoteResponse]
    status_changes: list[StatusChange]


class OrderStatsResponse(BaseModel):
    """Schema for admin order statistics."""

    total: int
    by_status: dict[str, int]
    average_order_value: Decimal
    recent_orders: int  # last 7 days


class PaymentInitResponse(BaseModel):
    """Payment attempt created together with an order."""

    payment_id: str
    status: str
    redirect_url: str | None = None
    provider_reference: str | None = None


class OrderCreateResponse(BaseModel):
    order: OrderResponse
    payment: PaymentInitResponse
