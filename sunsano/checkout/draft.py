"""Order draft assembled by the checkout wizard."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum, IntEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from sunsano.domain.pricing import DEFAULT_DELIVERY_FEE, OrderTotals, calculate_totals


class WizardStep(IntEnum):
    CART_REVIEW = 1
    CUSTOMER_DATA = 2
    PAYMENT_METHOD = 3
    PROCESSING = 4


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    PAYPAL = "paypal"


class CartItem(BaseModel):
    """One cart line. Accepts the storefront's ``id``/``price`` keys as well."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    product_id: str = Field(validation_alias=AliasChoices("product_id", "id"))
    name: str = Field(..., min_length=1, max_length=100)
    unit_price: Decimal = Field(..., ge=0, validation_alias=AliasChoices("unit_price", "price"))
    quantity: int = Field(..., ge=1)


class CustomerData(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    firstname: str = Field(..., min_length=2, max_length=50)
    lastname: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str | None = Field(None, max_length=30)
    address: str = Field(..., min_length=5, max_length=200)
    zipcode: str = Field(..., min_length=4, max_length=10)
    city: str = Field(..., min_length=2, max_length=100)
    notes: str | None = Field(None, max_length=500)


@dataclass
class OrderDraft:
    items: list[CartItem] = field(default_factory=list)
    customer: CustomerData | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    delivery_fee: Decimal = DEFAULT_DELIVERY_FEE
    order_number: str | None = None
    order_date: datetime | None = None

    def totals(self) -> OrderTotals:
        return calculate_totals(
            ((item.unit_price, item.quantity) for item in self.items),
            self.delivery_fee,
        )

    def stamp(self, order_number: str) -> None:
        """Assign the order number and date of a new attempt."""
        self.order_number = order_number
        self.order_date = datetime.now(UTC)

    def to_payload(self) -> dict:
        """Request body for order and checkout-session creation."""
        totals = self.totals()
        return {
            "order_number": self.order_number,
            "order_date": self.order_date.isoformat() if self.order_date else None,
            "customer": self.customer.model_dump(mode="json") if self.customer else None,
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.name,
                    "price": str(item.unit_price),
                    "quantity": item.quantity,
                }
                for item in self.items
            ],
            "payment_method": self.payment_method.value,
            "subtotal": str(totals.subtotal),
            "delivery_cost": str(totals.delivery_fee),
            "total": str(totals.total),
        }
