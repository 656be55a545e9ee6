"""Tests for cart items, customer data and the order draft."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from sunsano.checkout import CartItem, CustomerData, OrderDraft, PaymentMethod
from tests.factories import CUSTOMER


class TestCartItem:

    def test_accepts_storefront_keys(self):
        item = CartItem.model_validate({"id": "berry-boost", "name": "Berry Boost", "price": "4.20", "quantity": 1})
        assert item.product_id == "berry-boost"
        assert item.unit_price == Decimal("4.20")

    def test_rejects_zero_quantity(self):
        with pytest.raises(ValidationError):
            CartItem(product_id="berry-boost", name="Berry Boost", unit_price=Decimal("4.20"), quantity=0)


class TestCustomerData:

    def test_valid(self):
        customer = CustomerData.model_validate(CUSTOMER)
        assert customer.city == "Berlin"

    @pytest.mark.parametrize("field,value", [
        ("firstname", "E"),
        ("email", "not-an-email"),
        ("address", "Weg"),
        ("zipcode", "123"),
    ])
    def test_invalid_fields(self, field, value):
        with pytest.raises(ValidationError):
            CustomerData.model_validate({**CUSTOMER, field: value})


class TestOrderDraft:

    def test_payload(self):
        draft = OrderDraft(
            items=[CartItem(product_id="sunny-orange", name="Sunny Orange", unit_price=Decimal("3.90"), quantity=2)],
            customer=CustomerData.model_validate(CUSTOMER),
            payment_method=PaymentMethod.CARD,
        )
        draft.stamp("SUN123456")
        payload = draft.to_payload()

        assert payload["order_number"] == "SUN123456"
        assert payload["order_date"] is not None
        assert payload["items"] == [
            {"product_id": "sunny-orange", "name": "Sunny Orange", "price": "3.90", "quantity": 2},
        ]
        assert payload["subtotal"] == "7.80"
        assert payload["delivery_cost"] == "2.50"
        assert payload["total"] == "10.30"
        assert payload["payment_method"] == "card"
        assert payload["customer"]["email"] == "erika@example.com"
