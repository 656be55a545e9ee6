"""Database models."""

from sunsano.models.order import Order, OrderNote
from sunsano.models.payment import Payment, Refund
from sunsano.models.product import Product
from sunsano.models.review import Review

__all__ = [
    # Catalogue
    "Product",
    # Order
    "Order",
    "OrderNote",
    # Payment
    "Payment",
    "Refund",
    # Review
    "Review",
]
