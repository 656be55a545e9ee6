"""Order number and payment id generation utilities."""

import random
import string
import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


def generate_order_number(now_ms: int | None = None) -> str:
    """Generate an order number from the current epoch milliseconds.

    Args:
        now_ms: Epoch milliseconds to use instead of the clock

    Returns:
        str: Order number like 'SUN123456' (last six digits of the timestamp)
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"SUN{str(now_ms)[-6:]}"


async def generate_unique_order_number(db: AsyncSession) -> str:
    """Generate an order number not yet used by any stored order."""
    from sunsano.models.order import Order

    order_number = generate_order_number()
    while True:
        result = await db.execute(
            select(Order.id).where(Order.order_number == order_number)
        )
        if not result.scalar_one_or_none():
            return order_number
        # Taken within the same six-digit window
        order_number = f"SUN{random.randint(0, 999999):06d}"


def generate_payment_id() -> str:
    """Generate a payment id.

    Returns:
        str: Payment id like 'PAY12345678'
    """
    return "PAY" + "".join(random.choices(string.digits, k=8))


def generate_refund_reference() -> str:
    """Generate a refund reference like 'RFD-K9M2A3B7'."""
    random_part = "".join(random.choices(string.ascii_uppercase + string.digits, k=8))
    return f"RFD-{random_part}"
