"""Order pricing.

Totals are computed in Decimal and rounded to cents:

    subtotal = sum(unit_price * quantity)
    total    = subtotal + delivery_fee
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

DEFAULT_DELIVERY_FEE = Decimal("2.50")
CENT = Decimal("0.01")


def quantize_money(amount: Decimal | int | float | str) -> Decimal:
    """Round an amount to cents."""
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount to an integer number of cents."""
    return int((quantize_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal


def calculate_totals(
    lines: Iterable[tuple[Decimal, int]],
    delivery_fee: Decimal = DEFAULT_DELIVERY_FEE,
) -> OrderTotals:
    """Compute subtotal, delivery fee and total for (unit_price, quantity) lines."""
    subtotal = sum(
        (Decimal(str(price)) * quantity for price, quantity in lines),
        Decimal("0"),
    )
    subtotal = quantize_money(subtotal)
    fee = quantize_money(delivery_fee)
    return OrderTotals(subtotal=subtotal, delivery_fee=fee, total=subtotal + fee)
