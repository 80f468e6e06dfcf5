"""
Tax calculation for cart and checkout totals.

A single rate applies app-wide. Delivery fee is part of the taxable base for
delivery orders; pickup orders pass a zero fee.
"""
from decimal import Decimal
from typing import Tuple

from foodcart.utils.money import Number, round2, to_decimal

TAX_RATE = Decimal("0.05")


def calculate_tax(
    subtotal: Number, delivery_fee: Number = 0, include_delivery: bool = True
) -> Decimal:
    base_amount = to_decimal(subtotal) + (
        to_decimal(delivery_fee) if include_delivery else Decimal("0")
    )
    return round2(base_amount * TAX_RATE)


def calculate_total_with_tax(
    subtotal: Number, delivery_fee: Number = 0, include_delivery: bool = True
) -> Tuple[Decimal, Decimal]:
    """Return (tax, total) where total = round2(subtotal + delivery_fee + tax)."""
    tax = calculate_tax(subtotal, delivery_fee, include_delivery)
    total = round2(to_decimal(subtotal) + to_decimal(delivery_fee) + tax)
    return tax, total
