"""Money and pricing rules for marketplace orders.

Pure functions only. Arithmetic is done in ``Decimal`` and every result is
quantized to cents with half-up rounding, so that amounts stored on the
aggregates as floats always hold exact two-digit values.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable

TAX_RATE = Decimal("0.09")
PLATFORM_FEE_RATE = Decimal("0.025")

_CENT = Decimal("0.01")


class DeliveryMethod(Enum):
    CAMPUS_PICKUP = "CAMPUS_PICKUP"
    DORM_DELIVERY = "DORM_DELIVERY"
    SHIPPING = "SHIPPING"
    DIGITAL = "DIGITAL"


DELIVERY_FEES = {
    DeliveryMethod.CAMPUS_PICKUP: Decimal("0.00"),
    DeliveryMethod.DORM_DELIVERY: Decimal("3.00"),
    DeliveryMethod.SHIPPING: Decimal("8.99"),
    DeliveryMethod.DIGITAL: Decimal("0.00"),
}


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    tax_amount: Decimal
    delivery_fee: Decimal
    platform_fee: Decimal
    total_amount: Decimal

    def as_floats(self) -> dict:
        """Field values ready to be assigned to an Order."""
        return {
            "subtotal": float(self.subtotal),
            "tax_amount": float(self.tax_amount),
            "delivery_fee": float(self.delivery_fee),
            "platform_fee": float(self.platform_fee),
            "total_amount": float(self.total_amount),
        }


def money(value) -> Decimal:
    """Coerce ``value`` to a cent-quantized Decimal.

    Floats go through ``str`` first so that 19.99 stays 19.99 instead of
    picking up binary noise.
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def line_total(unit_price, quantity: int) -> Decimal:
    return money(money(unit_price) * quantity)


def tax_for(subtotal) -> Decimal:
    return money(money(subtotal) * TAX_RATE)


def platform_fee_for(subtotal) -> Decimal:
    return money(money(subtotal) * PLATFORM_FEE_RATE)


def delivery_fee(method) -> Decimal:
    """Flat fee for a delivery method, given as the enum or its value."""
    if not isinstance(method, DeliveryMethod):
        method = DeliveryMethod(method)
    return DELIVERY_FEES[method]


def compute_totals(line_totals: Iterable, fee=Decimal("0.00")) -> PriceBreakdown:
    subtotal = money(sum((money(t) for t in line_totals), Decimal("0.00")))
    tax = tax_for(subtotal)
    platform = platform_fee_for(subtotal)
    fee = money(fee)
    return PriceBreakdown(
        subtotal=subtotal,
        tax_amount=tax,
        delivery_fee=fee,
        platform_fee=platform,
        total_amount=subtotal + tax + fee + platform,
    )
