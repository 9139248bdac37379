"""
Money helpers.

Every amount in the system is a ``Decimal`` in currency units (euros by
default). Order totals, refund amounts and the minor units sent to the payment
provider all go through the same round-half-up quantisation so a charge and
its refund can never disagree by a cent.
"""
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def quantize(amount) -> Decimal:
    """Rounds an amount half-up to 2 decimal places."""
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(price, quantity: int) -> Decimal:
    return quantize(quantize(price) * quantity)


def to_minor_units(amount) -> int:
    """Converts currency units to integer cents (e.g. 19.98 -> 1998)."""
    return int(quantize(amount) * 100)


def from_minor_units(minor: int) -> Decimal:
    return quantize(Decimal(minor) / 100)
