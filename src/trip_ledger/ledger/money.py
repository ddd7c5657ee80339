"""Decimal money helpers shared by the ledger engine."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Balances and remainders within one cent of zero are treated as settled.
SETTLED_TOLERANCE = CENT


def to_cents(amount: Decimal) -> Decimal:
    """
    Round a Decimal amount to whole cents.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Amount as Decimal

    Returns:
        Amount quantized to two decimal places
    """
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
