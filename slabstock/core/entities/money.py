"""Money helpers.

Ledger amounts are integer minor units (cents); floats are a view only.
"""


def amount_to_float(amount: int) -> float:
    """Convert minor units to a float amount."""
    return amount / 100.0


def amount_from_float(value: float) -> int:
    """Convert a float amount to minor units, rounding half-up.

    Non-positive values map to 0.
    """
    if value <= 0:
        return 0
    return int(value * 100.0 + 0.5)
