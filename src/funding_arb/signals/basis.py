"""Basis divergence and position-oriented spread helpers.

Basis divergence measures how far the two venues' mark prices for the same
instrument have drifted apart. A hedge is only delta-neutral while they
track each other.

CRITICAL: All values use Decimal. Never use float for prices or spreads.
"""

from decimal import Decimal


def is_valid_reading(value: Decimal | None) -> bool:
    """True for a usable rate or price: present, not NaN, not the 0 sentinel."""
    return value is not None and not value.is_nan() and value != Decimal("0")


def compute_basis_divergence(long_price: Decimal, short_price: Decimal) -> Decimal:
    """Relative price gap between the long and short venue.

    Formula: abs(long_price - short_price) / short_price

    Returns:
        Divergence as a non-negative Decimal fraction.
        Returns Decimal("0") if short_price is zero or negative.
    """
    if short_price <= Decimal("0"):
        return Decimal("0")
    return abs(long_price - short_price) / short_price


def oriented_spread(long_rate: Decimal, short_rate: Decimal) -> Decimal:
    """Spread seen from the position: positive while the hedge earns funding."""
    return long_rate - short_rate
