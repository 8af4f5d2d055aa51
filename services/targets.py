#!/usr/bin/env python3
"""
Zielpreise - Fee-adjusted sell and buy targets

sell_target: profit-scaled price plus the exit fee
buy_target:  mirror image, re-entry price minus the entry fee

Both are rounded HALF_UP to the decimal precision of the reference price.
"""

from decimal import Decimal
from typing import Optional

from services.quantize import round_half_up, to_decimal

ONE = Decimal("1")


def decimals_of(price) -> int:
    """
    Number of digits after the decimal point in the textual price.

    Example:
        >>> decimals_of("12.345")
        3
        >>> decimals_of(100)
        0
    """
    exponent = to_decimal(price).as_tuple().exponent
    if not isinstance(exponent, int) or exponent >= 0:
        return 0
    return -exponent


def _validate(price: Decimal, fee_rate: Decimal):
    if not price.is_finite() or price <= 0:
        raise ValueError(f"price must be > 0, got {price}")
    if fee_rate < 0 or fee_rate >= 1:
        raise ValueError(f"fee_rate must be in [0, 1), got {fee_rate}")


def sell_target(price, profit_multiplier, fee_rate, precision: Optional[int] = None) -> Decimal:
    """
    Sell target: ``round(price*m + price*m*fee)``.

    Args:
        price: Reference price (buy fill or smoothed start price)
        profit_multiplier: Target ratio, e.g. 1.01 for +1%
        fee_rate: Exchange fee fraction charged on the exit
        precision: Decimal places; defaults to the precision of ``price``

    Returns:
        Target price rounded HALF_UP
    """
    price, m, fee = to_decimal(price), to_decimal(profit_multiplier), to_decimal(fee_rate)
    _validate(price, fee)

    base = price * m
    places = decimals_of(price) if precision is None else precision
    return round_half_up(base + base * fee, places)


def buy_target(price, profit_multiplier, fee_rate, precision: Optional[int] = None) -> Decimal:
    """
    Buy target: ``round(price*(1-(m-1)) - fee)``.

    A multiplier of exactly 1 yields the price itself before the fee.
    """
    price, m, fee = to_decimal(price), to_decimal(profit_multiplier), to_decimal(fee_rate)
    _validate(price, fee)

    adjusted = price * (ONE - (m - ONE))
    places = decimals_of(price) if precision is None else precision
    return round_half_up(adjusted - adjusted * fee, places)


class TargetPriceCalculator:
    """Bundles the configured profit multiplier with the target formulas."""

    def __init__(self, profit_multiplier):
        self.profit_multiplier = to_decimal(profit_multiplier)

    def sell_for(self, price, fee_rate, precision: Optional[int] = None) -> Decimal:
        return sell_target(price, self.profit_multiplier, fee_rate, precision)

    def buy_for(self, price, fee_rate, precision: Optional[int] = None,
                multiplier=None) -> Decimal:
        m = self.profit_multiplier if multiplier is None else multiplier
        return buy_target(price, m, fee_rate, precision)

    def __repr__(self):
        return f"<TargetPriceCalculator m={self.profit_multiplier}>"
