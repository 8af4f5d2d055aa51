#!/usr/bin/env python3
"""
Zentrale Quantisierung - Decimal-Rundung für Preis/Menge

Verwendet Decimal für präzise Rundung ohne Float-Fehler.
Mengen werden ABGERUNDET (FLOOR), damit das Budget nie überschritten wird;
Zielpreise werden kaufmännisch gerundet (HALF_UP).
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, getcontext

# Setze Präzision auf 28 Stellen für Krypto-Genauigkeit
getcontext().prec = 28


def to_decimal(value) -> Decimal:
    """
    Convert exchange/config values to Decimal.

    Floats go through their shortest repr (what a human reads in the ticker)
    so the value is not the binary approximation. Whole-number floats lose
    the trailing ".0": 27000.0 has no decimals, like the ticker shows it.

    Example:
        >>> to_decimal(0.1)
        Decimal('0.1')
        >>> to_decimal(27000.0)
        Decimal('27000')
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return Decimal(int(value))
        return Decimal(repr(value))
    return Decimal(str(value))


def _floor_step(x: Decimal, step: Decimal) -> Decimal:
    """
    Floor value to nearest step (quantize down).

    Returns:
        Floored value: (x // step) * step
    """
    if step == 0:
        return x
    return (x // step) * step


def q_amount(amount, step_size) -> Decimal:
    """
    Quantize amount to step_size (FLOOR).

    Args:
        amount: Raw amount
        step_size: Exchange step size (e.g., 0.01); None or 0 leaves amount as is

    Returns:
        Quantized amount floored to step_size

    Example:
        >>> q_amount(Decimal("123.456"), Decimal("0.01"))
        Decimal('123.45')
    """
    amount = to_decimal(amount)
    if not step_size:
        return amount
    step = to_decimal(step_size).normalize()
    floored = _floor_step(amount, step)
    # Keep the step's exponent so 1.5 with step 0.01 prints as "1.50"
    if step.as_tuple().exponent < 0:
        return floored.quantize(step, rounding=ROUND_FLOOR)
    return floored


def round_half_up(value, places: int) -> Decimal:
    """
    Round value to ``places`` digits after the decimal point (HALF_UP).

    Example:
        >>> round_half_up(Decimal("12.4685"), 3)
        Decimal('12.469')
    """
    value = to_decimal(value)
    exponent = Decimal(1).scaleb(-places) if places > 0 else Decimal(1)
    return value.quantize(exponent, rounding=ROUND_HALF_UP)
