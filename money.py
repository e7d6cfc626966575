"""
Fixed-point money helpers.

Amounts are held as integer cents and percentages as integer basis points
(hundredths of a percent). Decimal strings are only used at the edges.
"""
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CENT = Decimal("0.01")
BASIS_POINTS = 10000

Amount = Union[str, int, float, Decimal]


def _to_decimal(value: Amount) -> Decimal:
    try:
        # str() first so floats keep their printed value instead of their binary one
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {value!r}")


def to_cents(value: Amount, rounding: str = ROUND_HALF_UP) -> int:
    amount = _to_decimal(value)
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return int((amount.quantize(CENT, rounding=rounding) * 100).to_integral_value())


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}{cents // 100}.{cents % 100:02d}"


def to_basis_points(percentage: Amount) -> int:
    return to_cents(percentage)


def format_basis_points(bp: int) -> str:
    return format_cents(bp)


def _div_half_up(numerator: int, denominator: int) -> int:
    q, r = divmod(numerator, denominator)
    if r * 2 >= denominator:
        q += 1
    return q


def apply_discount(cents: int, bp: int) -> int:
    """Take bp basis points off an amount, rounding half up to the cent."""
    if not 0 <= bp <= BASIS_POINTS:
        raise ValueError(f"Discount out of range: {bp}")
    return _div_half_up(cents * (BASIS_POINTS - bp), BASIS_POINTS)


def apply_rate(cents: int, rate: Decimal) -> int:
    """Multiply an amount by a decimal rate (e.g. a tax rate), rounding half up."""
    result = (Decimal(cents) * rate).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(result)


def lower_bound_cents(value: Amount) -> int:
    """Smallest cent amount that is >= value."""
    return to_cents(value, ROUND_CEILING)


def upper_bound_cents(value: Amount) -> int:
    """Largest cent amount that is <= value."""
    return to_cents(value, ROUND_FLOOR)
