import math
from math import gcd

from .purchase import round_to_two

# Friendly fractions for common cooking measures & counts
FRACTION_UNITS = ("cup", "tbsp", "tsp", "count", "slice", "clove")
FRACTION_DENOMINATORS = (2, 3, 4, 8)
FRACTION_TOLERANCE = 0.02


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def _strip_trailing_zeros(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _mixed_fraction(amount: float, denom: int) -> str:
    whole = math.floor(amount)
    num = _round_half_up((amount - whole) * denom)
    if num == 0:
        return str(whole)
    if num == denom:
        return str(whole + 1)

    g = gcd(num, denom)
    fractional = f"{num // g}/{denom // g}"
    return f"{whole} {fractional}" if whole > 0 else fractional


def format_amount(amount: float, unit: str) -> str:
    """Render a quantity for display: "1/2" cup, "1 1/2" tbsp, "2" lb, "0.33" kg."""
    if amount is None or not math.isfinite(amount):
        return "0"

    if unit in FRACTION_UNITS and 0 < amount < 10:
        for denom in FRACTION_DENOMINATORS:
            approx = _round_half_up(amount * denom) / denom
            if abs(approx - amount) <= FRACTION_TOLERANCE:
                return _mixed_fraction(approx, denom)

    text = _strip_trailing_zeros(round_to_two(amount))
    return "0" if text in ("", "-0") else text
