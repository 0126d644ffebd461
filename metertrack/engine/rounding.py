"""
Fixed-point rounding helpers.

All monetary and consumption figures leave the engine rounded to two decimals
with half-up behaviour. Values go through ``Decimal`` built from their shortest
repr so that e.g. 1.005 rounds to 1.01 instead of drifting to 1.00.
"""

from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal("0.01")


def round_half_up(value: float, places: Decimal = TWO_PLACES) -> float:
    """
    Round a float half-up to the given number of places.

    Args:
        value: Value to round
        places: Quantization exponent (default two decimal places)

    Returns:
        Rounded value as a float
    """
    rounded = Decimal(repr(float(value))).quantize(places, rounding=ROUND_HALF_UP)
    # Avoid "-0.0" leaking into JSON output
    return float(rounded) + 0.0


def round2(value: float) -> float:
    return round_half_up(value, TWO_PLACES)
