"""Fixed-point helpers for money and ratios"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

MONEY = Decimal("0.01")
RATIO = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """Coerce int/str/Decimal to Decimal; floats go through str() to avoid binary noise"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def optional_decimal(value) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY, rounding=ROUND_HALF_UP)


def quantize_ratio(value: Decimal) -> Decimal:
    return value.quantize(RATIO, rounding=ROUND_HALF_UP)


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(value, high))
