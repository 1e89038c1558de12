"""
Helper utilities
"""
import math
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

CENT = Decimal("0.01")


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers"""
    try:
        return numerator / denominator if denominator != 0 else default
    except (TypeError, ZeroDivisionError):
        return default


def chunk_list(lst: List, chunk_size: int) -> List[List]:
    """Split list into chunks"""
    return [lst[i:i + chunk_size] for i in range(0, len(lst), chunk_size)]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, unlike round())"""
    return int(math.floor(value + 0.5))


def round_2(value: float) -> float:
    """Round to 2 decimal places (half-up)"""
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def to_cents(value) -> Decimal:
    """Quantize a money or percentage value to 2 decimal places"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Optional[Decimal]:
    """Coerce a numeric column value to Decimal, keeping None"""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def days_between(start: Optional[datetime], end: datetime) -> Optional[float]:
    """Fractional days from start to end, None when start is unknown"""
    if start is None:
        return None
    return (end - start).total_seconds() / 86400
